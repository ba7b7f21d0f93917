from __future__ import annotations

from pathlib import Path

from pagemark.core.time import now_utc_iso
from pagemark.domain.models.progress import PageProgress
from pagemark.infrastructure.db.sqlite import get_connection


class ProgressRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get_completed_pages(self, document_id: str, user_id: str) -> list[int]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT page FROM page_progress
                WHERE document_id = ? AND user_id = ? AND completed = 1
                ORDER BY page ASC
                """,
                (document_id, user_id),
            ).fetchall()
        return [int(row["page"]) for row in rows]

    def get(self, document_id: str, user_id: str, page: int) -> PageProgress | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT * FROM page_progress
                WHERE document_id = ? AND user_id = ? AND page = ?
                """,
                (document_id, user_id, page),
            ).fetchone()
        return self._to_progress(row) if row else None

    def toggle(self, document_id: str, user_id: str, page: int) -> PageProgress:
        existing = self.get(document_id, user_id, page)
        completed = True if existing is None else not existing.completed
        completed_at = now_utc_iso() if completed else None

        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO page_progress (document_id, user_id, page, completed, completed_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (document_id, user_id, page)
                DO UPDATE SET completed = excluded.completed, completed_at = excluded.completed_at
                """,
                (document_id, user_id, page, int(completed), completed_at),
            )
            conn.commit()

        return PageProgress(
            document_id=document_id,
            user_id=user_id,
            page=page,
            completed=completed,
            completed_at=completed_at,
        )

    @staticmethod
    def _to_progress(row) -> PageProgress:
        return PageProgress(
            document_id=row["document_id"],
            user_id=row["user_id"],
            page=int(row["page"]),
            completed=bool(row["completed"]),
            completed_at=row["completed_at"],
        )
