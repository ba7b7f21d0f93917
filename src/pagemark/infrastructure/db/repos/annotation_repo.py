from __future__ import annotations

from pathlib import Path

from pagemark.core.errors import AnnotationNotFoundError
from pagemark.core.time import now_utc_iso
from pagemark.domain.models.annotation import Annotation, LineAnchor, PointAnchor
from pagemark.infrastructure.db.sqlite import get_connection


class AnnotationRepo:
    """Local annotation store with the same surface as the REST client."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def get(self, annotation_id: str) -> Annotation:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM annotations WHERE id = ?",
                (annotation_id,),
            ).fetchone()
        if row is None:
            raise AnnotationNotFoundError(f"Annotation not found: {annotation_id}")
        return self._to_annotation(row)

    def list(self, document_id: str, page: int | None = None) -> list[Annotation]:
        with get_connection(self.db_path) as conn:
            if page is not None:
                rows = conn.execute(
                    """
                    SELECT * FROM annotations
                    WHERE document_id = ? AND page = ?
                    ORDER BY created_at ASC, rowid ASC
                    """,
                    (document_id, page),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM annotations
                    WHERE document_id = ?
                    ORDER BY page ASC, created_at ASC, rowid ASC
                    """,
                    (document_id,),
                ).fetchall()
        return [self._to_annotation(row) for row in rows]

    def create(self, annotation: Annotation) -> Annotation:
        anchor = annotation.anchor
        anchor_x = anchor.x if isinstance(anchor, PointAnchor) else None
        anchor_y = anchor.y if isinstance(anchor, PointAnchor) else None
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO annotations (
                    id,
                    document_id,
                    page,
                    line_number,
                    comment,
                    author_id,
                    status,
                    anchor_type,
                    anchor_x,
                    anchor_y,
                    created_at,
                    updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    annotation.id,
                    annotation.document_id,
                    annotation.page,
                    annotation.line_number,
                    annotation.comment,
                    annotation.author_id,
                    annotation.status,
                    "point" if isinstance(anchor, PointAnchor) else "line",
                    anchor_x,
                    anchor_y,
                    annotation.created_at,
                    annotation.updated_at,
                ),
            )
            conn.commit()
        return annotation

    def update_status(self, annotation_id: str, status: str) -> Annotation:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE annotations SET status = ?, updated_at = ? WHERE id = ?",
                (status, now_utc_iso(), annotation_id),
            )
            conn.commit()
        if cursor.rowcount == 0:
            raise AnnotationNotFoundError(f"Annotation not found: {annotation_id}")
        return self.get(annotation_id)

    def delete(self, annotation_id: str) -> None:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM annotations WHERE id = ?", (annotation_id,))
            conn.commit()
        if cursor.rowcount == 0:
            raise AnnotationNotFoundError(f"Annotation not found: {annotation_id}")

    def delete_many(self, annotation_ids: list[str]) -> int:
        if not annotation_ids:
            return 0
        placeholders = ", ".join("?" for _ in annotation_ids)
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                f"DELETE FROM annotations WHERE id IN ({placeholders})",
                tuple(annotation_ids),
            )
            conn.commit()
        return int(cursor.rowcount)

    @staticmethod
    def _to_annotation(row) -> Annotation:
        if row["anchor_type"] == "point":
            anchor = PointAnchor(x=float(row["anchor_x"]), y=float(row["anchor_y"]))
        else:
            anchor = LineAnchor()
        return Annotation(
            id=row["id"],
            document_id=row["document_id"],
            page=int(row["page"]),
            line_number=int(row["line_number"]),
            comment=row["comment"],
            author_id=row["author_id"],
            created_at=row["created_at"],
            status=row["status"],
            anchor=anchor,
            updated_at=row["updated_at"],
        )
