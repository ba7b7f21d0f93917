from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class PageProgress:
    document_id: str
    user_id: str
    page: int
    completed: bool
    completed_at: str | None = None
