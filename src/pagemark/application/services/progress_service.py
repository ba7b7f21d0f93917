from __future__ import annotations

import logging
from typing import Iterable

from pagemark.core.errors import PagemarkError, ValidationError
from pagemark.domain.models.progress import PageProgress

logger = logging.getLogger(__name__)

FIRST_PAGE = 1


def resume_page(total_pages: int, completed_pages: Iterable[int]) -> int:
    """Lowest page not yet marked complete, or page 1 when there is none."""
    completed = set(completed_pages)
    for page in range(FIRST_PAGE, total_pages + 1):
        if page not in completed:
            return page
    return FIRST_PAGE


class ProgressService:
    def __init__(self, progress_store) -> None:
        self.progress_store = progress_store

    def completed_pages(self, document_id: str, user_id: str) -> list[int]:
        return sorted(set(self.progress_store.get_completed_pages(document_id, user_id)))

    def resume_page(self, document_id: str, user_id: str, total_pages: int) -> int:
        try:
            completed = self.progress_store.get_completed_pages(document_id, user_id)
        except PagemarkError as exc:
            logger.warning("Could not load progress for %s; starting at page 1: %s", document_id, exc)
            return FIRST_PAGE
        return resume_page(total_pages, completed)

    def toggle(self, document_id: str, user_id: str, page: int) -> PageProgress:
        if not document_id.strip():
            raise ValidationError("Document id is required")
        if page < FIRST_PAGE:
            raise ValidationError("Valid page number is required (must be >= 1)")
        progress = self.progress_store.toggle(document_id.strip(), user_id, page)
        logger.info(
            "Page %s of %s marked as %s by %s",
            page,
            document_id,
            "completed" if progress.completed else "incomplete",
            user_id,
        )
        return progress
