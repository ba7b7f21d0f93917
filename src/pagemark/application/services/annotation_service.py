from __future__ import annotations

import logging
from typing import Sequence

from pagemark.application.services.anchor_service import resolve_click_to_anchor
from pagemark.core.errors import PermissionDeniedError, ValidationError
from pagemark.core.ids import new_uuid
from pagemark.core.time import now_utc_iso
from pagemark.domain.models.annotation import (
    ANNOTATION_STATUSES,
    STATUS_PENDING,
    Anchor,
    Annotation,
    LineAnchor,
)
from pagemark.domain.models.page import Row

logger = logging.getLogger(__name__)


class AnnotationService:
    def __init__(self, annotation_store) -> None:
        self.annotation_store = annotation_store

    def list_page(self, document_id: str, page: int) -> list[Annotation]:
        return list(self.annotation_store.list(document_id, page))

    def list_document(self, document_id: str) -> list[Annotation]:
        return list(self.annotation_store.list(document_id))

    def get(self, annotation_id: str) -> Annotation:
        return self.annotation_store.get(annotation_id)

    def create_line_comment(
        self,
        document_id: str,
        page: int,
        line_number: int,
        comment: str,
        author_id: str,
    ) -> Annotation:
        annotation = self._build(document_id, page, line_number, comment, author_id, LineAnchor())
        return self._create(annotation)

    def create_click_comment(
        self,
        document_id: str,
        page: int,
        x: float,
        y: float,
        rows: Sequence[Row],
        comment: str,
        author_id: str,
        line_number: int | None = None,
    ) -> Annotation:
        click = resolve_click_to_anchor(x, y, rows)
        annotation = self._build(
            document_id,
            page,
            line_number if line_number is not None else click.line_number,
            comment,
            author_id,
            click.point,
        )
        return self._create(annotation)

    def update_status(self, annotation_id: str, status: str) -> Annotation:
        normalized = (status or "").strip().lower()
        if normalized not in ANNOTATION_STATUSES:
            raise ValidationError(
                f"Valid status is required ({', '.join(ANNOTATION_STATUSES)}), got: {status}"
            )
        updated = self.annotation_store.update_status(annotation_id, normalized)
        logger.info("Annotation %s status updated to %s", annotation_id, normalized)
        return updated

    def delete(self, annotation_id: str, requester_id: str, *, is_admin: bool = False) -> None:
        if not is_admin:
            existing = self.annotation_store.get(annotation_id)
            if existing.author_id != requester_id:
                logger.warning(
                    "%s attempted to delete annotation %s created by %s",
                    requester_id,
                    annotation_id,
                    existing.author_id,
                )
                raise PermissionDeniedError("You can only delete your own annotations")
        self.annotation_store.delete(annotation_id)
        logger.info("Annotation %s deleted by %s", annotation_id, requester_id)

    def delete_many(self, annotation_ids: Sequence[str]) -> int:
        ids = [i for i in dict.fromkeys(str(i).strip() for i in annotation_ids) if i]
        if not ids:
            raise ValidationError("At least one annotation id is required")
        deleted = self.annotation_store.delete_many(ids)
        logger.info("Deleted %s annotations", deleted)
        return deleted

    def _create(self, annotation: Annotation) -> Annotation:
        created = self.annotation_store.create(annotation)
        logger.info(
            "Annotation created by %s for %s, page %s, line %s",
            created.author_id,
            created.document_id,
            created.page,
            created.line_number,
        )
        return created

    @staticmethod
    def _build(
        document_id: str,
        page: int,
        line_number: int,
        comment: str,
        author_id: str,
        anchor: Anchor,
    ) -> Annotation:
        document_id = (document_id or "").strip()
        text = (comment or "").strip()
        author = (author_id or "").strip()

        if not document_id:
            raise ValidationError("Document id is required")
        if page < 1:
            raise ValidationError("Page number must be at least 1")
        if line_number < 1:
            raise ValidationError("Please enter a valid line number")
        if not text:
            raise ValidationError("Comment is required and cannot be empty")
        if not author:
            raise ValidationError("Author id is required")

        return Annotation(
            id=new_uuid(),
            document_id=document_id,
            page=page,
            line_number=line_number,
            comment=text,
            author_id=author,
            created_at=now_utc_iso(),
            status=STATUS_PENDING,
            anchor=anchor,
        )
