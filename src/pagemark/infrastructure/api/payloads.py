from __future__ import annotations

from typing import Any

from pagemark.core.errors import ValidationError
from pagemark.domain.models.annotation import STATUS_PENDING, Annotation, LineAnchor, PointAnchor
from pagemark.domain.models.progress import PageProgress


def annotation_to_payload(annotation: Annotation) -> dict[str, Any]:
    anchor = annotation.anchor
    if isinstance(anchor, PointAnchor):
        anchor_payload: dict[str, Any] = {"type": "point", "x": anchor.x, "y": anchor.y}
    else:
        anchor_payload = {"type": "line"}
    return {
        "id": annotation.id,
        "documentId": annotation.document_id,
        "page": annotation.page,
        "lineNumber": annotation.line_number,
        "comment": annotation.comment,
        "authorId": annotation.author_id,
        "createdAt": annotation.created_at,
        "updatedAt": annotation.updated_at,
        "status": annotation.status,
        "anchor": anchor_payload,
    }


def annotation_from_payload(payload: dict[str, Any]) -> Annotation:
    try:
        anchor_raw = payload.get("anchor") or {"type": "line"}
        if anchor_raw.get("type") == "point":
            anchor: LineAnchor | PointAnchor = PointAnchor(x=float(anchor_raw["x"]), y=float(anchor_raw["y"]))
        else:
            anchor = LineAnchor()
        return Annotation(
            id=str(payload["id"]),
            document_id=str(payload["documentId"]),
            page=int(payload["page"]),
            line_number=int(payload["lineNumber"]),
            comment=str(payload["comment"]),
            author_id=str(payload["authorId"]),
            created_at=str(payload["createdAt"]),
            status=str(payload.get("status") or STATUS_PENDING),
            anchor=anchor,
            updated_at=payload.get("updatedAt"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed annotation payload: {exc}") from exc


def progress_to_payload(progress: PageProgress) -> dict[str, Any]:
    return {
        "documentId": progress.document_id,
        "userId": progress.user_id,
        "page": progress.page,
        "completed": progress.completed,
        "completedAt": progress.completed_at,
    }


def progress_from_payload(payload: dict[str, Any]) -> PageProgress:
    try:
        return PageProgress(
            document_id=str(payload["documentId"]),
            user_id=str(payload["userId"]),
            page=int(payload["page"]),
            completed=bool(payload["completed"]),
            completed_at=payload.get("completedAt"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed progress payload: {exc}") from exc
