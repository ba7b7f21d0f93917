from __future__ import annotations

from typing import Any

from pagemark.core.errors import StoreUnavailableError, ValidationError
from pagemark.domain.models.annotation import Annotation
from pagemark.infrastructure.api.payloads import annotation_from_payload, annotation_to_payload
from pagemark.infrastructure.api.rest_client import JsonApiClient


def _read_annotation(data: dict[str, Any]) -> Annotation:
    raw = data.get("suggestion")
    if not isinstance(raw, dict):
        raise StoreUnavailableError("Review backend response has no suggestion record")
    try:
        return annotation_from_payload(raw)
    except ValidationError as exc:
        raise StoreUnavailableError(str(exc)) from exc


class AnnotationApiClient:
    """Annotation store backed by the review backend's /api/suggestions routes."""

    def __init__(self, client: JsonApiClient) -> None:
        self.client = client

    def get(self, annotation_id: str) -> Annotation:
        return _read_annotation(self.client.request("GET", f"/api/suggestions/{annotation_id}"))

    def list(self, document_id: str, page: int | None = None) -> list[Annotation]:
        data = self.client.request(
            "GET",
            "/api/suggestions",
            params={"documentId": document_id, "page": page},
        )
        items = data.get("suggestions", [])
        if not isinstance(items, list):
            raise StoreUnavailableError("Review backend returned a malformed suggestion list")
        try:
            return [annotation_from_payload(item) for item in items]
        except ValidationError as exc:
            raise StoreUnavailableError(str(exc)) from exc

    def create(self, annotation: Annotation) -> Annotation:
        return _read_annotation(
            self.client.request("POST", "/api/suggestions", body=annotation_to_payload(annotation))
        )

    def update_status(self, annotation_id: str, status: str) -> Annotation:
        return _read_annotation(
            self.client.request(
                "PATCH",
                f"/api/suggestions/{annotation_id}/status",
                body={"status": status},
            )
        )

    def delete(self, annotation_id: str) -> None:
        self.client.request("DELETE", f"/api/suggestions/{annotation_id}")

    def delete_many(self, annotation_ids: list[str]) -> int:
        data = self.client.request(
            "POST",
            "/api/suggestions/delete-multiple",
            body={"ids": list(annotation_ids)},
        )
        try:
            return int(data.get("deletedCount", 0))
        except (TypeError, ValueError) as exc:
            raise StoreUnavailableError(f"Review backend returned a malformed deleted count: {exc}") from exc
