from __future__ import annotations

from pagemark.core.errors import StoreUnavailableError, ValidationError
from pagemark.domain.models.progress import PageProgress
from pagemark.infrastructure.api.payloads import progress_from_payload
from pagemark.infrastructure.api.rest_client import JsonApiClient


class ProgressApiClient:
    def __init__(self, client: JsonApiClient) -> None:
        self.client = client

    def get_completed_pages(self, document_id: str, user_id: str) -> list[int]:
        data = self.client.request(
            "GET",
            "/api/progress/user",
            params={"documentId": document_id, "userId": user_id},
        )
        try:
            return [int(page) for page in data.get("completedPages", [])]
        except (TypeError, ValueError) as exc:
            raise StoreUnavailableError(f"Review backend returned malformed progress: {exc}") from exc

    def toggle(self, document_id: str, user_id: str, page: int) -> PageProgress:
        data = self.client.request(
            "POST",
            "/api/progress/toggle",
            body={"documentId": document_id, "userId": user_id, "page": page},
        )
        raw = data.get("progress")
        if not isinstance(raw, dict):
            raise StoreUnavailableError("Review backend response has no progress record")
        try:
            return progress_from_payload(raw)
        except ValidationError as exc:
            raise StoreUnavailableError(str(exc)) from exc
