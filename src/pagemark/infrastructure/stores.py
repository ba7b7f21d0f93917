from __future__ import annotations

import logging
from dataclasses import dataclass

from pagemark.core.config import AppPaths, Settings
from pagemark.infrastructure.api.annotation_client import AnnotationApiClient
from pagemark.infrastructure.api.progress_client import ProgressApiClient
from pagemark.infrastructure.api.rest_client import JsonApiClient
from pagemark.infrastructure.db.repos.annotation_repo import AnnotationRepo
from pagemark.infrastructure.db.repos.progress_repo import ProgressRepo

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Stores:
    annotations: AnnotationApiClient | AnnotationRepo
    progress: ProgressApiClient | ProgressRepo
    backend: str


def build_stores(
    paths: AppPaths,
    settings: Settings,
    *,
    user_id: str | None = None,
    role: str | None = None,
) -> Stores:
    """Pick the REST backend when an API URL is configured, else the local database."""
    if settings.api_url:
        headers: dict[str, str] = {}
        if user_id:
            headers["X-User-Id"] = user_id
        if role:
            headers["X-User-Role"] = role
        client = JsonApiClient(settings.api_url, timeout=settings.api_timeout_seconds, headers=headers)
        logger.debug("Using review backend at %s", settings.api_url)
        return Stores(
            annotations=AnnotationApiClient(client),
            progress=ProgressApiClient(client),
            backend="rest",
        )
    return Stores(
        annotations=AnnotationRepo(paths.db_path),
        progress=ProgressRepo(paths.db_path),
        backend="sqlite",
    )
