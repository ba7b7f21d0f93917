from __future__ import annotations

from pagemark.application.services.project_service import ProjectService
from pagemark.cli.context import CLIContext
from pagemark.core.errors import ProjectNotInitializedError
from pagemark.infrastructure.stores import Stores, build_stores


def open_stores(ctx: CLIContext, *, user_id: str | None = None, admin: bool = False) -> Stores:
    """Annotation and progress stores for this invocation; local ones need `pagemark init`."""
    if not ctx.settings.api_url:
        project_service = ProjectService(ctx.paths)
        if not project_service.is_initialized():
            raise ProjectNotInitializedError(
                f"Project is not initialized. Run 'pagemark init' first in {ctx.paths.project_root}"
            )
        project_service.init_project()
    return build_stores(ctx.paths, ctx.settings, user_id=user_id, role="admin" if admin else None)
