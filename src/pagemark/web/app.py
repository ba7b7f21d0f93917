from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from pagemark.application.services.anchor_service import AnchorResolver, resolve_click_to_anchor
from pagemark.application.services.annotation_service import AnnotationService
from pagemark.application.services.marker_layout_service import MarkerLayoutEngine
from pagemark.application.services.progress_service import ProgressService
from pagemark.application.services.project_service import ProjectService
from pagemark.application.services.row_extraction_service import RowExtractor
from pagemark.core.config import AppPaths
from pagemark.core.errors import (
    AnnotationNotFoundError,
    PagemarkError,
    PermissionDeniedError,
)
from pagemark.domain.models.overlay import Placement, ViewState
from pagemark.domain.models.page import Row
from pagemark.infrastructure.api.payloads import annotation_to_payload, progress_to_payload
from pagemark.infrastructure.db.repos.annotation_repo import AnnotationRepo
from pagemark.infrastructure.db.repos.progress_repo import ProgressRepo
from pagemark.infrastructure.renderer.render_dump import parse_rendered_page

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RowPayload(_CamelModel):
    index: int
    relative_y: float = Field(alias="relativeY")


class AnchorPayload(_CamelModel):
    type: str = "line"
    x: float | None = None
    y: float | None = None


class SuggestionCreateRequest(_CamelModel):
    document_id: str = Field(alias="documentId")
    page: int
    line_number: int | None = Field(default=None, alias="lineNumber")
    comment: str
    author_id: str | None = Field(default=None, alias="authorId")
    anchor: AnchorPayload | None = None
    rows: list[RowPayload] | None = None


class StatusUpdateRequest(_CamelModel):
    status: str


class DeleteManyRequest(_CamelModel):
    ids: list[str]


class ProgressToggleRequest(_CamelModel):
    document_id: str = Field(alias="documentId")
    user_id: str | None = Field(default=None, alias="userId")
    page: int


class RenderedPageRequest(_CamelModel):
    page: int
    width: float = 0.0
    height: float
    top: float = 0.0
    left: float = 0.0
    items: list[dict[str, Any]] = Field(default_factory=list)


class LayoutRequest(_CamelModel):
    document_id: str = Field(alias="documentId")
    page: int
    rows: list[RowPayload] = Field(default_factory=list)
    hovered_id: str | None = Field(default=None, alias="hoveredId")
    selected_id: str | None = Field(default=None, alias="selectedId")


class ClickAnchorRequest(_CamelModel):
    x: float
    y: float
    rows: list[RowPayload] = Field(default_factory=list)


def _ok(data: dict[str, Any], message: str | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {"success": True, "data": data}
    if message:
        out["message"] = message
    return out


def _to_http(exc: PagemarkError) -> HTTPException:
    if isinstance(exc, AnnotationNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _rows(payload: list[RowPayload] | None) -> list[Row]:
    return [Row(index=r.index, relative_y=r.relative_y) for r in (payload or [])]


def _row_payload(row: Row) -> dict[str, Any]:
    return {"index": row.index, "relativeY": row.relative_y}


def _placement_payload(placement: Placement) -> dict[str, Any]:
    return {
        "annotationId": placement.annotation_id,
        "x": placement.x,
        "y": placement.y,
        "kind": placement.kind,
        "lineNumber": placement.line_number,
        "subRow": placement.sub_row,
        "column": placement.column,
        "fallback": placement.fallback,
        "active": placement.active,
    }


def _require_user(user_id: str | None) -> str:
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=401, detail="User id is required (X-User-Id header)")
    return user_id.strip()


def _require_admin(role: str | None) -> None:
    if (role or "").strip().lower() != ADMIN_ROLE:
        raise HTTPException(status_code=403, detail="Admin role required")


def create_app(paths: AppPaths) -> FastAPI:
    app = FastAPI(title="Pagemark", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    project_service = ProjectService(paths)
    project_service.init_project()
    logger.info("Serving review data from %s", paths.db_path)

    extractor = RowExtractor()
    resolver = AnchorResolver()
    layout_engine = MarkerLayoutEngine()

    def get_annotation_service() -> AnnotationService:
        return AnnotationService(AnnotationRepo(paths.db_path))

    def get_progress_service() -> ProgressService:
        return ProgressService(ProgressRepo(paths.db_path))

    @app.get("/api/health")
    def health() -> dict[str, Any]:
        return _ok({"status": "ok", "db_path": str(paths.db_path)})

    @app.get("/api/suggestions")
    def list_suggestions(
        document_id: str = Query(alias="documentId"),
        page: int | None = Query(default=None),
    ) -> dict[str, Any]:
        service = get_annotation_service()
        if page is None:
            annotations = service.list_document(document_id)
        else:
            annotations = service.list_page(document_id, page)
        return _ok(
            {
                "suggestions": [annotation_to_payload(a) for a in annotations],
                "count": len(annotations),
            }
        )

    @app.get("/api/suggestions/{annotation_id}")
    def get_suggestion(annotation_id: str) -> dict[str, Any]:
        try:
            annotation = get_annotation_service().get(annotation_id)
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"suggestion": annotation_to_payload(annotation)})

    @app.post("/api/suggestions", status_code=201)
    def create_suggestion(
        req: SuggestionCreateRequest,
        x_user_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        author_id = _require_user(req.author_id or x_user_id)
        service = get_annotation_service()
        anchor = req.anchor
        try:
            if anchor is not None and anchor.type == "point":
                if anchor.x is None or anchor.y is None:
                    raise HTTPException(status_code=400, detail="Point anchor requires x and y")
                annotation = service.create_click_comment(
                    req.document_id,
                    req.page,
                    anchor.x,
                    anchor.y,
                    _rows(req.rows),
                    req.comment,
                    author_id,
                    line_number=req.line_number,
                )
            else:
                if req.line_number is None:
                    raise HTTPException(status_code=400, detail="Line number is required")
                annotation = service.create_line_comment(
                    req.document_id,
                    req.page,
                    req.line_number,
                    req.comment,
                    author_id,
                )
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"suggestion": annotation_to_payload(annotation)}, "Suggestion created successfully")

    @app.patch("/api/suggestions/{annotation_id}/status")
    def update_suggestion_status(
        annotation_id: str,
        req: StatusUpdateRequest,
        x_user_role: str | None = Header(default=None),
    ) -> dict[str, Any]:
        _require_admin(x_user_role)
        try:
            annotation = get_annotation_service().update_status(annotation_id, req.status)
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"suggestion": annotation_to_payload(annotation)}, "Suggestion status updated successfully")

    @app.delete("/api/suggestions/{annotation_id}")
    def delete_suggestion(
        annotation_id: str,
        x_user_id: str | None = Header(default=None),
        x_user_role: str | None = Header(default=None),
    ) -> dict[str, Any]:
        requester = _require_user(x_user_id)
        is_admin = (x_user_role or "").strip().lower() == ADMIN_ROLE
        try:
            get_annotation_service().delete(annotation_id, requester, is_admin=is_admin)
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"id": annotation_id}, "Suggestion deleted successfully")

    @app.post("/api/suggestions/delete-multiple")
    def delete_suggestions(
        req: DeleteManyRequest,
        x_user_role: str | None = Header(default=None),
    ) -> dict[str, Any]:
        _require_admin(x_user_role)
        try:
            deleted = get_annotation_service().delete_many(req.ids)
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"deletedCount": deleted})

    @app.post("/api/progress/toggle")
    def toggle_progress(
        req: ProgressToggleRequest,
        x_user_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        user_id = _require_user(req.user_id or x_user_id)
        try:
            progress = get_progress_service().toggle(req.document_id, user_id, req.page)
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        state = "completed" if progress.completed else "incomplete"
        return _ok({"progress": progress_to_payload(progress)}, f"Page {req.page} marked as {state}")

    @app.get("/api/progress/user")
    def user_progress(
        document_id: str = Query(alias="documentId"),
        user_id: str | None = Query(default=None, alias="userId"),
        x_user_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        uid = _require_user(user_id or x_user_id)
        completed = get_progress_service().completed_pages(document_id, uid)
        return _ok(
            {
                "documentId": document_id,
                "userId": uid,
                "completedPages": completed,
                "completedCount": len(completed),
            }
        )

    @app.get("/api/progress/resume")
    def resume_progress(
        document_id: str = Query(alias="documentId"),
        total_pages: int = Query(alias="totalPages", ge=0),
        user_id: str | None = Query(default=None, alias="userId"),
        x_user_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        uid = _require_user(user_id or x_user_id)
        page = get_progress_service().resume_page(document_id, uid, total_pages)
        return _ok({"documentId": document_id, "userId": uid, "page": page})

    @app.post("/api/pages/rows")
    def extract_page_rows(req: RenderedPageRequest) -> dict[str, Any]:
        try:
            rendered = parse_rendered_page(req.model_dump())
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        extraction = extractor.extract(rendered)
        return _ok(
            {
                "page": extraction.page,
                "state": extraction.state,
                "rows": [_row_payload(r) for r in extraction.rows],
            }
        )

    @app.post("/api/pages/layout")
    def layout_page(req: LayoutRequest) -> dict[str, Any]:
        annotations = get_annotation_service().list_page(req.document_id, req.page)
        resolution = resolver.resolve(_rows(req.rows), annotations, page=req.page)
        placements = layout_engine.layout(
            resolution,
            ViewState(hovered_id=req.hovered_id, selected_id=req.selected_id),
        )
        return _ok(
            {
                "page": req.page,
                "placements": [_placement_payload(p) for p in placements],
                "unplaceableIds": [a.id for a in resolution.unplaceable],
            }
        )

    @app.post("/api/pages/click-anchor")
    def click_anchor(req: ClickAnchorRequest) -> dict[str, Any]:
        try:
            click = resolve_click_to_anchor(req.x, req.y, _rows(req.rows))
        except PagemarkError as exc:
            raise _to_http(exc) from exc
        return _ok({"lineNumber": click.line_number, "point": {"x": click.point.x, "y": click.point.y}})

    return app
