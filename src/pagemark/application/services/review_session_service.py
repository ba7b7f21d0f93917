from __future__ import annotations

import logging

from pagemark.application.services.anchor_service import AnchorResolver
from pagemark.application.services.annotation_service import AnnotationService
from pagemark.application.services.marker_layout_service import MarkerLayoutEngine
from pagemark.application.services.progress_service import FIRST_PAGE, ProgressService
from pagemark.application.services.row_extraction_service import RowExtractor
from pagemark.core.config import DEFAULT_LAYOUT_WAIT_SECONDS
from pagemark.core.errors import PagemarkError, ProgressError, ValidationError
from pagemark.domain.models.annotation import Annotation
from pagemark.domain.models.overlay import PageOverlay, ViewState
from pagemark.domain.models.page import (
    EXTRACTION_STATE_EXTRACTING,
    RenderedPage,
    Row,
    RowExtraction,
)
from pagemark.domain.models.progress import PageProgress

logger = logging.getLogger(__name__)


class PageReviewSession:
    """
    Coordinates one reviewer's pass over one document.

    Owns the only mutable view state: the current page, its rows and its
    annotations. Each navigation starts a new generation; renderer results
    tagged with an older generation are dropped. Rows and annotation lists are
    always replaced as a whole.
    """

    def __init__(
        self,
        document_id: str,
        user_id: str,
        renderer,
        annotation_service: AnnotationService,
        progress_service: ProgressService | None = None,
        *,
        extractor: RowExtractor | None = None,
        resolver: AnchorResolver | None = None,
        layout_engine: MarkerLayoutEngine | None = None,
        layout_wait_seconds: float = DEFAULT_LAYOUT_WAIT_SECONDS,
    ) -> None:
        self.document_id = document_id
        self.user_id = user_id
        self.renderer = renderer
        self.annotation_service = annotation_service
        self.progress_service = progress_service
        self.extractor = extractor or RowExtractor()
        self.resolver = resolver or AnchorResolver()
        self.layout_engine = layout_engine or MarkerLayoutEngine()
        self.layout_wait_seconds = layout_wait_seconds

        self.page_count = 0
        self.page = FIRST_PAGE
        self.generation = 0
        self.message: str | None = None
        self._extraction = RowExtraction(page=FIRST_PAGE, state=EXTRACTION_STATE_EXTRACTING)
        self._annotations: tuple[Annotation, ...] = ()

    @property
    def extraction(self) -> RowExtraction:
        return self._extraction

    @property
    def rows(self) -> tuple[Row, ...]:
        return self._extraction.rows

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return self._annotations

    def open(self, page: int | None = None) -> int:
        """Start at ``page`` when given, else resume at the first incomplete page."""
        self.page_count = max(0, int(self.renderer.page_count()))
        if page is not None:
            if not FIRST_PAGE <= page <= max(self.page_count, FIRST_PAGE):
                raise ValidationError(f"Page {page} is outside the document (1-{self.page_count})")
            start = page
        elif self.progress_service is not None and self.page_count:
            start = self.progress_service.resume_page(self.document_id, self.user_id, self.page_count)
        else:
            start = FIRST_PAGE
        self.navigate(start)
        return self.page

    def navigate(self, page: int) -> int:
        upper = self.page_count or FIRST_PAGE
        self.page = max(FIRST_PAGE, min(upper, page))
        self.generation += 1
        self._extraction = RowExtraction(page=self.page, state=EXTRACTION_STATE_EXTRACTING)
        self.reload_annotations()
        return self.generation

    def next_page(self) -> int:
        return self.navigate(self.page + 1)

    def previous_page(self) -> int:
        return self.navigate(self.page - 1)

    def refresh(self) -> RowExtraction:
        generation = self.generation
        page = self.page
        rendered = self.renderer.wait_for_layout(page, self.layout_wait_seconds)
        self.accept_render(generation, page, rendered)
        return self._extraction

    def accept_render(self, generation: int, page: int, rendered: RenderedPage | None) -> bool:
        if generation != self.generation or page != self.page:
            logger.debug(
                "Discarding stale layout for page %s (generation %s, current %s)",
                page,
                generation,
                self.generation,
            )
            return False
        self._extraction = self.extractor.extract(rendered, page=page)
        return True

    def reload_annotations(self) -> bool:
        try:
            annotations = self.annotation_service.list_page(self.document_id, self.page)
        except PagemarkError as exc:
            self.message = f"Failed to fetch annotations: {exc}"
            logger.warning("Keeping last annotation list for page %s: %s", self.page, exc)
            return False
        self._annotations = tuple(a for a in annotations if a.page == self.page)
        self.message = None
        return True

    def overlay(self, view_state: ViewState | None = None) -> PageOverlay:
        extraction = self._extraction
        if extraction.is_extracting:
            return PageOverlay(
                page=self.page,
                state=extraction.state,
                rows=(),
                placements=(),
                unplaceable_ids=(),
                message=self.message,
            )

        resolution = self.resolver.resolve(extraction.rows, self._annotations, page=self.page)
        placements = self.layout_engine.layout(resolution, view_state)
        return PageOverlay(
            page=self.page,
            state=extraction.state,
            rows=extraction.rows,
            placements=tuple(placements),
            unplaceable_ids=tuple(a.id for a in resolution.unplaceable),
            message=self.message,
        )

    def submit_line_comment(self, line_number: int, comment: str) -> Annotation | None:
        try:
            created = self.annotation_service.create_line_comment(
                self.document_id, self.page, line_number, comment, self.user_id
            )
        except PagemarkError as exc:
            self.message = f"Failed to create annotation: {exc}"
            return None
        self.reload_annotations()
        return created

    def submit_click_comment(
        self,
        x: float,
        y: float,
        comment: str,
        line_number: int | None = None,
    ) -> Annotation | None:
        try:
            created = self.annotation_service.create_click_comment(
                self.document_id,
                self.page,
                x,
                y,
                self.rows,
                comment,
                self.user_id,
                line_number=line_number,
            )
        except PagemarkError as exc:
            self.message = f"Failed to create annotation: {exc}"
            return None
        self.reload_annotations()
        return created

    def toggle_page_complete(self) -> PageProgress:
        if self.progress_service is None:
            raise ProgressError("Progress tracking is not configured for this session")
        return self.progress_service.toggle(self.document_id, self.user_id, self.page)
