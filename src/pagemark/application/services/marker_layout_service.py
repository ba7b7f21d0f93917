from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from pagemark.application.services.anchor_service import AnchorResolution, AnchorResolver
from pagemark.domain.models.annotation import Annotation, PointAnchor
from pagemark.domain.models.overlay import (
    MARKER_KIND_LINE,
    MARKER_KIND_POINT,
    Placement,
    ViewState,
)
from pagemark.domain.models.page import Row

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LayoutConfig:
    """Marker geometry, in percent of the page box."""

    start_x: float = 8.0
    dot_spacing: float = 8.0
    max_x: float = 95.0
    min_distance: float = 1.5
    row_height: float = 20.0
    max_attempts: int = 100

    @property
    def markers_per_row(self) -> int:
        return max(1, int((self.max_x - self.start_x) // self.dot_spacing))

    @property
    def sub_row_step(self) -> float:
        return self.row_height / 2


@dataclass(slots=True)
class _Slot:
    x: float
    y: float
    sub_row: int
    column: int
    fallback: bool = False


class MarkerLayoutEngine:
    """
    Places one marker per annotation without overlap.

    Point markers are pinned to their stored click position and seed the
    occupied set. Line markers are packed left-to-right along their row,
    wrapping onto half-row sub-rows when they run past the right margin. The
    result depends only on the resolution and the config, never on view state.
    """

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def layout(
        self,
        resolution: AnchorResolution,
        view_state: ViewState | None = None,
    ) -> list[Placement]:
        active_id = view_state.active_id if view_state is not None else None
        occupied: list[tuple[float, float]] = []
        placements: list[Placement] = []

        for annotation in resolution.points:
            anchor = annotation.anchor
            if not isinstance(anchor, PointAnchor):
                raise TypeError(f"Annotation {annotation.id} in point markers has no point anchor")
            x = anchor.x * 100
            y = anchor.y * 100
            occupied.append((x, y))
            placements.append(
                Placement(
                    annotation_id=annotation.id,
                    x=x,
                    y=y,
                    kind=MARKER_KIND_POINT,
                    line_number=annotation.line_number,
                    active=annotation.id == active_id,
                )
            )

        for group in resolution.line_groups:
            base_y = group.row.relative_y * 100
            for position, annotation in enumerate(group.annotations):
                slot = self._find_slot(position, base_y, occupied)
                if slot.fallback:
                    logger.debug(
                        "No free marker slot for annotation %s on line %s; overlapping",
                        annotation.id,
                        group.line_number,
                    )
                occupied.append((slot.x, slot.y))
                placements.append(
                    Placement(
                        annotation_id=annotation.id,
                        x=slot.x,
                        y=slot.y,
                        kind=MARKER_KIND_LINE,
                        line_number=group.line_number,
                        sub_row=slot.sub_row,
                        column=slot.column,
                        fallback=slot.fallback,
                        active=annotation.id == active_id,
                    )
                )

        return placements

    def _find_slot(
        self,
        position: int,
        base_y: float,
        occupied: Sequence[tuple[float, float]],
    ) -> _Slot:
        cfg = self.config
        sub_row, column = divmod(position, cfg.markers_per_row)
        slot = self._slot(base_y, sub_row, column)
        first = _Slot(x=slot.x, y=slot.y, sub_row=sub_row, column=column, fallback=True)

        attempts = 0
        while self._collides(slot.x, slot.y, occupied):
            if attempts >= cfg.max_attempts:
                return first
            attempts += 1
            column += 1
            if cfg.start_x + column * cfg.dot_spacing > cfg.max_x:
                sub_row += 1
                column = 0
            slot = self._slot(base_y, sub_row, column)
        return slot

    def _slot(self, base_y: float, sub_row: int, column: int) -> _Slot:
        cfg = self.config
        return _Slot(
            x=cfg.start_x + column * cfg.dot_spacing,
            y=base_y + sub_row * cfg.sub_row_step,
            sub_row=sub_row,
            column=column,
        )

    def _collides(self, x: float, y: float, occupied: Iterable[tuple[float, float]]) -> bool:
        limit = self.config.min_distance
        return any(abs(ox - x) < limit and abs(oy - y) < limit for ox, oy in occupied)


def layout_markers(
    page: int,
    annotations: Iterable[Annotation],
    rows: Sequence[Row],
    view_state: ViewState | None = None,
    config: LayoutConfig | None = None,
) -> list[Placement]:
    resolution = AnchorResolver().resolve(rows, annotations, page=page)
    return MarkerLayoutEngine(config).layout(resolution, view_state)
