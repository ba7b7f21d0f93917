from __future__ import annotations

from dataclasses import dataclass

from pagemark.domain.models.page import Row

MARKER_KIND_POINT = "point"
MARKER_KIND_LINE = "line"


@dataclass(frozen=True, slots=True)
class ViewState:
    hovered_id: str | None = None
    selected_id: str | None = None

    @property
    def active_id(self) -> str | None:
        return self.hovered_id or self.selected_id


@dataclass(frozen=True, slots=True)
class Placement:
    """Final marker position; x and y are percentages of the page box."""

    annotation_id: str
    x: float
    y: float
    kind: str
    line_number: int
    sub_row: int = 0
    column: int = 0
    fallback: bool = False
    active: bool = False


@dataclass(frozen=True, slots=True)
class PageOverlay:
    page: int
    state: str
    rows: tuple[Row, ...]
    placements: tuple[Placement, ...]
    unplaceable_ids: tuple[str, ...]
    message: str | None = None
