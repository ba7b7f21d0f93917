from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

FRAGMENT_KIND_TEXT = "text"
FRAGMENT_KIND_CONTAINER = "container"

EXTRACTION_STATE_EXTRACTING = "extracting"
EXTRACTION_STATE_READY = "ready"
EXTRACTION_STATE_EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class Fragment:
    """One positioned unit of rendered content, in page-pixel space."""

    top: float
    left: float
    width: float
    height: float
    kind: str = FRAGMENT_KIND_TEXT
    text: str = ""


@dataclass(frozen=True, slots=True)
class RowBreakMarker:
    pass


@dataclass(frozen=True, slots=True)
class ContentEndMarker:
    pass


PageItem = Union[Fragment, RowBreakMarker, ContentEndMarker]


@dataclass(frozen=True, slots=True)
class RenderedPage:
    page: int
    width: float
    height: float
    top: float = 0.0
    left: float = 0.0
    items: tuple[PageItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Row:
    index: int
    relative_y: float


@dataclass(frozen=True, slots=True)
class RowExtraction:
    page: int
    state: str
    rows: tuple[Row, ...] = ()

    @property
    def is_extracting(self) -> bool:
        return self.state == EXTRACTION_STATE_EXTRACTING
