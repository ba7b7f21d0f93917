from __future__ import annotations

from dataclasses import dataclass
from typing import Union

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in_progress"
STATUS_DONE = "done"
STATUS_IRRELEVANT = "irrelevant"

ANNOTATION_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_DONE, STATUS_IRRELEVANT)


@dataclass(frozen=True, slots=True)
class LineAnchor:
    """Binds an annotation to whichever row currently carries its line number."""


@dataclass(frozen=True, slots=True)
class PointAnchor:
    """Exact click position, normalized to the page box at creation time."""

    x: float
    y: float


Anchor = Union[LineAnchor, PointAnchor]


@dataclass(frozen=True, slots=True)
class Annotation:
    id: str
    document_id: str
    page: int
    line_number: int
    comment: str
    author_id: str
    created_at: str
    status: str
    anchor: Anchor
    updated_at: str | None = None

    @property
    def is_point_anchored(self) -> bool:
        return isinstance(self.anchor, PointAnchor)
