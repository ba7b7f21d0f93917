from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from pagemark.core.errors import ValidationError
from pagemark.domain.models.annotation import Annotation, PointAnchor
from pagemark.domain.models.page import Row

FALLBACK_LINE_NUMBER = 1


@dataclass(slots=True)
class LineGroup:
    line_number: int
    row: Row
    annotations: list[Annotation] = field(default_factory=list)


@dataclass(slots=True)
class AnchorResolution:
    points: list[Annotation] = field(default_factory=list)
    line_groups: list[LineGroup] = field(default_factory=list)
    unplaceable: list[Annotation] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ClickAnchor:
    line_number: int
    point: PointAnchor


class AnchorResolver:
    def resolve(
        self,
        rows: Sequence[Row],
        annotations: Iterable[Annotation],
        page: int | None = None,
    ) -> AnchorResolution:
        rows_by_index = {row.index: row for row in rows}
        resolution = AnchorResolution()
        groups: dict[int, LineGroup] = {}

        for annotation in annotations:
            if page is not None and annotation.page != page:
                continue
            if annotation.is_point_anchored:
                resolution.points.append(annotation)
                continue

            row = rows_by_index.get(annotation.line_number)
            if row is None:
                resolution.unplaceable.append(annotation)
                continue

            group = groups.get(annotation.line_number)
            if group is None:
                group = LineGroup(line_number=annotation.line_number, row=row)
                groups[annotation.line_number] = group
            group.annotations.append(annotation)

        resolution.line_groups = [groups[key] for key in sorted(groups)]
        return resolution


def nearest_line_number(relative_y: float, rows: Sequence[Row]) -> int | None:
    if not rows:
        return None
    best = min(rows, key=lambda row: (abs(row.relative_y - relative_y), row.index))
    return best.index


def resolve_click_to_anchor(x: float, y: float, rows: Sequence[Row]) -> ClickAnchor:
    """
    Turn a normalized click position into a persisted anchor.

    The point is kept as-is; the nearest row supplies the line number shown in
    lists and forms. With no rows yet, line 1 is used.
    """
    for name, value in (("x", x), ("y", y)):
        if not 0.0 <= value <= 1.0:
            raise ValidationError(f"Click {name} must be within [0, 1], got {value}")

    line_number = nearest_line_number(y, rows)
    return ClickAnchor(
        line_number=line_number if line_number is not None else FALLBACK_LINE_NUMBER,
        point=PointAnchor(x=x, y=y),
    )
