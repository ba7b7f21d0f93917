from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from pagemark.domain.models.page import (
    EXTRACTION_STATE_EMPTY,
    EXTRACTION_STATE_READY,
    FRAGMENT_KIND_CONTAINER,
    ContentEndMarker,
    Fragment,
    PageItem,
    RenderedPage,
    Row,
    RowBreakMarker,
    RowExtraction,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _RowCandidate:
    fragments: list[Fragment] = field(default_factory=list)

    def is_skippable(self) -> bool:
        if not self.fragments:
            return True
        # Single text fragment with no container around it: stray glyph, not a line.
        if len(self.fragments) == 1:
            return self.fragments[0].kind != FRAGMENT_KIND_CONTAINER
        return False


class RowExtractor:
    """
    Segments a rendered page's fragment/marker stream into logical rows.

    Each row break closes the run of fragments collected since the previous
    break; the run left open when content ends is one more candidate. Rows are
    positioned by the top of their first fragment, sorted top-down, and
    renumbered 1..N on every pass, so the same stream always yields the same
    rows.
    """

    def extract(self, rendered: RenderedPage | None, page: int | None = None) -> RowExtraction:
        if rendered is None:
            target_page = page if page is not None else 0
            logger.info("No stabilized layout for page %s; continuing without rows", target_page)
            return RowExtraction(page=target_page, state=EXTRACTION_STATE_EMPTY, rows=())

        rows = self.extract_rows(rendered.items, rendered.height, rendered.top)
        state = EXTRACTION_STATE_READY if rows else EXTRACTION_STATE_EMPTY
        if not rows:
            logger.info("No rows found on page %s", rendered.page)
        return RowExtraction(page=rendered.page, state=state, rows=tuple(rows))

    def extract_rows(
        self,
        items: Iterable[PageItem],
        page_height: float,
        page_top: float = 0.0,
    ) -> list[Row]:
        if page_height <= 0:
            logger.warning("Cannot extract rows from a page with height %s", page_height)
            return []

        candidates = self._split_runs(items)
        positions: list[float] = []
        for candidate in candidates:
            if candidate.is_skippable():
                continue
            first = candidate.fragments[0]
            positions.append(_clamp_unit((first.top - page_top) / page_height))

        # sorted() is stable, so equal positions keep emission order.
        ordered = sorted(positions)
        rows = [Row(index=i, relative_y=y) for i, y in enumerate(ordered, start=1)]
        logger.debug(
            "Extracted %s rows from %s candidate runs",
            len(rows),
            len(candidates),
        )
        return rows

    @staticmethod
    def _split_runs(items: Iterable[PageItem]) -> list[_RowCandidate]:
        runs: list[_RowCandidate] = []
        current = _RowCandidate()
        ended = False

        for item in items:
            if isinstance(item, ContentEndMarker):
                ended = True
                break
            if isinstance(item, RowBreakMarker):
                runs.append(current)
                current = _RowCandidate()
                continue
            if isinstance(item, Fragment):
                current.fragments.append(item)
                continue
            raise TypeError(f"Unsupported page item: {type(item).__name__}")

        if not ended:
            logger.debug("Fragment stream had no content-end marker; closing final run at end of stream")
        runs.append(current)
        return runs


def extract_rows(
    items: Iterable[PageItem],
    page_height: float,
    page_top: float = 0.0,
) -> list[Row]:
    return RowExtractor().extract_rows(items, page_height, page_top)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))
