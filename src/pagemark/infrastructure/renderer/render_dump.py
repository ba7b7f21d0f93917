from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pagemark.core.errors import RenderError
from pagemark.domain.models.page import (
    FRAGMENT_KIND_CONTAINER,
    FRAGMENT_KIND_TEXT,
    ContentEndMarker,
    Fragment,
    PageItem,
    RenderedPage,
    RowBreakMarker,
)

logger = logging.getLogger(__name__)

ITEM_TYPE_FRAGMENT = "fragment"
ITEM_TYPE_BREAK = "break"
ITEM_TYPE_END = "end"


def parse_page_items(raw_items: list[dict[str, Any]]) -> tuple[PageItem, ...]:
    items: list[PageItem] = []
    for position, raw in enumerate(raw_items):
        item_type = str(raw.get("type") or ITEM_TYPE_FRAGMENT).strip().lower()
        if item_type == ITEM_TYPE_BREAK:
            items.append(RowBreakMarker())
        elif item_type == ITEM_TYPE_END:
            items.append(ContentEndMarker())
        elif item_type == ITEM_TYPE_FRAGMENT:
            kind = str(raw.get("kind") or FRAGMENT_KIND_TEXT).strip().lower()
            if kind not in {FRAGMENT_KIND_TEXT, FRAGMENT_KIND_CONTAINER}:
                raise RenderError(f"Unknown fragment kind at item {position}: {kind}")
            try:
                items.append(
                    Fragment(
                        top=float(raw["top"]),
                        left=float(raw.get("left", 0.0)),
                        width=float(raw.get("width", 0.0)),
                        height=float(raw.get("height", 0.0)),
                        kind=kind,
                        text=str(raw.get("text") or ""),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise RenderError(f"Malformed fragment at item {position}: {exc}") from exc
        else:
            raise RenderError(f"Unknown item type at item {position}: {item_type}")
    return tuple(items)


def parse_rendered_page(raw: dict[str, Any]) -> RenderedPage:
    try:
        page = int(raw["page"])
        width = float(raw.get("width", 0.0))
        height = float(raw["height"])
        top = float(raw.get("top", 0.0))
        left = float(raw.get("left", 0.0))
    except (KeyError, TypeError, ValueError) as exc:
        raise RenderError(f"Malformed page entry: {exc}") from exc
    return RenderedPage(
        page=page,
        width=width,
        height=height,
        top=top,
        left=left,
        items=parse_page_items(list(raw.get("items") or [])),
    )


class RenderDumpRenderer:
    """
    Renderer adapter over a JSON render dump.

    The dump is what a page renderer emits once layout has stabilized, one
    entry per page::

        {"pages": [{"page": 1, "width": 612, "height": 792, "top": 0, "left": 0,
                    "items": [{"type": "fragment", "top": 40, "left": 72,
                               "width": 200, "height": 12, "kind": "text"},
                              {"type": "break"}, {"type": "end"}]}]}

    Pages missing from the dump never stabilize, so ``wait_for_layout``
    returns ``None`` for them.
    """

    def __init__(self, pages: dict[int, RenderedPage], page_count: int | None = None) -> None:
        self._pages = dict(pages)
        self._page_count = page_count if page_count is not None else max(self._pages, default=0)

    @classmethod
    def from_path(cls, path: Path) -> RenderDumpRenderer:
        resolved = path.expanduser().resolve()
        if not resolved.exists() or not resolved.is_file():
            raise RenderError(f"Render dump not found: {resolved}")
        try:
            payload = json.loads(resolved.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise RenderError(f"Render dump is not valid JSON: {resolved}") from exc
        return cls.from_payload(payload)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RenderDumpRenderer:
        pages: dict[int, RenderedPage] = {}
        for raw in payload.get("pages") or []:
            rendered = parse_rendered_page(raw)
            pages[rendered.page] = rendered
        page_count = payload.get("pageCount")
        logger.debug("Loaded render dump with %s pages", len(pages))
        return cls(pages, page_count=int(page_count) if page_count is not None else None)

    def page_count(self) -> int:
        return self._page_count

    def wait_for_layout(self, page: int, timeout: float) -> RenderedPage | None:
        rendered = self._pages.get(page)
        if rendered is None:
            logger.info("Page %s has no rendered layout in dump (waited up to %ss)", page, timeout)
        return rendered
