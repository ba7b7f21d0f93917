from __future__ import annotations

import argparse
from pathlib import Path

from rich.table import Table

from pagemark.application.services.row_extraction_service import RowExtractor
from pagemark.cli.context import CLIContext
from pagemark.infrastructure.renderer.render_dump import RenderDumpRenderer


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("rows", help="Extract logical rows from a rendered page")
    parser.add_argument("--dump", required=True, help="JSON render dump produced by the page renderer")
    parser.add_argument("--page", type=int, required=True)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    renderer = RenderDumpRenderer.from_path(Path(args.dump))
    rendered = renderer.wait_for_layout(args.page, ctx.settings.layout_wait_seconds)
    extraction = RowExtractor().extract(rendered, page=args.page)

    if not extraction.rows:
        ctx.console.print(f"[yellow]No rows found on page {args.page}[/yellow] (point comments only)")
        return 0

    out = Table(title=f"Rows on page {extraction.page} ({len(extraction.rows)})")
    out.add_column("Row", justify="right")
    out.add_column("Relative Y", justify="right")
    for row in extraction.rows:
        out.add_row(str(row.index), f"{row.relative_y:.4f}")

    ctx.console.print(out)
    return 0
