from __future__ import annotations

import argparse
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from pagemark.application.services.annotation_service import AnnotationService
from pagemark.application.services.review_session_service import PageReviewSession
from pagemark.cli.commands._shared import open_stores
from pagemark.cli.context import CLIContext
from pagemark.domain.models.overlay import ViewState
from pagemark.infrastructure.renderer.render_dump import RenderDumpRenderer


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("layout", help="Lay out comment markers for a rendered page")
    parser.add_argument("--dump", required=True, help="JSON render dump produced by the page renderer")
    parser.add_argument("--document", required=True, help="Document id")
    parser.add_argument("--page", type=int, required=True)
    parser.add_argument("--user", default="", help="Reviewer id")
    parser.add_argument("--hover", help="Annotation id under the pointer")
    parser.add_argument("--selected", help="Annotation id selected in the list")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    stores = open_stores(ctx, user_id=args.user or None)
    session = PageReviewSession(
        document_id=args.document,
        user_id=args.user,
        renderer=RenderDumpRenderer.from_path(Path(args.dump)),
        annotation_service=AnnotationService(stores.annotations),
        layout_wait_seconds=ctx.settings.layout_wait_seconds,
    )
    session.open(args.page)
    session.refresh()
    overlay = session.overlay(ViewState(hovered_id=args.hover, selected_id=args.selected))

    ctx.console.print(
        Panel.fit(
            "\n".join(
                [
                    f"Page: {overlay.page}",
                    f"Rows: {len(overlay.rows)} ({overlay.state})",
                    f"Markers: {len(overlay.placements)}",
                    f"Unplaceable: {len(overlay.unplaceable_ids)}",
                ]
            ),
            title="Marker Layout",
        )
    )
    if overlay.message:
        ctx.console.print(f"[red]{overlay.message}[/red]")

    out = Table(title="Placements")
    out.add_column("Annotation")
    out.add_column("Kind")
    out.add_column("Line", justify="right")
    out.add_column("X %", justify="right")
    out.add_column("Y %", justify="right")
    out.add_column("Flags")
    for p in overlay.placements:
        flags = [name for name, on in (("active", p.active), ("overlap", p.fallback)) if on]
        out.add_row(p.annotation_id, p.kind, str(p.line_number), f"{p.x:.2f}", f"{p.y:.2f}", ",".join(flags))
    ctx.console.print(out)

    for annotation_id in overlay.unplaceable_ids:
        ctx.console.print(f"[yellow]No row for annotation[/yellow] {annotation_id}")
    return 0
