from __future__ import annotations

import argparse
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from pagemark.application.services.annotation_service import AnnotationService
from pagemark.application.services.row_extraction_service import RowExtractor
from pagemark.cli.commands._shared import open_stores
from pagemark.cli.context import CLIContext
from pagemark.core.errors import ValidationError
from pagemark.domain.models.annotation import ANNOTATION_STATUSES, Annotation, PointAnchor
from pagemark.domain.models.page import Row
from pagemark.infrastructure.renderer.render_dump import RenderDumpRenderer


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("comments", help="Create, list and manage review comments")
    comments_subparsers = parser.add_subparsers(dest="comments_command", required=True)

    add_parser = comments_subparsers.add_parser("add", help="Add a comment by line number or click position")
    add_parser.add_argument("--document", required=True)
    add_parser.add_argument("--page", type=int, required=True)
    add_parser.add_argument("--user", required=True)
    add_parser.add_argument("--comment", required=True)
    add_parser.add_argument("--line", type=int, help="Line number (line-anchored comment)")
    add_parser.add_argument("--x", type=float, help="Normalized click x in [0, 1]")
    add_parser.add_argument("--y", type=float, help="Normalized click y in [0, 1]")
    add_parser.add_argument("--dump", help="Render dump used to find the nearest line for a click")
    add_parser.set_defaults(handler=run_add)

    list_parser = comments_subparsers.add_parser("list", help="List comments for a document")
    list_parser.add_argument("--document", required=True)
    list_parser.add_argument("--page", type=int)
    list_parser.set_defaults(handler=run_list)

    status_parser = comments_subparsers.add_parser("status", help="Set a comment's review status (admin)")
    status_parser.add_argument("--id", required=True)
    status_parser.add_argument("--status", required=True, choices=list(ANNOTATION_STATUSES))
    status_parser.set_defaults(handler=run_status)

    delete_parser = comments_subparsers.add_parser("delete", help="Delete a comment")
    delete_parser.add_argument("--id", required=True)
    delete_parser.add_argument("--user", required=True)
    delete_parser.add_argument("--admin", action="store_true", help="Delete regardless of author")
    delete_parser.set_defaults(handler=run_delete)

    bulk_parser = comments_subparsers.add_parser("delete-many", help="Delete several comments (admin)")
    bulk_parser.add_argument("ids", nargs="+")
    bulk_parser.set_defaults(handler=run_delete_many)


def _rows_from_dump(dump: str | None, page: int, wait_seconds: float) -> list[Row]:
    if not dump:
        return []
    renderer = RenderDumpRenderer.from_path(Path(dump))
    return list(RowExtractor().extract(renderer.wait_for_layout(page, wait_seconds), page=page).rows)


def _describe(annotation: Annotation) -> str:
    anchor = annotation.anchor
    if isinstance(anchor, PointAnchor):
        return f"point ({anchor.x:.3f}, {anchor.y:.3f})"
    return "line"


def run_add(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = AnnotationService(open_stores(ctx, user_id=args.user).annotations)

    if args.x is not None or args.y is not None:
        if args.x is None or args.y is None:
            raise ValidationError("Click comments need both --x and --y")
        rows = _rows_from_dump(args.dump, args.page, ctx.settings.layout_wait_seconds)
        annotation = service.create_click_comment(
            args.document,
            args.page,
            args.x,
            args.y,
            rows,
            args.comment,
            args.user,
            line_number=args.line,
        )
    else:
        if args.line is None:
            raise ValidationError("Provide --line, or --x and --y for a click comment")
        annotation = service.create_line_comment(args.document, args.page, args.line, args.comment, args.user)

    ctx.console.print(
        Panel.fit(
            "\n".join(
                [
                    f"ID: {annotation.id}",
                    f"Page: {annotation.page}",
                    f"Line: {annotation.line_number}",
                    f"Anchor: {_describe(annotation)}",
                ]
            ),
            title="Comment Added",
        )
    )
    return 0


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = AnnotationService(open_stores(ctx).annotations)
    if args.page is None:
        annotations = service.list_document(args.document)
    else:
        annotations = service.list_page(args.document, args.page)

    out = Table(title=f"Comments ({len(annotations)})")
    out.add_column("ID")
    out.add_column("Page", justify="right")
    out.add_column("Line", justify="right")
    out.add_column("Anchor")
    out.add_column("Status")
    out.add_column("Author")
    out.add_column("Comment", overflow="fold")

    for a in annotations:
        out.add_row(a.id, str(a.page), str(a.line_number), _describe(a), a.status, a.author_id, a.comment)

    ctx.console.print(out)
    return 0


def run_status(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = AnnotationService(open_stores(ctx, admin=True).annotations)
    annotation = service.update_status(args.id, args.status)
    ctx.console.print(f"[green]Status updated[/green] {annotation.id} -> {annotation.status}")
    return 0


def run_delete(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = AnnotationService(open_stores(ctx, user_id=args.user, admin=args.admin).annotations)
    service.delete(args.id, args.user, is_admin=args.admin)
    ctx.console.print(f"[green]Deleted[/green] {args.id}")
    return 0


def run_delete_many(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = AnnotationService(open_stores(ctx, admin=True).annotations)
    deleted = service.delete_many(args.ids)
    ctx.console.print(f"[green]Deleted {deleted} comment(s)[/green]")
    return 0
