from __future__ import annotations

import argparse
from pathlib import Path

from pagemark.application.services.progress_service import ProgressService
from pagemark.cli.commands._shared import open_stores
from pagemark.cli.context import CLIContext
from pagemark.core.errors import ValidationError
from pagemark.infrastructure.renderer.render_dump import RenderDumpRenderer


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("progress", help="Per-page review completion")
    progress_subparsers = parser.add_subparsers(dest="progress_command", required=True)

    toggle_parser = progress_subparsers.add_parser("toggle", help="Toggle completion of a page")
    toggle_parser.add_argument("--document", required=True)
    toggle_parser.add_argument("--user", required=True)
    toggle_parser.add_argument("--page", type=int, required=True)
    toggle_parser.set_defaults(handler=run_toggle)

    resume_parser = progress_subparsers.add_parser("resume", help="First page still to review")
    resume_parser.add_argument("--document", required=True)
    resume_parser.add_argument("--user", required=True)
    resume_parser.add_argument("--pages", type=int, help="Total page count of the document")
    resume_parser.add_argument("--dump", help="Render dump to read the page count from")
    resume_parser.set_defaults(handler=run_resume)


def run_toggle(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = ProgressService(open_stores(ctx, user_id=args.user).progress)
    progress = service.toggle(args.document, args.user, args.page)
    state = "[green]completed[/green]" if progress.completed else "[yellow]incomplete[/yellow]"
    ctx.console.print(f"Page {progress.page} marked as {state}")
    return 0


def run_resume(args: argparse.Namespace, ctx: CLIContext) -> int:
    if args.pages is not None:
        total_pages = args.pages
    elif args.dump:
        total_pages = RenderDumpRenderer.from_path(Path(args.dump)).page_count()
    else:
        raise ValidationError("Provide --pages or --dump to know the document's page count")

    service = ProgressService(open_stores(ctx, user_id=args.user).progress)
    page = service.resume_page(args.document, args.user, total_pages)
    ctx.console.print(f"Resume review at page [bold]{page}[/bold] of {total_pages}")
    return 0
