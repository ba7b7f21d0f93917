from __future__ import annotations

import argparse

from rich.panel import Panel

from pagemark.application.services.project_service import ProjectService
from pagemark.cli.context import CLIContext


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("init", help="Create the local review database")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = ProjectService(ctx.paths)
    existed = service.is_initialized()
    result = service.init_project()

    lines = [f"Created: {path}" for path in result.paths_created]
    lines.append(f"Database: {result.db_path}")
    lines.append("Schema: up to date" if existed else "Schema: created")
    if ctx.settings.api_url:
        lines.append(f"Comments and progress use the review backend at {ctx.settings.api_url}")
    ctx.console.print(Panel.fit("\n".join(lines), title="Pagemark Initialized"))
    return 0
