from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from pagemark.cli.commands import (
    comments_cmd,
    init_cmd,
    layout_cmd,
    progress_cmd,
    rows_cmd,
    web_cmd,
)
from pagemark.cli.context import CLIContext
from pagemark.core.config import load_paths, load_settings
from pagemark.core.errors import PagemarkError
from pagemark.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagemark",
        description="Pagemark document review CLI",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root to use for .pagemark data (default: current working directory)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    init_cmd.register(subparsers)
    rows_cmd.register(subparsers)
    layout_cmd.register(subparsers)
    comments_cmd.register(subparsers)
    progress_cmd.register(subparsers)
    web_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    paths = load_paths(args.project_root)
    ctx = CLIContext(paths=paths, settings=load_settings(), console=console)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except PagemarkError as exc:
        logger.error(str(exc))
        return 1
