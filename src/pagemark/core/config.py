from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppPaths:
    project_root: Path
    pagemark_dir: Path
    db_path: Path


@dataclass(frozen=True)
class Settings:
    api_url: str | None
    api_timeout_seconds: float
    layout_wait_seconds: float


DEFAULT_PAGEMARK_DIRNAME = ".pagemark"
DEFAULT_API_TIMEOUT_SECONDS = 10.0
DEFAULT_LAYOUT_WAIT_SECONDS = 2.0


def load_paths(project_root: Path | None = None) -> AppPaths:
    root = (project_root or Path.cwd()).expanduser().resolve()

    pagemark_home_raw = os.getenv("PAGEMARK_HOME")
    if pagemark_home_raw:
        pagemark_dir = Path(pagemark_home_raw).expanduser().resolve()
    else:
        pagemark_dir = root / DEFAULT_PAGEMARK_DIRNAME

    return AppPaths(
        project_root=root,
        pagemark_dir=pagemark_dir,
        db_path=pagemark_dir / "pagemark.db",
    )


def load_settings() -> Settings:
    api_url_raw = (os.getenv("PAGEMARK_API_URL") or "").strip()
    return Settings(
        api_url=api_url_raw.rstrip("/") or None,
        api_timeout_seconds=read_float_env("PAGEMARK_API_TIMEOUT_SECONDS", DEFAULT_API_TIMEOUT_SECONDS),
        layout_wait_seconds=read_float_env("PAGEMARK_LAYOUT_WAIT_SECONDS", DEFAULT_LAYOUT_WAIT_SECONDS),
    )


def read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default
