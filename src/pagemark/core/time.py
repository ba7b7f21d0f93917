from __future__ import annotations

from datetime import datetime, timezone


def now_utc_iso() -> str:
    """UTC timestamp in the review backend's wire form, e.g. ``2026-01-01T09:30:00.125Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
