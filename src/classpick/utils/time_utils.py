"""Time and run-identity helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def now_utc() -> datetime:
    """Return current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def new_run_id(prefix: str = "sync-run") -> str:
    """Return a short unique identifier for one run."""

    return f"{prefix}-{uuid4().hex[:12]}"
