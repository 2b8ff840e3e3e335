from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Naive UTC, the form created_at columns are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def fixed_clock(moment: datetime) -> Clock:
    """Clock that always answers `moment` (must be timezone-aware)."""
    if moment.tzinfo is None:
        raise ValueError("fixed_clock requires a timezone-aware datetime")
    return lambda: moment


__all__ = ["Clock", "utc_now", "utc_now_naive", "fixed_clock"]
