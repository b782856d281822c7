"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import time
import typing as typ

Clock = typ.Callable[[], float]
"""Zero-argument callable returning the current time in milliseconds."""


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp for metric records."""
    return dt.datetime.now(dt.UTC)


def monotonic_ms() -> float:
    """Return a monotonic clock reading in milliseconds."""
    return time.monotonic() * 1000.0
