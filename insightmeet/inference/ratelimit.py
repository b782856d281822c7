"""Sliding-window rate limiter keyed by (credential, model)."""

from __future__ import annotations

import collections
import typing as typ

from insightmeet.common.time import monotonic_ms
from insightmeet.inference.constants import HOUR_MS, MINUTE_MS

if typ.TYPE_CHECKING:
    from insightmeet.common.time import Clock
    from insightmeet.inference.registry import ModelDescriptor

_ANONYMOUS = "anonymous"


def rate_limit_key(credential: str | None, model_id: str) -> str:
    """Return the limiter key for calls to ``model_id`` with ``credential``.

    >>> rate_limit_key(None, "gpt2")
    'anonymous:gpt2'

    """
    return f"{credential or _ANONYMOUS}:{model_id}"


class RateLimiter:
    """Admit calls against per-model minute and hour budgets.

    Each key owns a window of call timestamps in ascending order. Every
    admission check first drops timestamps older than one hour, so a window
    never holds more than the hourly budget's worth of history.

    Callers must check :meth:`can_admit` before dispatching and call
    :meth:`record` only for calls that were actually sent.
    """

    def __init__(self, *, clock: Clock = monotonic_ms) -> None:
        """Create a limiter with no recorded calls."""
        self._clock = clock
        self._windows: dict[str, collections.deque[float]] = {}

    def can_admit(self, key: str, descriptor: ModelDescriptor) -> bool:
        """Return whether one more call under ``key`` fits the budget."""
        now = self._clock()
        window = self._windows.setdefault(key, collections.deque())

        hour_cutoff = now - HOUR_MS
        while window and window[0] <= hour_cutoff:
            window.popleft()

        minute_cutoff = now - MINUTE_MS
        per_minute = sum(1 for stamp in window if stamp > minute_cutoff)
        per_hour = len(window)

        budget = descriptor.rate_limit
        return (
            per_minute < budget.requests_per_minute
            and per_hour < budget.requests_per_hour
        )

    def record(self, key: str) -> None:
        """Append the current time to the window for ``key``."""
        self._windows.setdefault(key, collections.deque()).append(self._clock())

    def window_size(self, key: str) -> int:
        """Return how many timestamps are held for ``key``."""
        window = self._windows.get(key)
        return 0 if window is None else len(window)
