"""Bounded TTL cache for decoded inference results.

Entries expire lazily: an expired entry is only removed when a lookup finds
it. When the cache is full, the oldest-inserted entry is evicted before a new
key is stored, regardless of how recently it was read.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import msgspec

from insightmeet.common.time import monotonic_ms
from insightmeet.inference.constants import (
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_MS,
    STALE_TTL_RATIO,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from insightmeet.common.time import Clock

_T = typ.TypeVar("_T")

_KEY_ENCODER = msgspec.json.Encoder(order="sorted")


def _encode_part(value: object) -> str:
    return _KEY_ENCODER.encode(value).decode("utf-8")


def make_cache_key(
    model_id: str,
    inputs: object,
    parameters: cabc.Mapping[str, object],
) -> str:
    """Return the cache key for a (model, input, parameters) triple.

    Inputs and parameters are JSON-encoded with sorted object keys, so equal
    triples map to the same key whatever order their mappings were built in.
    Binary inputs are encoded as base64 strings.

    Examples
    --------
    >>> make_cache_key("gpt2", "hi", {"b": 1, "a": 2})
    'gpt2:"hi":{"a":2,"b":1}'

    """
    return f"{model_id}:{_encode_part(inputs)}:{_encode_part(dict(parameters))}"


@dc.dataclass(frozen=True, slots=True)
class CacheEntry(typ.Generic[_T]):
    """A cached payload with its creation time and lifetime in milliseconds."""

    payload: _T
    created_at_ms: float
    ttl_ms: float

    def age_ms(self, now_ms: float) -> float:
        """Return milliseconds elapsed since the entry was stored."""
        return now_ms - self.created_at_ms

    def is_expired(self, now_ms: float) -> bool:
        """Return whether the entry has outlived its TTL."""
        return self.age_ms(now_ms) > self.ttl_ms


class ResponseCache(typ.Generic[_T]):
    """FIFO-bounded key/value store with per-entry TTL.

    Parameters
    ----------
    max_entries
        Capacity; inserting a new key at capacity evicts the oldest one.
    default_ttl_ms
        Lifetime applied when :meth:`set` is called without ``ttl_ms``.
    clock
        Millisecond clock, injectable for tests.

    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        default_ttl_ms: float = DEFAULT_CACHE_TTL_MS,
        clock: Clock = monotonic_ms,
    ) -> None:
        """Create an empty cache."""
        if max_entries < 1:
            msg = f"max_entries must be positive, got: {max_entries}"
            raise ValueError(msg)
        self._max_entries = max_entries
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock
        # dicts preserve insertion order, which is the eviction order
        self._entries: dict[str, CacheEntry[_T]] = {}

    def __len__(self) -> int:
        """Return the number of stored entries, expired ones included."""
        return len(self._entries)

    @property
    def max_entries(self) -> int:
        """Capacity before eviction."""
        return self._max_entries

    def get(self, key: str) -> _T | None:
        """Return the live payload for ``key`` or ``None``.

        An expired entry found here is deleted.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.payload

    def set(self, key: str, payload: _T, ttl_ms: float | None = None) -> None:
        """Store ``payload`` under ``key``.

        Replacing an existing key keeps its position in the eviction order.
        """
        if key not in self._entries and len(self._entries) >= self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = CacheEntry(
            payload=payload,
            created_at_ms=self._clock(),
            ttl_ms=self._default_ttl_ms if ttl_ms is None else ttl_ms,
        )

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def is_stale(self, key: str) -> bool:
        """Return whether at least 80% of the entry's TTL has elapsed.

        Absent keys are not stale.
        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        return entry.age_ms(self._clock()) >= entry.ttl_ms * STALE_TTL_RATIO
