"""Per-call metrics recorded by the inference client."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


@dc.dataclass(frozen=True, slots=True)
class CallMetric:
    """Outcome of a single :meth:`InferenceClient.call`.

    Attributes
    ----------
    request_id
        Identifier sent upstream as ``X-Request-ID``.
    model
        Model id requested by the caller.
    task
        Task of the resolved descriptor, or ``"unknown"``.
    duration_ms
        Wall time of the whole call including retries and backoff.
    retries
        Attempts made after the first one.
    success
        ``True`` when the call returned a result (cache hits included).
    input_size
        Length of the JSON-encoded input.
    output_size
        Length of the JSON-encoded result, ``0`` on failure.
    timestamp
        UTC time the call finished.
    cached
        ``True`` when the result came from the response cache.

    """

    request_id: str
    model: str
    task: str
    duration_ms: float
    retries: int
    success: bool
    input_size: int
    output_size: int
    timestamp: dt.datetime
    cached: bool = False


class MetricsRecorder:
    """Append-only, in-process list of :class:`CallMetric` records."""

    def __init__(self) -> None:
        """Start with no records."""
        self._records: list[CallMetric] = []

    def __len__(self) -> int:
        """Return the number of recorded calls."""
        return len(self._records)

    def record(self, metric: CallMetric) -> None:
        """Append ``metric``."""
        self._records.append(metric)

    def snapshot(self) -> tuple[CallMetric, ...]:
        """Return the records in call-completion order."""
        return tuple(self._records)

    def clear(self) -> None:
        """Forget every record."""
        self._records.clear()
