"""Per-call options for :meth:`InferenceClient.call`."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from insightmeet.inference.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
)

if typ.TYPE_CHECKING:
    import asyncio

    from insightmeet.inference.decoder import DecodedResult
    from insightmeet.inference.errors import InferenceError

SuccessCallback = typ.Callable[["DecodedResult", float], None]
"""Called with the result and the call duration in milliseconds."""

ErrorCallback = typ.Callable[["InferenceError", int], None]
"""Called with the raised error and the number of retries made."""

RetryCallback = typ.Callable[[int, float], None]
"""Called with the upcoming attempt number and the delay in milliseconds."""


class Priority(enum.StrEnum):
    """Scheduling hint forwarded upstream as ``X-Priority``."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dc.dataclass(frozen=True, slots=True, kw_only=True)
class CallOptions:
    """Behaviour switches and callbacks for one inference call.

    Attributes
    ----------
    max_retries
        Retries allowed after the first attempt.
    retry_delay_ms
        Base backoff delay; doubled for each further attempt.
    timeout_ms
        Timeout for each individual attempt.
    use_cache
        Read from and write to the response cache. Also forwarded upstream
        as ``options.use_cache``.
    rate_limit_enabled
        Check and record the local rate limiter.
    validate_input
        Reject unknown models and malformed input before any network call.
    validate_output
        Match the response against known shapes; when ``False`` the raw body
        is returned untouched.
    wait_for_model
        Ask the upstream to block while a cold model loads.
    priority
        Forwarded as ``X-Priority``.
    request_id
        Forwarded as ``X-Request-ID``; generated when omitted.
    cache_ttl_ms
        Lifetime of the cache entry written by this call; the cache default
        applies when omitted.
    stale_while_revalidate
        On a stale cache hit, return the cached value and refresh it in the
        background.
    cancel_event
        Setting this event aborts the call; the call then returns ``None``.
    on_success, on_error, on_retry
        Lifecycle callbacks.

    """

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    use_cache: bool = True
    rate_limit_enabled: bool = True
    validate_input: bool = True
    validate_output: bool = True
    wait_for_model: bool = True
    priority: Priority = Priority.NORMAL
    request_id: str | None = None
    cache_ttl_ms: float | None = None
    stale_while_revalidate: bool = False
    cancel_event: asyncio.Event | None = None
    on_success: SuccessCallback | None = None
    on_error: ErrorCallback | None = None
    on_retry: RetryCallback | None = None

    def __post_init__(self) -> None:
        """Reject negative retry and timing values."""
        if self.max_retries < 0:
            msg = f"max_retries must be non-negative, got: {self.max_retries}"
            raise ValueError(msg)
        if self.retry_delay_ms < 0:
            msg = f"retry_delay_ms must be non-negative, got: {self.retry_delay_ms}"
            raise ValueError(msg)
        if self.timeout_ms <= 0:
            msg = f"timeout_ms must be positive, got: {self.timeout_ms}"
            raise ValueError(msg)


DEFAULT_OPTIONS = CallOptions()
