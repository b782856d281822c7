"""Emit structured observability events for inference calls.

``InferenceClient`` and ``InferenceTransport`` report call lifecycle
transitions through :class:`InferenceEventLogger`. Each event is a single
femtologging record of the form ``[event.type] key=value ...``.

Usage
-----
>>> event_logger = InferenceEventLogger()
>>> event_logger.log_call_started(
...     request_id="req_1", model="facebook/bart-large-cnn", task="summarization"
... )

"""

from __future__ import annotations

import enum
import typing as typ

from insightmeet.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    from insightmeet.inference.errors import InferenceError

logger = get_logger(__name__)


class InferenceEventType(enum.StrEnum):
    """Structured log event types for inference calls."""

    CALL_STARTED = "inference.call.started"
    CALL_COMPLETED = "inference.call.completed"
    CALL_FAILED = "inference.call.failed"
    CALL_CANCELLED = "inference.call.cancelled"
    CACHE_HIT = "inference.cache.hit"
    CACHE_REVALIDATED = "inference.cache.revalidated"
    RETRY_SCHEDULED = "inference.retry.scheduled"
    RATE_LIMITED = "inference.rate_limited"


class InferenceEventLogger:
    """Emit inference lifecycle events via femtologging."""

    def log_call_started(self, *, request_id: str, model: str, task: str) -> None:
        """Log the start of a call that passed validation."""
        log_info(
            logger,
            "[%s] request_id=%s model=%s task=%s",
            InferenceEventType.CALL_STARTED,
            request_id,
            model,
            task,
        )

    def log_cache_hit(self, *, request_id: str, model: str, stale: bool) -> None:
        """Log a call answered from the response cache."""
        log_info(
            logger,
            "[%s] request_id=%s model=%s stale=%s",
            InferenceEventType.CACHE_HIT,
            request_id,
            model,
            stale,
        )

    def log_cache_revalidated(
        self,
        *,
        model: str,
        error: BaseException | None = None,
    ) -> None:
        """Log the outcome of a background cache refresh.

        Parameters
        ----------
        model
            Model whose cached result was refreshed.
        error
            Failure raised by the refresh, or ``None`` on success.

        """
        if error is None:
            log_info(
                logger,
                "[%s] model=%s outcome=refreshed",
                InferenceEventType.CACHE_REVALIDATED,
                model,
            )
            return
        log_warning(
            logger,
            "[%s] model=%s outcome=failed error_type=%s error_message=%s",
            InferenceEventType.CACHE_REVALIDATED,
            model,
            type(error).__name__,
            str(error),
        )

    def log_retry_scheduled(
        self,
        *,
        request_id: str,
        model: str,
        attempt: int,
        delay_ms: float,
        error: InferenceError,
    ) -> None:
        """Log a retryable failure and the delay before the next attempt.

        Parameters
        ----------
        request_id
            Identifier of the call being retried.
        model
            Model being called.
        attempt
            Number of the attempt about to be made (the first retry is 2).
        delay_ms
            Backoff delay before that attempt.
        error
            The failure that triggered the retry.

        """
        log_warning(
            logger,
            "[%s] request_id=%s model=%s attempt=%d delay_ms=%.1f status=%s "
            "error_message=%s",
            InferenceEventType.RETRY_SCHEDULED,
            request_id,
            model,
            attempt,
            delay_ms,
            error.status_code,
            str(error),
        )

    def log_rate_limited(self, *, request_id: str, key: str) -> None:
        """Log a call rejected by the local rate limiter."""
        log_warning(
            logger,
            "[%s] request_id=%s key=%s",
            InferenceEventType.RATE_LIMITED,
            request_id,
            key,
        )

    def log_call_completed(
        self,
        *,
        request_id: str,
        model: str,
        duration_ms: float,
        retries: int,
    ) -> None:
        """Log a successful network-backed call."""
        log_info(
            logger,
            "[%s] request_id=%s model=%s duration_ms=%.3f retries=%d",
            InferenceEventType.CALL_COMPLETED,
            request_id,
            model,
            duration_ms,
            retries,
        )

    def log_call_cancelled(
        self,
        *,
        request_id: str,
        model: str,
        duration_ms: float,
    ) -> None:
        """Log a call aborted through its cancellation event."""
        log_info(
            logger,
            "[%s] request_id=%s model=%s duration_ms=%.3f",
            InferenceEventType.CALL_CANCELLED,
            request_id,
            model,
            duration_ms,
        )

    def log_call_failed(
        self,
        *,
        request_id: str,
        model: str,
        error: InferenceError,
        duration_ms: float,
        retries: int,
    ) -> None:
        """Log a failed call with its classification.

        Parameters
        ----------
        request_id
            Identifier of the failed call.
        model
            Model that was called.
        error
            The typed error surfaced to the caller.
        duration_ms
            Wall time of the call.
        retries
            Retries made before giving up.

        """
        log_error(
            logger,
            "[%s] request_id=%s model=%s code=%s status=%s retryable=%s "
            "retries=%d duration_ms=%.3f error_message=%s",
            InferenceEventType.CALL_FAILED,
            request_id,
            model,
            error.code,
            error.status_code,
            error.retryable,
            retries,
            duration_ms,
            str(error),
        )
