"""HTTP transport with timeout, cancellation and bounded exponential backoff.

One :meth:`InferenceTransport.send` call drives a small state machine::

    Idle -> Sending -> Succeeded
                    -> Retrying -> Sending
                    -> Failed

Each attempt runs under the per-attempt timeout. A 2xx response succeeds.
A retryable failure (429, any 5xx including "model loading" 503s, timeouts
and connection errors) moves to ``Retrying`` while retry budget remains and
waits ``min(base * 2**attempt + jitter, cap)`` milliseconds. Any other 4xx
fails at once without spending retries.

Setting the caller's cancellation event aborts the in-flight request or the
pending backoff wait; ``send`` then returns ``None``.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import enum
import random
import typing as typ

import httpx
import msgspec

from insightmeet.common.time import monotonic_ms
from insightmeet.inference.constants import (
    BACKOFF_JITTER_RATIO,
    DEFAULT_BACKOFF_CAP_MS,
    DEFAULT_ENDPOINT,
)
from insightmeet.inference.errors import (
    InferenceError,
    classify_exception,
    classify_response,
    is_model_loading,
)
from insightmeet.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from insightmeet.inference.observability import InferenceEventLogger
    from insightmeet.inference.options import CallOptions

logger = get_logger(__name__)

_HTTP_OK_MIN = 200
_HTTP_OK_MAX = 300

SleepFunc = typ.Callable[[float], typ.Awaitable[None]]
"""Awaitable sleep taking seconds, injectable for tests."""


@dc.dataclass(slots=True)
class CallAttempt:
    """Transient state of one client call.

    Attributes
    ----------
    model_id
        Model being called.
    inputs
        Raw caller input.
    parameters
        Descriptor defaults overridden by caller parameters.
    credential
        API key sent as a bearer token, if any.
    request_id
        Identifier sent as ``X-Request-ID``.
    cancel_event
        Caller-owned cancellation signal.
    attempts
        Requests dispatched so far.
    started_at_ms
        Clock reading when the call began.

    """

    model_id: str
    inputs: object
    parameters: dict[str, object]
    credential: str | None
    request_id: str
    cancel_event: asyncio.Event | None = None
    attempts: int = 0
    started_at_ms: float = dc.field(default_factory=monotonic_ms)

    @property
    def retries(self) -> int:
        """Attempts made after the first one."""
        return max(0, self.attempts - 1)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the call began."""
        return monotonic_ms() - self.started_at_ms


@dc.dataclass(frozen=True, slots=True)
class TransportResult:
    """Successful upstream response body and metadata."""

    body: object
    status_code: int
    content_type: str


class _Wait(enum.Enum):
    DONE = "done"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


async def _wait_or_cancel(
    task: asyncio.Future[typ.Any],
    cancel_event: asyncio.Event | None,
    timeout_s: float | None = None,
) -> _Wait:
    """Wait for ``task`` unless cancelled or timed out first.

    ``task`` is cancelled whenever it did not finish.
    """
    waiters: set[asyncio.Future[typ.Any]] = {task}
    canceller: asyncio.Future[typ.Any] | None = None
    if cancel_event is not None:
        canceller = asyncio.ensure_future(cancel_event.wait())
        waiters.add(canceller)
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()

    if canceller is not None and canceller in done:
        return _Wait.CANCELLED
    if task in done:
        return _Wait.DONE
    return _Wait.TIMED_OUT


def _read_success_body(response: httpx.Response) -> tuple[object, str]:
    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return msgspec.json.decode(response.content), content_type
        except msgspec.DecodeError:
            return response.text, content_type
    if content_type.startswith("image/"):
        return response.content, content_type
    return response.text, content_type


def _read_error_body(response: httpx.Response) -> object:
    try:
        return msgspec.json.decode(response.content)
    except msgspec.DecodeError:
        return response.text or None


class InferenceTransport:
    """Send inference requests with retries.

    Parameters
    ----------
    http_client
        Shared ``httpx.AsyncClient``; the transport never closes it.
    endpoint
        Base URL; requests go to ``{endpoint}/{model_id}``.
    backoff_cap_ms
        Upper bound for one backoff delay.
    sleep
        Awaitable used for backoff delays.
    jitter
        Returns a float in ``[0, 1)`` scaling the jitter term.
    event_logger
        Receives retry events, when given.

    """

    def __init__(  # noqa: PLR0913 - collaborators are injected for tests
        self,
        http_client: httpx.AsyncClient,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        backoff_cap_ms: float = DEFAULT_BACKOFF_CAP_MS,
        sleep: SleepFunc = asyncio.sleep,
        jitter: typ.Callable[[], float] = random.random,
        event_logger: InferenceEventLogger | None = None,
    ) -> None:
        """Bind the transport to its HTTP client and retry settings."""
        self._client = http_client
        self._endpoint = endpoint.rstrip("/")
        self._backoff_cap_ms = backoff_cap_ms
        self._sleep = sleep
        self._jitter = jitter
        self._event_logger = event_logger

    def url_for(self, model_id: str) -> str:
        """Return the request URL for ``model_id``."""
        return f"{self._endpoint}/{model_id}"

    def backoff_delay_ms(self, attempt: int, base_delay_ms: float) -> float:
        """Return the delay before retry number ``attempt + 1``.

        ``attempt`` counts from zero for the first failed request.
        """
        base = base_delay_ms * (2**attempt)
        jitter = self._jitter() * BACKOFF_JITTER_RATIO * base
        return min(base + jitter, self._backoff_cap_ms)

    def build_headers(self, attempt: CallAttempt, options: CallOptions) -> dict[str, str]:
        """Return the request headers for ``attempt``."""
        binary = isinstance(attempt.inputs, bytes | bytearray)
        headers = {
            "Content-Type": "application/octet-stream" if binary else "application/json",
            "X-Request-ID": attempt.request_id,
            "X-Priority": str(options.priority),
        }
        if attempt.credential:
            headers["Authorization"] = f"Bearer {attempt.credential}"
        return headers

    def build_body(self, attempt: CallAttempt, options: CallOptions) -> bytes:
        """Return the request body: raw bytes for binary input, JSON otherwise."""
        if isinstance(attempt.inputs, bytes | bytearray):
            return bytes(attempt.inputs)
        return msgspec.json.encode(
            {
                "inputs": attempt.inputs,
                "parameters": attempt.parameters,
                "options": {
                    "wait_for_model": options.wait_for_model,
                    "use_cache": options.use_cache,
                },
            }
        )

    async def send(
        self,
        attempt: CallAttempt,
        options: CallOptions,
    ) -> TransportResult | None:
        """Dispatch ``attempt`` until it succeeds, fails or is cancelled.

        Returns
        -------
        TransportResult | None
            The successful response, or ``None`` when the caller cancelled.

        Raises
        ------
        InferenceError
            ``api-error`` for non-retryable responses and for the last
            upstream error once retries run out; ``max-retries-exceeded``
            when every attempt failed without an upstream response.

        """
        last_error: InferenceError | None = None
        for index in range(options.max_retries + 1):
            if attempt.cancel_event is not None and attempt.cancel_event.is_set():
                return None
            attempt.attempts = index + 1

            outcome = await self._attempt_once(attempt, options)
            if outcome is None:
                return None
            if isinstance(outcome, TransportResult):
                return outcome
            if not outcome.retryable:
                raise outcome
            last_error = outcome

            if index >= options.max_retries:
                break
            delay_ms = self.backoff_delay_ms(index, options.retry_delay_ms)
            self._notify_retry(attempt, options, outcome, delay_ms)
            if await self._backoff(delay_ms, attempt.cancel_event):
                return None

        if last_error is not None and last_error.status_code is not None:
            raise last_error
        raise InferenceError.max_retries_exceeded(
            attempt.model_id, attempt.attempts
        ) from last_error

    async def _attempt_once(
        self,
        attempt: CallAttempt,
        options: CallOptions,
    ) -> TransportResult | InferenceError | None:
        """Send one request; return its result, its error, or ``None`` if cancelled."""
        timeout_s = options.timeout_ms / 1000
        request = asyncio.ensure_future(
            self._client.post(
                self.url_for(attempt.model_id),
                content=self.build_body(attempt, options),
                headers=self.build_headers(attempt, options),
                timeout=timeout_s,
            )
        )
        state = await _wait_or_cancel(request, attempt.cancel_event, timeout_s)
        if state is _Wait.CANCELLED:
            return None
        if state is _Wait.TIMED_OUT:
            return InferenceError.timeout(options.timeout_ms)

        try:
            response = request.result()
        except httpx.RequestError as exc:
            return classify_exception(exc, timeout_ms=options.timeout_ms)

        if _HTTP_OK_MIN <= response.status_code < _HTTP_OK_MAX:
            body, content_type = _read_success_body(response)
            return TransportResult(
                body=body,
                status_code=response.status_code,
                content_type=content_type,
            )

        error_body = _read_error_body(response)
        if is_model_loading(response.status_code, error_body):
            log_debug(logger, "Model %s is still loading", attempt.model_id)
        return classify_response(
            response.status_code, error_body, reason=response.reason_phrase
        )

    async def _backoff(self, delay_ms: float, cancel_event: asyncio.Event | None) -> bool:
        """Wait ``delay_ms``; return ``True`` if cancelled meanwhile."""
        pause = asyncio.ensure_future(self._sleep(delay_ms / 1000))
        state = await _wait_or_cancel(pause, cancel_event)
        return state is _Wait.CANCELLED

    def _notify_retry(
        self,
        attempt: CallAttempt,
        options: CallOptions,
        error: InferenceError,
        delay_ms: float,
    ) -> None:
        if self._event_logger is not None:
            self._event_logger.log_retry_scheduled(
                request_id=attempt.request_id,
                model=attempt.model_id,
                attempt=attempt.attempts + 1,
                delay_ms=delay_ms,
                error=error,
            )
        if options.on_retry is not None:
            options.on_retry(attempt.attempts + 1, delay_ms)
