"""Resilient client for the hosted model-inference API.

:class:`InferenceClient` is the single entry point callers use. One
:meth:`InferenceClient.call` resolves the model descriptor, validates input,
consults the rate limiter and then the response cache, sends the request
through :class:`~insightmeet.inference.transport.InferenceTransport` and
decodes the body. Every call that gets past validation leaves a
:class:`~insightmeet.inference.metrics.CallMetric` behind.

Examples
--------
>>> import asyncio
>>> from insightmeet.inference import InferenceClient, InferenceClientConfig
>>> async def main() -> None:
...     async with InferenceClient(InferenceClientConfig(api_key="hf_...")) as client:
...         result = await client.call("facebook/bart-large-cnn", "Long transcript")
...         print(result.value if result else "cancelled")
>>> # asyncio.run(main())

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import random
import typing as typ
import uuid

import httpx

from insightmeet.common.time import monotonic_ms, utcnow
from insightmeet.inference.cache import ResponseCache, make_cache_key
from insightmeet.inference.config import InferenceClientConfig
from insightmeet.inference.decoder import decode_response, passthrough
from insightmeet.inference.errors import InferenceError
from insightmeet.inference.metrics import CallMetric, MetricsRecorder
from insightmeet.inference.observability import InferenceEventLogger
from insightmeet.inference.options import DEFAULT_OPTIONS, CallOptions
from insightmeet.inference.ratelimit import RateLimiter, rate_limit_key
from insightmeet.inference.registry import descriptor_for
from insightmeet.inference.transport import CallAttempt, InferenceTransport
from insightmeet.inference.validation import payload_size, validate_input
from insightmeet.logging import get_logger, log_exception

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import types

    from insightmeet.common.time import Clock
    from insightmeet.inference.decoder import DecodedResult
    from insightmeet.inference.registry import ModelDescriptor
    from insightmeet.inference.transport import SleepFunc, TransportResult

logger = get_logger(__name__)


def _new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"


class InferenceClient:
    """Call hosted models with validation, caching, rate limiting and retries.

    Parameters
    ----------
    config
        Client configuration; read from the environment when omitted.
    http_client
        Optional ``httpx.AsyncClient`` for testing. If not provided, the
        instance creates and owns its own client.
    cache, rate_limiter, metrics, event_logger
        Collaborators, built from ``config`` when omitted.
    sleep
        Awaitable used for retry backoff.
    jitter
        Source of backoff jitter in ``[0, 1)``.
    clock
        Millisecond clock shared by the cache and rate limiter.

    """

    def __init__(  # noqa: PLR0913 - collaborators are injected for tests
        self,
        config: InferenceClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: ResponseCache[DecodedResult] | None = None,
        rate_limiter: RateLimiter | None = None,
        metrics: MetricsRecorder | None = None,
        event_logger: InferenceEventLogger | None = None,
        sleep: SleepFunc = asyncio.sleep,
        jitter: typ.Callable[[], float] = random.random,
        clock: Clock = monotonic_ms,
    ) -> None:
        """Initialise the client and its collaborators."""
        self._config = config or InferenceClientConfig.from_env()
        self._api_key = self._config.api_key
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()
        self._cache: ResponseCache[DecodedResult] = cache or ResponseCache(
            max_entries=self._config.cache_max_entries,
            default_ttl_ms=self._config.cache_ttl_ms,
            clock=clock,
        )
        self._rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self._metrics = metrics or MetricsRecorder()
        self._events = event_logger or InferenceEventLogger()
        self._transport = InferenceTransport(
            self._client,
            endpoint=self._config.endpoint,
            backoff_cap_ms=self._config.backoff_cap_ms,
            sleep=sleep,
            jitter=jitter,
            event_logger=self._events,
        )
        self._revalidations: dict[str, asyncio.Task[None]] = {}

    async def __aenter__(self) -> InferenceClient:
        """Return the client for use in ``async with``."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: types.TracebackType | None,
    ) -> None:
        """Close the client on context exit."""
        await self.aclose()

    @property
    def config(self) -> InferenceClientConfig:
        """Read-only access to the client configuration."""
        return self._config

    @property
    def cache(self) -> ResponseCache[DecodedResult]:
        """The response cache shared by this client's calls."""
        return self._cache

    def set_api_key(self, api_key: str | None) -> None:
        """Replace the credential used for subsequent calls."""
        self._api_key = api_key.strip() if api_key else None

    def metrics(self) -> tuple[CallMetric, ...]:
        """Return the recorded call metrics."""
        return self._metrics.snapshot()

    def clear_metrics(self) -> None:
        """Forget every recorded metric."""
        self._metrics.clear()

    def clear_cache(self) -> None:
        """Drop every cached result."""
        self._cache.clear()

    async def wait_for_revalidations(self) -> None:
        """Wait until every pending background refresh has finished."""
        pending = list(self._revalidations.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background refreshes and close any owned HTTP resources."""
        pending = list(self._revalidations.values())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._revalidations.clear()
        if self._owns_client:
            await self._client.aclose()

    async def call(
        self,
        model_id: str,
        inputs: object,
        parameters: cabc.Mapping[str, object] | None = None,
        options: CallOptions = DEFAULT_OPTIONS,
    ) -> DecodedResult | None:
        """Run one inference call.

        Parameters
        ----------
        model_id
            Registered model identifier.
        inputs
            Text, binary media, or a structured payload such as
            ``{"question": ..., "context": ...}``.
        parameters
            Model parameters; they override the descriptor defaults.
        options
            Per-call behaviour and callbacks.

        Returns
        -------
        DecodedResult | None
            The decoded result, or ``None`` when ``options.cancel_event`` was
            set before the call finished.

        Raises
        ------
        InferenceError
            ``unknown-model``, ``invalid-input-type`` or ``input-too-long``
            before any network traffic; ``rate-limit-exceeded`` when the
            local budget is spent; ``api-error`` or ``max-retries-exceeded``
            when the upstream call fails.

        """
        descriptor = descriptor_for(model_id)
        if options.validate_input:
            validate_input(model_id, inputs, descriptor)

        attempt = CallAttempt(
            model_id=model_id,
            inputs=inputs,
            parameters={**descriptor.default_parameters, **(parameters or {})},
            credential=self._api_key,
            request_id=options.request_id or _new_request_id(),
            cancel_event=options.cancel_event,
        )
        self._events.log_call_started(
            request_id=attempt.request_id, model=model_id, task=descriptor.task
        )

        limiter_key = rate_limit_key(self._api_key, model_id)
        if options.rate_limit_enabled and not self._rate_limiter.can_admit(
            limiter_key, descriptor
        ):
            self._events.log_rate_limited(
                request_id=attempt.request_id, key=limiter_key
            )
            error = InferenceError.rate_limit_exceeded(limiter_key)
            self._fail(attempt, descriptor, options, error)
            raise error

        cache_key = make_cache_key(model_id, inputs, parameters or {})
        if options.use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return self._serve_cached(attempt, descriptor, options, cache_key, cached)

        try:
            response = await self._transport.send(attempt, options)
        except InferenceError as exc:
            self._fail(attempt, descriptor, options, exc)
            raise

        if response is None:
            self._cancelled(attempt, descriptor)
            return None

        if options.rate_limit_enabled:
            self._rate_limiter.record(limiter_key)
        result = self._decode(response, descriptor, options)
        if options.use_cache:
            self._cache.set(cache_key, result, options.cache_ttl_ms)
        self._succeed(attempt, descriptor, options, result)
        return result

    def _decode(
        self,
        response: TransportResult,
        descriptor: ModelDescriptor,
        options: CallOptions,
    ) -> DecodedResult:
        if not options.validate_output:
            return passthrough(response.body)
        return decode_response(response.body, descriptor)

    def _serve_cached(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        options: CallOptions,
        cache_key: str,
        cached: DecodedResult,
    ) -> DecodedResult:
        """Return ``cached`` and schedule a refresh when it has gone stale."""
        stale = self._cache.is_stale(cache_key)
        self._events.log_cache_hit(
            request_id=attempt.request_id, model=attempt.model_id, stale=stale
        )
        if stale and options.stale_while_revalidate:
            self._schedule_revalidation(attempt, descriptor, options, cache_key)
        self._record_metric(
            attempt, descriptor, success=True, result=cached, cached=True
        )
        return cached

    def _schedule_revalidation(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        options: CallOptions,
        cache_key: str,
    ) -> None:
        if cache_key in self._revalidations:
            return
        refresh = CallAttempt(
            model_id=attempt.model_id,
            inputs=attempt.inputs,
            parameters=dict(attempt.parameters),
            credential=attempt.credential,
            request_id=_new_request_id(),
        )
        # The caller's call has already resolved; its callbacks must not fire.
        background = dc.replace(
            options,
            on_retry=None,
            on_success=None,
            on_error=None,
            cancel_event=None,
            request_id=refresh.request_id,
        )
        task = asyncio.create_task(
            self._revalidate(refresh, descriptor, background, cache_key)
        )
        self._revalidations[cache_key] = task
        task.add_done_callback(lambda _: self._revalidations.pop(cache_key, None))

    async def _revalidate(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        options: CallOptions,
        cache_key: str,
    ) -> None:
        """Refresh ``cache_key`` in the background; failures keep the old entry."""
        limiter_key = rate_limit_key(attempt.credential, attempt.model_id)
        if options.rate_limit_enabled and not self._rate_limiter.can_admit(
            limiter_key, descriptor
        ):
            self._events.log_rate_limited(
                request_id=attempt.request_id, key=limiter_key
            )
            return
        try:
            response = await self._transport.send(attempt, options)
            if response is None:
                return
            if options.rate_limit_enabled:
                self._rate_limiter.record(limiter_key)
            result = self._decode(response, descriptor, options)
        except InferenceError as exc:
            self._events.log_cache_revalidated(model=attempt.model_id, error=exc)
            return
        except Exception as exc:  # noqa: BLE001 - nothing awaits this task
            log_exception(
                logger,
                f"Background refresh of {attempt.model_id} failed unexpectedly",
                exc,
            )
            return
        self._cache.set(cache_key, result, options.cache_ttl_ms)
        self._events.log_cache_revalidated(model=attempt.model_id)

    def _succeed(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        options: CallOptions,
        result: DecodedResult,
    ) -> None:
        duration_ms = attempt.elapsed_ms
        self._events.log_call_completed(
            request_id=attempt.request_id,
            model=attempt.model_id,
            duration_ms=duration_ms,
            retries=attempt.retries,
        )
        self._record_metric(attempt, descriptor, success=True, result=result)
        if options.on_success is not None:
            options.on_success(result, duration_ms)

    def _fail(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        options: CallOptions,
        error: InferenceError,
    ) -> None:
        self._events.log_call_failed(
            request_id=attempt.request_id,
            model=attempt.model_id,
            error=error,
            duration_ms=attempt.elapsed_ms,
            retries=attempt.retries,
        )
        self._record_metric(attempt, descriptor, success=False)
        if options.on_error is not None:
            options.on_error(error, attempt.retries)

    def _cancelled(self, attempt: CallAttempt, descriptor: ModelDescriptor) -> None:
        self._events.log_call_cancelled(
            request_id=attempt.request_id,
            model=attempt.model_id,
            duration_ms=attempt.elapsed_ms,
        )
        self._record_metric(attempt, descriptor, success=False)

    def _record_metric(
        self,
        attempt: CallAttempt,
        descriptor: ModelDescriptor,
        *,
        success: bool,
        result: DecodedResult | None = None,
        cached: bool = False,
    ) -> None:
        self._metrics.record(
            CallMetric(
                request_id=attempt.request_id,
                model=attempt.model_id,
                task=str(descriptor.task),
                duration_ms=attempt.elapsed_ms,
                retries=attempt.retries,
                success=success,
                input_size=payload_size(attempt.inputs),
                output_size=0 if result is None else payload_size(result.value),
                timestamp=utcnow(),
                cached=cached,
            )
        )
