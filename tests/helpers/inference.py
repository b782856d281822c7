"""Fakes for exercising the inference client without a network."""

from __future__ import annotations

import asyncio
import typing as typ

import httpx

from insightmeet.inference import InferenceClient, InferenceClientConfig, RateLimiter

TEST_ENDPOINT = "https://inference.test/models"
TEST_API_KEY = "hf_test_key"

Reply = typ.Callable[[httpx.Request], typ.Awaitable[httpx.Response]]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start_ms: float = 1_000_000.0) -> None:
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, delta_ms: float) -> None:
        self.now_ms += delta_ms


class SleepRecorder:
    """Async sleep stand-in that records requested delays in seconds."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)

    @property
    def delays_ms(self) -> list[float]:
        return [round(delay * 1000, 6) for delay in self.delays]


def json_reply(status_code: int, payload: object) -> Reply:
    """Reply with ``payload`` encoded as JSON."""

    async def reply(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return reply


def bytes_reply(content: bytes, content_type: str = "image/png") -> Reply:
    """Reply 200 with a binary body."""

    async def reply(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=content, headers={"content-type": content_type})

    return reply


def text_reply(status_code: int, text: str) -> Reply:
    """Reply with a plain-text body."""

    async def reply(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code, content=text.encode(), headers={"content-type": "text/plain"}
        )

    return reply


def connect_error_reply(message: str = "connection refused") -> Reply:
    """Fail the request before any response arrives."""

    async def reply(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError(message, request=request)

    return reply


def decoding_error_reply(message: str = "malformed gzip stream") -> Reply:
    """Fail the request as if the response body could not be decoded."""

    async def reply(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError(message, request=request)

    return reply


def loading_reply() -> Reply:
    """Reply 503 with the upstream's model-loading body."""
    return json_reply(
        503, {"error": "Model facebook/bart-large-cnn is currently loading"}
    )


class ScriptedTransport(httpx.AsyncBaseTransport):
    """Serve scripted replies in order, repeating the last one.

    Every request is recorded. ``hang`` makes requests block until they are
    cancelled; ``received`` is set whenever a request arrives.
    """

    def __init__(self, *replies: Reply, hang: bool = False) -> None:
        self._replies = list(replies)
        self._hang = hang
        self.requests: list[httpx.Request] = []
        self.received = asyncio.Event()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.received.set()
        if self._hang:
            await asyncio.Event().wait()
        index = min(len(self.requests), len(self._replies)) - 1
        return await self._replies[index](request)


def make_client(
    http_client: httpx.AsyncClient,
    *,
    sleep: SleepRecorder | None = None,
    clock: FakeClock | None = None,
    api_key: str | None = TEST_API_KEY,
    rate_limiter: RateLimiter | None = None,
    **config_overrides: typ.Any,
) -> InferenceClient:
    """Build a client over ``http_client`` with zero jitter."""
    config = InferenceClientConfig(
        api_key=api_key, endpoint=TEST_ENDPOINT, **config_overrides
    )
    return InferenceClient(
        config,
        http_client=http_client,
        sleep=sleep or SleepRecorder(),
        jitter=lambda: 0.0,
        clock=clock or FakeClock(),
        rate_limiter=rate_limiter,
    )
