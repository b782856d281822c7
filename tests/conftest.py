"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import httpx
import pytest
import pytest_asyncio

from tests.helpers.inference import FakeClock, SleepRecorder, make_client

if typ.TYPE_CHECKING:
    from insightmeet.inference import InferenceClient

ClientFactory = typ.Callable[..., "InferenceClient"]


@pytest.fixture
def clock() -> FakeClock:
    """Provide a hand-advanced millisecond clock."""
    return FakeClock()


@pytest.fixture
def sleep() -> SleepRecorder:
    """Provide a sleep stand-in that records backoff delays."""
    return SleepRecorder()


@pytest_asyncio.fixture
async def client_factory(
    clock: FakeClock,
    sleep: SleepRecorder,
) -> typ.AsyncIterator[ClientFactory]:
    """Build clients over scripted transports and close them afterwards."""
    http_clients: list[httpx.AsyncClient] = []
    clients: list[InferenceClient] = []

    def factory(
        transport: httpx.AsyncBaseTransport, **kwargs: typ.Any
    ) -> InferenceClient:
        kwargs.setdefault("sleep", sleep)
        kwargs.setdefault("clock", clock)
        http_client = httpx.AsyncClient(transport=transport)
        http_clients.append(http_client)
        client = make_client(http_client, **kwargs)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()
    for http_client in http_clients:
        await http_client.aclose()
