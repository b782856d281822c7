"""Fixtures shared by the API unit tests."""

from __future__ import annotations

from unittest import mock

import falcon.testing
import pytest

from insightmeet.api.app import AppDependencies, create_app
from insightmeet.inference import DecodedResult, ResponseShape


@pytest.fixture
def mock_client() -> mock.MagicMock:
    """Build an inference client stand-in answering with a summary."""
    client = mock.MagicMock()
    client.call = mock.AsyncMock(
        return_value=DecodedResult(
            shape=ResponseShape.SUMMARY,
            value="Budget agreed.",
            raw=[{"summary_text": "Budget agreed."}],
        )
    )
    client.metrics.return_value = ()
    return client


@pytest.fixture
def api_client(mock_client: mock.MagicMock) -> falcon.testing.TestClient:
    """Build a test client for the full app over ``mock_client``."""
    return falcon.testing.TestClient(create_app(AppDependencies(client=mock_client)))
