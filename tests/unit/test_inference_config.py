"""Unit tests for inference client configuration."""

from __future__ import annotations

import os
from unittest import mock

import pytest

from insightmeet.inference.config import InferenceClientConfig
from insightmeet.inference.constants import (
    DEFAULT_BACKOFF_CAP_MS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_ENDPOINT,
)
from insightmeet.inference.errors import InferenceConfigError


class TestInferenceClientConfigFromEnv:
    """Tests for configuration loading from environment variables."""

    def test_defaults_without_environment(self) -> None:
        """An empty environment gives an anonymous default configuration."""
        with mock.patch.dict(os.environ, {}, clear=True):
            config = InferenceClientConfig.from_env()

        assert config == InferenceClientConfig(
            api_key=None,
            endpoint=DEFAULT_ENDPOINT,
            cache_max_entries=DEFAULT_CACHE_MAX_ENTRIES,
            cache_ttl_ms=DEFAULT_CACHE_TTL_MS,
            backoff_cap_ms=DEFAULT_BACKOFF_CAP_MS,
        )

    def test_primary_api_key_wins(self) -> None:
        """INSIGHTMEET_HF_API_KEY takes precedence over the generic name."""
        env = {"INSIGHTMEET_HF_API_KEY": " hf_primary ", "HUGGINGFACE_API_KEY": "hf_other"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert InferenceClientConfig.from_env().api_key == "hf_primary"

    def test_falls_back_to_huggingface_api_key(self) -> None:
        """A blank primary key falls through to HUGGINGFACE_API_KEY."""
        env = {"INSIGHTMEET_HF_API_KEY": "  ", "HUGGINGFACE_API_KEY": "hf_other"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert InferenceClientConfig.from_env().api_key == "hf_other"

    @pytest.mark.parametrize(
        ("env_var", "attr_name", "value", "expected"),
        [
            (
                "INSIGHTMEET_INFERENCE_ENDPOINT",
                "endpoint",
                "http://localhost:9000/models",
                "http://localhost:9000/models",
            ),
            ("INSIGHTMEET_CACHE_MAX_ENTRIES", "cache_max_entries", "25", 25),
            ("INSIGHTMEET_CACHE_TTL_MS", "cache_ttl_ms", "1000", 1000),
            ("INSIGHTMEET_BACKOFF_CAP_MS", "backoff_cap_ms", "5000", 5000),
        ],
        ids=["endpoint", "cache-size", "cache-ttl", "backoff-cap"],
    )
    def test_reads_custom_values(
        self, env_var: str, attr_name: str, value: str, expected: object
    ) -> None:
        """Overrides are read from the environment."""
        with mock.patch.dict(os.environ, {env_var: value}, clear=True):
            config = InferenceClientConfig.from_env()
        assert getattr(config, attr_name) == expected

    @pytest.mark.parametrize("value", ["0", "-5", "ten", "1.5"])
    def test_rejects_non_positive_integers(self, value: str) -> None:
        """Numeric settings must be positive integers."""
        env = {"INSIGHTMEET_CACHE_MAX_ENTRIES": value}
        with mock.patch.dict(os.environ, env, clear=True):
            with pytest.raises(InferenceConfigError) as exc_info:
                InferenceClientConfig.from_env()
        assert "INSIGHTMEET_CACHE_MAX_ENTRIES" in str(exc_info.value)

    def test_rejects_non_http_endpoint(self) -> None:
        """Endpoints must be http(s) URLs."""
        env = {"INSIGHTMEET_INFERENCE_ENDPOINT": "ftp://models.example"}
        with mock.patch.dict(os.environ, env, clear=True):
            with pytest.raises(InferenceConfigError):
                InferenceClientConfig.from_env()


def test_config_is_frozen() -> None:
    """Configuration instances are immutable."""
    config = InferenceClientConfig()
    with pytest.raises(AttributeError):
        config.api_key = "changed"  # type: ignore[misc]
