"""Configuration for the inference client."""

from __future__ import annotations

import dataclasses
import os

from insightmeet.inference.constants import (
    DEFAULT_BACKOFF_CAP_MS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_CACHE_TTL_MS,
    DEFAULT_ENDPOINT,
)
from insightmeet.inference.errors import InferenceConfigError

_API_KEY_VARS = ("INSIGHTMEET_HF_API_KEY", "HUGGINGFACE_API_KEY")
_URL_SCHEMES = ("http://", "https://")


def _read_api_key() -> str | None:
    for name in _API_KEY_VARS:
        raw_key = os.environ.get(name)
        if raw_key is not None and raw_key.strip():
            return raw_key.strip()
    return None


def _read_positive_int(name: str, default: int) -> int:
    """Parse a positive integer environment variable.

    Raises
    ------
    InferenceConfigError
        If the value is not an integer or is not positive.

    """
    raw_value = os.environ.get(name)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = int(raw_value)
    except ValueError as exc:
        raise InferenceConfigError.invalid_positive_int(name, raw_value) from exc

    if value <= 0:
        raise InferenceConfigError.invalid_positive_int(name, raw_value)
    return value


@dataclasses.dataclass(frozen=True, slots=True)
class InferenceClientConfig:
    """Configuration for :class:`~insightmeet.inference.client.InferenceClient`.

    Attributes
    ----------
    api_key
        Bearer token for the inference API. Anonymous calls are sent when
        this is ``None``.
    endpoint
        Base URL; requests are posted to ``{endpoint}/{model_id}``.
    cache_max_entries
        Response cache capacity.
    cache_ttl_ms
        Default lifetime of cached results.
    backoff_cap_ms
        Upper bound for a single retry delay.

    """

    api_key: str | None = None
    endpoint: str = DEFAULT_ENDPOINT
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    backoff_cap_ms: int = DEFAULT_BACKOFF_CAP_MS

    def __post_init__(self) -> None:
        """Validate the endpoint scheme."""
        if not self.endpoint.startswith(_URL_SCHEMES):
            raise InferenceConfigError.invalid_endpoint(self.endpoint)

    @classmethod
    def from_env(cls) -> InferenceClientConfig:
        """Build configuration from environment variables.

        Reads the following environment variables:

        - ``INSIGHTMEET_HF_API_KEY``: Optional API key; falls back to
          ``HUGGINGFACE_API_KEY``
        - ``INSIGHTMEET_INFERENCE_ENDPOINT``: Optional endpoint override
        - ``INSIGHTMEET_CACHE_MAX_ENTRIES``: Optional cache capacity
        - ``INSIGHTMEET_CACHE_TTL_MS``: Optional cache lifetime
        - ``INSIGHTMEET_BACKOFF_CAP_MS``: Optional retry delay cap

        Returns
        -------
        InferenceClientConfig
            Configuration instance with values from environment.

        Raises
        ------
        InferenceConfigError
            If a numeric value is not a positive integer or the endpoint is
            not an http(s) URL.

        """
        endpoint = os.environ.get("INSIGHTMEET_INFERENCE_ENDPOINT", "").strip()
        return cls(
            api_key=_read_api_key(),
            endpoint=endpoint or DEFAULT_ENDPOINT,
            cache_max_entries=_read_positive_int(
                "INSIGHTMEET_CACHE_MAX_ENTRIES", DEFAULT_CACHE_MAX_ENTRIES
            ),
            cache_ttl_ms=_read_positive_int(
                "INSIGHTMEET_CACHE_TTL_MS", DEFAULT_CACHE_TTL_MS
            ),
            backoff_cap_ms=_read_positive_int(
                "INSIGHTMEET_BACKOFF_CAP_MS", DEFAULT_BACKOFF_CAP_MS
            ),
        )
