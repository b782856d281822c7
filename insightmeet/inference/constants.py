"""Shared defaults for the inference client.

Constants
---------
DEFAULT_ENDPOINT : str
    Base URL of the hosted inference API; the model id is appended.
DEFAULT_MODEL_ID : str
    Registry entry used for model ids missing from the registry.
DEFAULT_MAX_RETRIES : int
    Retries attempted after the first request (3).
DEFAULT_RETRY_DELAY_MS : int
    Base backoff delay before the first retry (1000 ms).
DEFAULT_TIMEOUT_MS : int
    Per-attempt request timeout (60000 ms).
DEFAULT_BACKOFF_CAP_MS : int
    Upper bound for a single backoff delay (30000 ms).
BACKOFF_JITTER_RATIO : float
    Jitter drawn uniformly up to this share of the base delay (0.1).
DEFAULT_CACHE_TTL_MS : int
    Time-to-live for cached decoded results (five minutes).
DEFAULT_CACHE_MAX_ENTRIES : int
    Capacity of the response cache before FIFO eviction.
STALE_TTL_RATIO : float
    Share of the TTL after which a cache entry counts as stale (0.8).
MINUTE_MS, HOUR_MS : int
    Rate limiter window lengths.

"""

from __future__ import annotations

DEFAULT_ENDPOINT: str = "https://api-inference.huggingface.co/models"
DEFAULT_MODEL_ID: str = "gpt2"

DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY_MS: int = 1000
DEFAULT_TIMEOUT_MS: int = 60_000
DEFAULT_BACKOFF_CAP_MS: int = 30_000
BACKOFF_JITTER_RATIO: float = 0.1

DEFAULT_CACHE_TTL_MS: int = 5 * 60 * 1000
DEFAULT_CACHE_MAX_ENTRIES: int = 500
STALE_TTL_RATIO: float = 0.8

MINUTE_MS: int = 60_000
HOUR_MS: int = 3_600_000

DEFAULT_BATCH_SIZE: int = 10
BATCH_PAUSE_S: float = 0.1
