"""Resilient client for a hosted model-inference HTTP API.

This package calls ``POST {endpoint}/{model_id}``, protects both the caller
and the upstream from overload and transient failure, and normalises the
heterogeneous response bodies of different model tasks into one decoded
result.

Public API
----------
InferenceClient
    Facade combining validation, rate limiting, caching, retries and decoding.
InferenceClientConfig
    Configuration dataclass with ``from_env()``.
CallOptions
    Per-call behaviour switches and callbacks.
DecodedResult
    Canonical value extracted from a response.
InferenceError
    Uniform error carrying an ``ErrorCode`` and a ``retryable`` flag.
InferenceConfigError
    Exception for configuration errors.
descriptor_for
    Resolve a model id to its registry descriptor.
generate_text, summarize_text, answer_question, translate_text,
analyze_sentiment, generate_image, get_embeddings, batch_process
    Task-specific helpers.

Examples
--------
>>> from insightmeet.inference import CallOptions, InferenceClient
>>> client = InferenceClient()
>>> result = await client.call(
...     "facebook/bart-large-cnn",
...     "Long meeting transcript ...",
...     options=CallOptions(max_retries=1),
... )
>>> result.value
'A short summary'

"""

from __future__ import annotations

from insightmeet.inference.cache import ResponseCache, make_cache_key
from insightmeet.inference.client import InferenceClient
from insightmeet.inference.config import InferenceClientConfig
from insightmeet.inference.decoder import DecodedResult, ResponseShape, decode_response
from insightmeet.inference.errors import (
    ErrorCode,
    InferenceConfigError,
    InferenceError,
    classify_exception,
    classify_response,
    is_retryable_status,
)
from insightmeet.inference.metrics import CallMetric, MetricsRecorder
from insightmeet.inference.observability import (
    InferenceEventLogger,
    InferenceEventType,
)
from insightmeet.inference.options import CallOptions, Priority
from insightmeet.inference.ratelimit import RateLimiter, rate_limit_key
from insightmeet.inference.registry import (
    MODEL_DESCRIPTORS,
    ModelDescriptor,
    TaskKind,
    descriptor_for,
    list_models,
    models_for_task,
)
from insightmeet.inference.tasks import (
    analyze_sentiment,
    answer_question,
    batch_process,
    generate_image,
    generate_text,
    get_embeddings,
    summarize_text,
    translate_text,
)

__all__ = [
    "MODEL_DESCRIPTORS",
    "CallMetric",
    "CallOptions",
    "DecodedResult",
    "ErrorCode",
    "InferenceClient",
    "InferenceClientConfig",
    "InferenceConfigError",
    "InferenceError",
    "InferenceEventLogger",
    "InferenceEventType",
    "MetricsRecorder",
    "ModelDescriptor",
    "Priority",
    "RateLimiter",
    "ResponseCache",
    "ResponseShape",
    "TaskKind",
    "analyze_sentiment",
    "answer_question",
    "batch_process",
    "classify_exception",
    "classify_response",
    "decode_response",
    "descriptor_for",
    "generate_image",
    "generate_text",
    "get_embeddings",
    "is_retryable_status",
    "list_models",
    "make_cache_key",
    "models_for_task",
    "rate_limit_key",
    "summarize_text",
    "translate_text",
]
