"""Static registry of the inference models InsightMeet knows how to call.

Each model id maps to a frozen :class:`ModelDescriptor` describing its task,
input limits, default inference parameters and per-model rate-limit budget.
The table is built once at import time and never mutated, so lookups are safe
from any number of concurrent calls.

Usage
-----
>>> from insightmeet.inference.registry import TaskKind, descriptor_for
>>> descriptor_for("facebook/bart-large-cnn").task
<TaskKind.SUMMARIZATION: 'summarization'>
>>> descriptor_for("no/such-model").task
<TaskKind.TEXT_GENERATION: 'text-generation'>

"""

from __future__ import annotations

import enum
import types
import typing as typ

import msgspec

from insightmeet.inference.constants import DEFAULT_MODEL_ID


class TaskKind(enum.StrEnum):
    """Inference task performed by a model."""

    TEXT_GENERATION = "text-generation"
    CONVERSATIONAL = "conversational"
    SUMMARIZATION = "summarization"
    QUESTION_ANSWERING = "question-answering"
    SENTIMENT_ANALYSIS = "sentiment-analysis"
    TRANSLATION = "translation"
    TEXT_TO_IMAGE = "text-to-image"
    FEATURE_EXTRACTION = "feature-extraction"
    IMAGE_CLASSIFICATION = "image-classification"
    ZERO_SHOT_CLASSIFICATION = "zero-shot-classification"


class InputModality(enum.StrEnum):
    """Kind of payload a model accepts."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    MULTIMODAL = "multimodal"


class OutputModality(enum.StrEnum):
    """Kind of payload a model produces."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    JSON = "json"
    EMBEDDING = "embedding"


class RateLimitBudget(msgspec.Struct, frozen=True, kw_only=True):
    """Calls allowed per sliding minute and per sliding hour."""

    requests_per_minute: int
    requests_per_hour: int


class ModelDescriptor(msgspec.Struct, frozen=True, kw_only=True):
    """Immutable metadata for one remote model.

    Attributes
    ----------
    task
        Task the model performs; selects the expected response shapes.
    max_length
        Maximum accepted text input length in characters.
    min_length
        Advisory minimum input length (not enforced on calls).
    default_parameters
        Inference parameters merged under caller-supplied parameters.
    supports_streaming
        Whether the hosted model can stream tokens.
    input_modality
        Payload kind the model accepts.
    output_modality
        Payload kind the model returns.
    rate_limit
        Per-(credential, model) call budget.

    """

    task: TaskKind
    max_length: int
    min_length: int
    default_parameters: typ.Mapping[str, object] = msgspec.field(
        default_factory=lambda: types.MappingProxyType({})
    )
    supports_streaming: bool = False
    input_modality: InputModality = InputModality.TEXT
    output_modality: OutputModality = OutputModality.TEXT
    rate_limit: RateLimitBudget = msgspec.field(
        default_factory=lambda: RateLimitBudget(
            requests_per_minute=60, requests_per_hour=1000
        )
    )


def _params(**values: object) -> typ.Mapping[str, object]:
    return types.MappingProxyType(values)


MODEL_DESCRIPTORS: typ.Final[typ.Mapping[str, ModelDescriptor]] = (
    types.MappingProxyType(
        {
            "gpt2": ModelDescriptor(
                task=TaskKind.TEXT_GENERATION,
                max_length=1024,
                min_length=10,
                default_parameters=_params(temperature=0.7, max_length=100),
                supports_streaming=True,
                rate_limit=RateLimitBudget(
                    requests_per_minute=60, requests_per_hour=1000
                ),
            ),
            "microsoft/DialoGPT-large": ModelDescriptor(
                task=TaskKind.CONVERSATIONAL,
                max_length=1000,
                min_length=1,
                default_parameters=_params(temperature=0.7, max_length=100),
                supports_streaming=True,
                rate_limit=RateLimitBudget(
                    requests_per_minute=30, requests_per_hour=500
                ),
            ),
            "facebook/bart-large-cnn": ModelDescriptor(
                task=TaskKind.SUMMARIZATION,
                max_length=1024,
                min_length=50,
                default_parameters=_params(
                    max_length=150, min_length=30, do_sample=False
                ),
                rate_limit=RateLimitBudget(
                    requests_per_minute=100, requests_per_hour=2000
                ),
            ),
            "google/pegasus-xsum": ModelDescriptor(
                task=TaskKind.SUMMARIZATION,
                max_length=512,
                min_length=20,
                default_parameters=_params(
                    max_length=64, min_length=10, do_sample=False
                ),
                rate_limit=RateLimitBudget(
                    requests_per_minute=100, requests_per_hour=2000
                ),
            ),
            "t5-small": ModelDescriptor(
                task=TaskKind.SUMMARIZATION,
                max_length=512,
                min_length=10,
                default_parameters=_params(max_length=100, min_length=10),
                rate_limit=RateLimitBudget(
                    requests_per_minute=100, requests_per_hour=2000
                ),
            ),
            "deepset/roberta-base-squad2": ModelDescriptor(
                task=TaskKind.QUESTION_ANSWERING,
                max_length=512,
                min_length=1,
                default_parameters=_params(max_answer_len=15),
                output_modality=OutputModality.JSON,
                rate_limit=RateLimitBudget(
                    requests_per_minute=200, requests_per_hour=5000
                ),
            ),
            "cardiffnlp/twitter-roberta-base-sentiment-latest": ModelDescriptor(
                task=TaskKind.SENTIMENT_ANALYSIS,
                max_length=512,
                min_length=1,
                output_modality=OutputModality.JSON,
                rate_limit=RateLimitBudget(
                    requests_per_minute=300, requests_per_hour=10000
                ),
            ),
            "facebook/bart-large-mnli": ModelDescriptor(
                task=TaskKind.ZERO_SHOT_CLASSIFICATION,
                max_length=1024,
                min_length=1,
                output_modality=OutputModality.JSON,
                rate_limit=RateLimitBudget(
                    requests_per_minute=100, requests_per_hour=2000
                ),
            ),
            "Helsinki-NLP/opus-mt-en-de": ModelDescriptor(
                task=TaskKind.TRANSLATION,
                max_length=512,
                min_length=1,
                default_parameters=_params(max_length=400),
                rate_limit=RateLimitBudget(
                    requests_per_minute=200, requests_per_hour=5000
                ),
            ),
            "runwayml/stable-diffusion-v1-5": ModelDescriptor(
                task=TaskKind.TEXT_TO_IMAGE,
                max_length=77,
                min_length=1,
                default_parameters=_params(
                    num_inference_steps=50, guidance_scale=7.5
                ),
                output_modality=OutputModality.IMAGE,
                rate_limit=RateLimitBudget(
                    requests_per_minute=10, requests_per_hour=100
                ),
            ),
            "sentence-transformers/all-MiniLM-L6-v2": ModelDescriptor(
                task=TaskKind.FEATURE_EXTRACTION,
                max_length=256,
                min_length=1,
                output_modality=OutputModality.EMBEDDING,
                rate_limit=RateLimitBudget(
                    requests_per_minute=500, requests_per_hour=10000
                ),
            ),
            "google/vit-base-patch16-224": ModelDescriptor(
                task=TaskKind.IMAGE_CLASSIFICATION,
                max_length=224,
                min_length=224,
                input_modality=InputModality.IMAGE,
                output_modality=OutputModality.JSON,
                rate_limit=RateLimitBudget(
                    requests_per_minute=200, requests_per_hour=5000
                ),
            ),
        }
    )
)


def is_known_model(model_id: str) -> bool:
    """Return whether ``model_id`` has its own registry entry."""
    return model_id in MODEL_DESCRIPTORS


def descriptor_for(model_id: str) -> ModelDescriptor:
    """Return the descriptor for ``model_id``.

    Unknown ids resolve to the ``gpt2`` descriptor; this never raises.
    """
    return MODEL_DESCRIPTORS.get(model_id, MODEL_DESCRIPTORS[DEFAULT_MODEL_ID])


def list_models() -> tuple[str, ...]:
    """Return every registered model id in registration order."""
    return tuple(MODEL_DESCRIPTORS)


def models_for_task(task: TaskKind | str) -> tuple[str, ...]:
    """Return the registered model ids that perform ``task``."""
    wanted = TaskKind(task)
    return tuple(
        model_id
        for model_id, descriptor in MODEL_DESCRIPTORS.items()
        if descriptor.task is wanted
    )
