"""Normalise heterogeneous inference responses into one decoded result.

The hosted inference API answers with a different body for each task: lists
of ``{"summary_text": ...}`` records for summarisation, ``{"label", "score"}``
records for classification, bare float vectors for embeddings, raw image
bytes for text-to-image, and so on. :func:`decode_response` tries a fixed,
ordered list of structural predicates (list forms before single-object
forms) and returns the first match as a :class:`DecodedResult`.

Unrecognised bodies never raise. They are logged with the ``decode-error``
code and returned as their JSON text so that unexpected but present model
output still reaches the caller.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

import msgspec

from insightmeet.inference.errors import ErrorCode
from insightmeet.inference.registry import TaskKind
from insightmeet.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from insightmeet.inference.registry import ModelDescriptor

logger = get_logger(__name__)


class ResponseShape(enum.StrEnum):
    """Tag identifying which known body shape a response matched."""

    SUMMARY = "summary"
    GENERATED_TEXT = "generated_text"
    TRANSLATION = "translation"
    ANSWER = "answer"
    LABEL = "label"
    CONVERSATION = "conversation"
    ZERO_SHOT = "zero_shot"
    EMBEDDING = "embedding"
    FEATURES = "features"
    IMAGE = "image"
    TEXT = "text"
    RAW = "raw"
    UNRECOGNISED = "unrecognised"


class DecodedResult(msgspec.Struct, frozen=True, kw_only=True):
    """Canonical value extracted from an inference response.

    Attributes
    ----------
    shape
        Which known response shape matched.
    value
        The extracted payload: a string for text-like shapes, a tuple of
        floats for embeddings, nested float tuples for feature extraction,
        bytes for images. Unrecognised bodies carry their JSON text. Cached
        results are shared between callers, so vectors are immutable.
    score
        Confidence attached to answers and labels, when present.
    matches_task
        ``False`` when the matched shape is not one the model's task is
        expected to produce.
    raw
        The decoded body as received.

    """

    shape: ResponseShape
    value: typ.Any
    score: float | None = None
    matches_task: bool = True
    raw: typ.Any = None


TASK_SHAPES: typ.Final[cabc.Mapping[TaskKind, frozenset[ResponseShape]]] = {
    TaskKind.TEXT_GENERATION: frozenset(
        {ResponseShape.GENERATED_TEXT, ResponseShape.TEXT}
    ),
    TaskKind.CONVERSATIONAL: frozenset(
        {ResponseShape.CONVERSATION, ResponseShape.GENERATED_TEXT}
    ),
    TaskKind.SUMMARIZATION: frozenset({ResponseShape.SUMMARY}),
    TaskKind.QUESTION_ANSWERING: frozenset({ResponseShape.ANSWER}),
    TaskKind.SENTIMENT_ANALYSIS: frozenset({ResponseShape.LABEL}),
    TaskKind.TRANSLATION: frozenset({ResponseShape.TRANSLATION}),
    TaskKind.TEXT_TO_IMAGE: frozenset({ResponseShape.IMAGE}),
    TaskKind.FEATURE_EXTRACTION: frozenset(
        {ResponseShape.EMBEDDING, ResponseShape.FEATURES}
    ),
    TaskKind.IMAGE_CLASSIFICATION: frozenset({ResponseShape.LABEL}),
    TaskKind.ZERO_SHOT_CLASSIFICATION: frozenset({ResponseShape.ZERO_SHOT}),
}


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _has_fields(value: object, **fields: typ.Callable[[object], bool]) -> bool:
    """Return whether ``value`` is a dict whose ``fields`` pass their checks."""
    if not isinstance(value, dict):
        return False
    record = typ.cast("dict[str, object]", value)
    return all(name in record and check(record[name]) for name, check in fields.items())


def _is_str(value: object) -> bool:
    return isinstance(value, str)


def _is_str_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _is_number_list(value: object) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(_is_number(item) for item in value)
    )


def _is_summary(value: object) -> bool:
    return _has_fields(value, summary_text=_is_str)


def _is_generated(value: object) -> bool:
    return _has_fields(value, generated_text=_is_str)


def _is_translation(value: object) -> bool:
    return _has_fields(value, translation_text=_is_str)


def _is_answer(value: object) -> bool:
    return _has_fields(value, answer=_is_str, score=_is_number)


def _is_label(value: object) -> bool:
    return _has_fields(value, label=_is_str, score=_is_number)


def _is_conversation(value: object) -> bool:
    return _has_fields(value, generated_text=_is_str) and _has_fields(
        typ.cast("dict[str, object]", value).get("conversation"),
        past_user_inputs=_is_str_list,
        generated_responses=_is_str_list,
    )


def _is_zero_shot(value: object) -> bool:
    return _has_fields(value, labels=_is_str_list, scores=_is_number_list)


def _list_of(
    predicate: typ.Callable[[object], bool],
) -> typ.Callable[[object], bool]:
    def check(value: object) -> bool:
        return (
            isinstance(value, list)
            and bool(value)
            and all(predicate(item) for item in value)
        )

    return check


def _field(name: str) -> typ.Callable[[object], object]:
    def extract(record: object) -> object:
        return typ.cast("dict[str, object]", record)[name]

    return extract


def _first(
    extract: typ.Callable[[object], object],
) -> typ.Callable[[object], object]:
    def extract_first(items: object) -> object:
        return extract(typ.cast("list[object]", items)[0])

    return extract_first


def _format_label(record: object) -> str:
    fields = typ.cast("dict[str, typ.Any]", record)
    return f"{fields['label']} ({float(fields['score']):.3f})"


def _format_zero_shot(record: object) -> str:
    fields = typ.cast("dict[str, typ.Any]", record)
    return f"{fields['labels'][0]} ({float(fields['scores'][0]):.3f})"


def _nested_first(items: object) -> object:
    return typ.cast("list[list[object]]", items)[0][0]


def _score_of(record: object) -> float | None:
    if isinstance(record, dict):
        fields = typ.cast("dict[str, object]", record)
        score = fields.get("score")
        if _is_number(score):
            return float(typ.cast("float", score))
        scores = fields.get("scores")
        if _is_number_list(scores):
            return float(typ.cast("list[float]", scores)[0])
    return None


def _identity(value: object) -> object:
    return value


@dc.dataclass(frozen=True, slots=True)
class _ShapeRule:
    """One entry of the decoder's priority list."""

    shape: ResponseShape
    matches: typ.Callable[[object], bool]
    extract: typ.Callable[[object], object]
    scored: typ.Callable[[object], object] | None = None


_PRIORITY: typ.Final[tuple[_ShapeRule, ...]] = (
    # list-of-record forms
    _ShapeRule(
        ResponseShape.SUMMARY, _list_of(_is_summary), _first(_field("summary_text"))
    ),
    _ShapeRule(
        ResponseShape.GENERATED_TEXT,
        _list_of(_is_generated),
        _first(_field("generated_text")),
    ),
    _ShapeRule(
        ResponseShape.TRANSLATION,
        _list_of(_is_translation),
        _first(_field("translation_text")),
    ),
    _ShapeRule(
        ResponseShape.ANSWER,
        _list_of(_is_answer),
        _first(_field("answer")),
        _first(_identity),
    ),
    _ShapeRule(
        ResponseShape.LABEL,
        _list_of(_is_label),
        _first(_format_label),
        _first(_identity),
    ),
    _ShapeRule(
        ResponseShape.LABEL,
        _list_of(_list_of(_is_label)),
        lambda items: _format_label(_nested_first(items)),
        _nested_first,
    ),
    # single-record forms
    _ShapeRule(ResponseShape.SUMMARY, _is_summary, _field("summary_text")),
    _ShapeRule(ResponseShape.CONVERSATION, _is_conversation, _field("generated_text")),
    _ShapeRule(ResponseShape.GENERATED_TEXT, _is_generated, _field("generated_text")),
    _ShapeRule(ResponseShape.TRANSLATION, _is_translation, _field("translation_text")),
    _ShapeRule(ResponseShape.ANSWER, _is_answer, _field("answer"), _identity),
    _ShapeRule(ResponseShape.LABEL, _is_label, _format_label, _identity),
    _ShapeRule(ResponseShape.ZERO_SHOT, _is_zero_shot, _format_zero_shot, _identity),
    # vectors, binary and text
    _ShapeRule(
        ResponseShape.EMBEDDING,
        _is_number_list,
        lambda items: tuple(float(item) for item in typ.cast("list[float]", items)),
    ),
    _ShapeRule(
        ResponseShape.FEATURES,
        _list_of(_is_number_list),
        lambda rows: tuple(
            tuple(float(item) for item in row)
            for row in typ.cast("list[list[float]]", rows)
        ),
    ),
    _ShapeRule(
        ResponseShape.IMAGE,
        lambda body: isinstance(body, bytes | bytearray),
        bytes,
    ),
    _ShapeRule(ResponseShape.TEXT, _is_str, _identity),
)


def _stringify(body: object) -> str:
    try:
        return msgspec.json.encode(body).decode("utf-8")
    except (TypeError, msgspec.EncodeError):
        return str(body)


def decode_response(body: object, descriptor: ModelDescriptor) -> DecodedResult:
    """Decode ``body`` for a model described by ``descriptor``.

    Parameters
    ----------
    body
        Response body as read by the transport: decoded JSON, ``bytes`` for
        image responses, or ``str`` for plain text.
    descriptor
        Registry entry of the called model.

    Returns
    -------
    DecodedResult
        The first matching shape, or an ``UNRECOGNISED`` result whose value
        is the JSON text of ``body``.

    """
    for rule in _PRIORITY:
        if not rule.matches(body):
            continue
        expected = TASK_SHAPES.get(descriptor.task, frozenset())
        matches_task = rule.shape in expected
        if not matches_task:
            log_warning(
                logger,
                "Response shape %s does not match task %s",
                rule.shape,
                descriptor.task,
            )
        score = _score_of(rule.scored(body)) if rule.scored is not None else None
        return DecodedResult(
            shape=rule.shape,
            value=rule.extract(body),
            score=score,
            matches_task=matches_task,
            raw=body,
        )

    log_warning(
        logger,
        "[%s] no known response shape for task %s; returning raw text",
        ErrorCode.DECODE_ERROR,
        descriptor.task,
    )
    return DecodedResult(
        shape=ResponseShape.UNRECOGNISED,
        value=_stringify(body),
        matches_task=False,
        raw=body,
    )


def passthrough(body: object) -> DecodedResult:
    """Wrap ``body`` without shape matching, for calls that skip validation."""
    return DecodedResult(shape=ResponseShape.RAW, value=body, raw=body)
