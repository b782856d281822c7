"""Input checks performed before any network call."""

from __future__ import annotations

import typing as typ

import msgspec

from insightmeet.inference.errors import InferenceError
from insightmeet.inference.registry import InputModality, TaskKind, is_known_model

if typ.TYPE_CHECKING:
    from insightmeet.inference.registry import ModelDescriptor

_QA_FIELDS = ("question", "context")


def _validate_text(text: str, descriptor: ModelDescriptor) -> None:
    if len(text) > descriptor.max_length:
        raise InferenceError.input_too_long(len(text), descriptor.max_length)


def _validate_question(inputs: object, descriptor: ModelDescriptor) -> None:
    if isinstance(inputs, dict):
        fields = typ.cast("dict[str, object]", inputs)
        if all(isinstance(fields.get(name), str) for name in _QA_FIELDS):
            _validate_text(typ.cast("str", fields["context"]), descriptor)
            return
    raise InferenceError.invalid_input_type(
        "a mapping with 'question' and 'context' strings", inputs
    )


def validate_input(
    model_id: str,
    inputs: object,
    descriptor: ModelDescriptor,
) -> None:
    """Reject input the model cannot accept.

    Text models take a string no longer than ``descriptor.max_length``
    characters (question answering takes ``{"question", "context"}`` and the
    limit applies to the context). Image and audio models take bytes. The
    descriptor's ``min_length`` is advisory and not checked.

    Raises
    ------
    InferenceError
        ``unknown-model`` when ``model_id`` is not registered,
        ``invalid-input-type`` for the wrong payload kind, and
        ``input-too-long`` when text exceeds the model limit.

    """
    if not is_known_model(model_id):
        raise InferenceError.unknown_model(model_id)

    match descriptor.input_modality:
        case InputModality.TEXT if descriptor.task is TaskKind.QUESTION_ANSWERING:
            _validate_question(inputs, descriptor)
        case InputModality.TEXT:
            if not isinstance(inputs, str):
                raise InferenceError.invalid_input_type("a string", inputs)
            _validate_text(inputs, descriptor)
        case InputModality.IMAGE | InputModality.AUDIO:
            if not isinstance(inputs, bytes | bytearray):
                raise InferenceError.invalid_input_type("binary media", inputs)
        case InputModality.MULTIMODAL:
            pass


def payload_size(inputs: object) -> int:
    """Return the size recorded in metrics: byte length or JSON text length."""
    if isinstance(inputs, bytes | bytearray):
        return len(inputs)
    try:
        return len(msgspec.json.encode(inputs))
    except (TypeError, msgspec.EncodeError):
        return len(str(inputs))
