"""Task-specific helpers layered on :meth:`InferenceClient.call`.

Each helper returns the decoded value in the form its task naturally
produces (text, image bytes, an embedding vector) or ``None`` when the call
was cancelled.
"""

from __future__ import annotations

import asyncio
import typing as typ

from insightmeet.inference.constants import BATCH_PAUSE_S, DEFAULT_BATCH_SIZE
from insightmeet.inference.decoder import ResponseShape
from insightmeet.inference.options import DEFAULT_OPTIONS

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from insightmeet.inference.client import InferenceClient
    from insightmeet.inference.decoder import DecodedResult
    from insightmeet.inference.options import CallOptions
    from insightmeet.inference.transport import SleepFunc


def _text(result: DecodedResult | None) -> str | None:
    if result is None:
        return None
    if isinstance(result.value, str):
        return result.value
    return str(result.value)


async def generate_text(
    client: InferenceClient,
    model_id: str,
    prompt: str,
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Continue ``prompt`` with a text-generation model."""
    return _text(await client.call(model_id, prompt, parameters, options))


async def summarize_text(
    client: InferenceClient,
    model_id: str,
    text: str,
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Summarise ``text`` with a summarisation model."""
    return _text(await client.call(model_id, text, parameters, options))


async def answer_question(  # noqa: PLR0913 - mirrors the call signature
    client: InferenceClient,
    model_id: str,
    question: str,
    context: str,
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Answer ``question`` from ``context`` with an extractive QA model."""
    inputs = {"question": question, "context": context}
    return _text(await client.call(model_id, inputs, parameters, options))


async def translate_text(
    client: InferenceClient,
    model_id: str,
    text: str,
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Translate ``text`` with a translation model."""
    return _text(await client.call(model_id, text, parameters, options))


async def analyze_sentiment(
    client: InferenceClient,
    model_id: str,
    text: str,
    options: CallOptions = DEFAULT_OPTIONS,
) -> str | None:
    """Return the top sentiment label formatted as ``"label (score)"``."""
    return _text(await client.call(model_id, text, None, options))


async def generate_image(
    client: InferenceClient,
    model_id: str,
    prompt: str,
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
) -> bytes | None:
    """Render ``prompt`` with a text-to-image model.

    Returns
    -------
    bytes | None
        The image bytes, or ``None`` when cancelled or when the upstream
        answered with something other than an image.

    """
    result = await client.call(model_id, prompt, parameters, options)
    if result is None or not isinstance(result.value, bytes):
        return None
    return result.value


async def get_embeddings(
    client: InferenceClient,
    model_id: str,
    text: str,
    options: CallOptions = DEFAULT_OPTIONS,
) -> list[float] | None:
    """Return the sentence embedding of ``text``.

    Token-level feature matrices are reduced to their first row.
    """
    result = await client.call(model_id, text, None, options)
    if result is None:
        return None
    if result.shape is ResponseShape.FEATURES:
        return list(result.value[0])
    if result.shape is ResponseShape.EMBEDDING:
        return list(result.value)
    return None


async def batch_process(  # noqa: PLR0913 - mirrors the call signature
    client: InferenceClient,
    model_id: str,
    inputs: cabc.Sequence[object],
    parameters: cabc.Mapping[str, object] | None = None,
    options: CallOptions = DEFAULT_OPTIONS,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    sleep: SleepFunc = asyncio.sleep,
) -> list[DecodedResult | None]:
    """Call ``model_id`` for every input, ``batch_size`` calls at a time.

    Calls within a batch run concurrently; batches run one after another
    with a short pause between them. Results keep the order of ``inputs``.
    The first failing call's error propagates.

    Raises
    ------
    ValueError
        If ``batch_size`` is not positive.

    """
    if batch_size < 1:
        msg = f"batch_size must be positive, got: {batch_size}"
        raise ValueError(msg)

    results: list[DecodedResult | None] = []
    for start in range(0, len(inputs), batch_size):
        batch = inputs[start : start + batch_size]
        results.extend(
            await asyncio.gather(
                *(client.call(model_id, item, parameters, options) for item in batch)
            )
        )
        if start + batch_size < len(inputs):
            await sleep(BATCH_PAUSE_S)
    return results
