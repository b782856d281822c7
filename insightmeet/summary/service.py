"""Turn meeting transcripts into summaries through the inference client."""

from __future__ import annotations

import typing as typ

from insightmeet.inference.errors import InferenceError
from insightmeet.inference.options import CallOptions
from insightmeet.inference.registry import descriptor_for
from insightmeet.logging import get_logger, log_info, log_warning
from insightmeet.summary.models import MeetingSummary
from insightmeet.summary.text import (
    FALLBACK_ACTION_ITEMS,
    build_follow_up_text,
    extract_action_items,
    fallback_summary,
    fit_to_length,
)

if typ.TYPE_CHECKING:
    from insightmeet.inference.client import InferenceClient

logger = get_logger(__name__)

DEFAULT_SUMMARY_MODEL = "facebook/bart-large-cnn"

_SUMMARY_OPTIONS = CallOptions(max_retries=3, retry_delay_ms=1000, timeout_ms=30_000)


async def _summarize(client: InferenceClient, text: str, model_id: str) -> str:
    """Summarise ``text`` with ``model_id``, retrying once with the default model.

    Raises
    ------
    InferenceError
        If the default model fails too, or the call was cancelled.

    """
    descriptor = descriptor_for(model_id)
    parameters = {
        "max_length": descriptor.max_length,
        "min_length": descriptor.min_length,
        "do_sample": False,
    }
    try:
        result = await client.call(
            model_id,
            fit_to_length(text, descriptor.max_length),
            parameters,
            _SUMMARY_OPTIONS,
        )
    except InferenceError as exc:
        if model_id == DEFAULT_SUMMARY_MODEL:
            raise
        log_warning(
            logger,
            "Summary model %s failed (%s); retrying with %s",
            model_id,
            exc.code,
            DEFAULT_SUMMARY_MODEL,
        )
        return await _summarize(client, text, DEFAULT_SUMMARY_MODEL)

    if result is None:
        raise InferenceError.max_retries_exceeded(model_id, 0)
    return str(result.value)


async def generate_summary(
    client: InferenceClient,
    text: str,
    model_id: str = DEFAULT_SUMMARY_MODEL,
) -> MeetingSummary:
    """Summarise a meeting transcript.

    The transcript is clipped to the model's input limit and summarised.
    Action items are pulled from the full transcript and listed in the
    follow-up message. When inference fails the summary degrades to the
    transcript's first sentences instead of raising.

    Parameters
    ----------
    client
        Client used for the summarisation call.
    text
        Meeting transcript.
    model_id
        Summarisation model; ``facebook/bart-large-cnn`` is tried when any
        other model fails.

    Returns
    -------
    MeetingSummary
        The summary, action items and follow-up text.

    """
    try:
        summary = (await _summarize(client, text, model_id)).strip()
    except InferenceError as exc:
        log_warning(
            logger,
            "Summary generation failed (%s: %s); using local fallback",
            exc.code,
            exc.message,
        )
        return _fallback(text)

    action_items = extract_action_items(text)
    log_info(
        logger,
        "Generated summary with %s: %d action items",
        model_id,
        len(action_items),
    )
    return MeetingSummary(
        summary=summary,
        action_items=action_items,
        follow_up_text=build_follow_up_text(summary, action_items),
    )


def _fallback(text: str) -> MeetingSummary:
    summary = fallback_summary(text)
    return MeetingSummary(
        summary=summary,
        action_items=extract_action_items(text, limit=FALLBACK_ACTION_ITEMS),
        follow_up_text=f"Here's a summary of our discussion: {summary}",
        degraded=True,
    )
