"""Meeting summary pipeline.

Public API
----------
MeetingSummary
    Summary, action items and follow-up text for one transcript.
generate_summary
    Summarise a transcript through an ``InferenceClient``.
extract_action_items
    Regex-based action item extraction.
build_follow_up_text
    Compose the follow-up message.
truncate_text
    Cut text to a maximum number of words.

"""

from __future__ import annotations

from insightmeet.summary.models import MeetingSummary
from insightmeet.summary.service import DEFAULT_SUMMARY_MODEL, generate_summary
from insightmeet.summary.text import (
    build_follow_up_text,
    extract_action_items,
    truncate_text,
)

__all__ = [
    "DEFAULT_SUMMARY_MODEL",
    "MeetingSummary",
    "build_follow_up_text",
    "extract_action_items",
    "generate_summary",
    "truncate_text",
]
