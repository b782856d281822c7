"""Meeting summary result structure."""

from __future__ import annotations

import msgspec


class MeetingSummary(msgspec.Struct, kw_only=True, frozen=True):
    """Summary of a meeting transcript.

    Attributes
    ----------
    summary
        Narrative summary of the discussion.
    action_items
        Action items found in the transcript (up to 5).
    follow_up_text
        Ready-to-send follow-up message.
    degraded
        ``True`` when inference failed and the summary was built locally.

    """

    summary: str
    action_items: tuple[str, ...] = ()
    follow_up_text: str = ""
    degraded: bool = False
