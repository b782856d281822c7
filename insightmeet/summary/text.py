"""Local text helpers for meeting summaries.

These functions never touch the network: they split sentences, pull action
items out with regular expressions, compose the follow-up message and build
the degraded summary used when inference is unavailable.
"""

from __future__ import annotations

import re
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

MAX_ACTION_ITEMS = 5
FALLBACK_ACTION_ITEMS = 3
FALLBACK_SENTENCES = 3
DEFAULT_MAX_WORDS = 1000

_SENTENCE_BREAK = re.compile(r"(?<=\.)\s+")
_ACTION_PATTERNS = (
    re.compile(
        r"(?:need to|must|should|will|let's|we'll|please|kindly|action item|todo|task)"
        r"[^.!?]*[.!?]",
        re.IGNORECASE,
    ),
    re.compile(
        r"(?:follow up|next steps|action items?|tasks?|todos?):?[^.!?]*[.!?]",
        re.IGNORECASE,
    ),
)


def split_sentences(text: str) -> list[str]:
    """Split ``text`` after each full stop followed by whitespace."""
    return [sentence for sentence in _SENTENCE_BREAK.split(text.strip()) if sentence]


def extract_action_items(text: str, *, limit: int = MAX_ACTION_ITEMS) -> tuple[str, ...]:
    """Return up to ``limit`` distinct action phrases found in ``text``.

    Phrases are matched in pattern order and keep their first-seen order.

    Examples
    --------
    >>> extract_action_items("We need to ship the fix. Lunch was good.")
    ('need to ship the fix.',)

    """
    found: dict[str, None] = {}
    for pattern in _ACTION_PATTERNS:
        for match in pattern.finditer(text):
            found.setdefault(match.group(0).strip(), None)
    return tuple(found)[:limit]


def build_follow_up_text(summary: str, action_items: cabc.Sequence[str]) -> str:
    """Compose the follow-up message sent after a meeting."""
    action_section = (
        "\n\nAction Items:\n- " + "\n- ".join(action_items) if action_items else ""
    )
    return (
        "Hi team,\n\n"
        "Here's a summary of our discussion:\n\n"
        f"{summary}{action_section}\n\n"
        "Please let me know if you have any questions or need further "
        "clarification.\n\n"
        "Best regards,\n"
        "[Your Name]"
    )


def fallback_summary(text: str) -> str:
    """Return the first three sentences of ``text``."""
    return " ".join(split_sentences(text)[:FALLBACK_SENTENCES])


def truncate_text(text: str, max_words: int = DEFAULT_MAX_WORDS) -> str:
    """Cut ``text`` to ``max_words`` words, marking the cut with ``...``.

    Text already within the limit is returned unchanged.
    """
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


def fit_to_length(text: str, max_length: int) -> str:
    """Cut ``text`` to at most ``max_length`` characters at a word boundary."""
    if len(text) <= max_length:
        return text
    clipped = text[:max_length]
    boundary = clipped.rfind(" ")
    return clipped[:boundary] if boundary > 0 else clipped
