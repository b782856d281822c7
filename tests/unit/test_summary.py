"""Unit tests for the meeting summary pipeline."""

from __future__ import annotations

import typing as typ

import msgspec
import pytest

from insightmeet.summary import (
    DEFAULT_SUMMARY_MODEL,
    MeetingSummary,
    build_follow_up_text,
    extract_action_items,
    generate_summary,
    truncate_text,
)
from insightmeet.summary.text import fallback_summary, fit_to_length, split_sentences
from tests.helpers.inference import ScriptedTransport, json_reply

if typ.TYPE_CHECKING:
    from tests.conftest import ClientFactory

TRANSCRIPT = (
    "We need to finalize the budget. Alice will draft the proposal. "
    "The weather was nice. Please send the notes by Friday."
)


class TestTextHelpers:
    """Tests for the local text helpers."""

    def test_split_sentences(self) -> None:
        """Sentences break after full stops followed by whitespace."""
        assert split_sentences("  One. Two.  Three  ") == ["One.", "Two.", "Three"]

    def test_extract_action_items_in_order(self) -> None:
        """Action phrases are returned in the order they appear."""
        assert extract_action_items(TRANSCRIPT) == (
            "need to finalize the budget.",
            "will draft the proposal.",
            "Please send the notes by Friday.",
        )

    def test_extract_action_items_limit(self) -> None:
        """At most ``limit`` items are returned."""
        assert len(extract_action_items(TRANSCRIPT, limit=1)) == 1

    def test_extract_action_items_deduplicates(self) -> None:
        """Repeated phrases appear once."""
        text = "We must fix CI. We must fix CI."
        assert extract_action_items(text) == ("must fix CI.",)

    def test_follow_up_lists_action_items(self) -> None:
        """Action items are listed after the summary."""
        message = build_follow_up_text("Budget agreed.", ["send notes."])

        assert message.startswith("Hi team,\n\nHere's a summary of our discussion:")
        assert "Budget agreed.\n\nAction Items:\n- send notes." in message
        assert message.endswith("Best regards,\n[Your Name]")

    def test_follow_up_without_action_items(self) -> None:
        """The action section is omitted when empty."""
        assert "Action Items" not in build_follow_up_text("Budget agreed.", [])

    def test_fallback_summary_takes_three_sentences(self) -> None:
        """The degraded summary is the first three sentences."""
        assert fallback_summary(TRANSCRIPT) == (
            "We need to finalize the budget. Alice will draft the proposal. "
            "The weather was nice."
        )

    @pytest.mark.parametrize(
        ("text", "max_words", "expected"),
        [
            ("one two three", 5, "one two three"),
            ("one two three four", 2, "one two..."),
        ],
        ids=["within-limit", "truncated"],
    )
    def test_truncate_text(self, text: str, max_words: int, expected: str) -> None:
        """Long text is cut to whole words with an ellipsis."""
        assert truncate_text(text, max_words) == expected

    def test_fit_to_length_cuts_at_word_boundary(self) -> None:
        """Clipping never splits a word."""
        assert fit_to_length("alpha beta gamma", 12) == "alpha beta"
        assert fit_to_length("alpha", 12) == "alpha"


class TestGenerateSummary:
    """Tests for generate_summary."""

    @pytest.mark.asyncio
    async def test_summary_with_action_items(
        self, client_factory: ClientFactory
    ) -> None:
        """A successful call yields the model summary and follow-up text."""
        scripted = ScriptedTransport(
            json_reply(200, [{"summary_text": "  Budget and proposal agreed.  "}])
        )
        client = client_factory(scripted)

        summary = await generate_summary(client, TRANSCRIPT)

        assert summary.summary == "Budget and proposal agreed."
        assert summary.degraded is False
        assert len(summary.action_items) == 3
        assert "- will draft the proposal." in summary.follow_up_text
        sent = msgspec.json.decode(scripted.requests[0].content)
        assert sent["parameters"] == {
            "max_length": 1024,
            "min_length": 50,
            "do_sample": False,
        }

    @pytest.mark.asyncio
    async def test_long_transcript_is_clipped_to_model_limit(
        self, client_factory: ClientFactory
    ) -> None:
        """Input sent upstream fits the model's length limit."""
        scripted = ScriptedTransport(json_reply(200, [{"summary_text": "Long."}]))
        client = client_factory(scripted)

        await generate_summary(client, "word " * 600)

        sent = msgspec.json.decode(scripted.requests[0].content)
        assert len(sent["inputs"]) <= 1024

    @pytest.mark.asyncio
    async def test_falls_back_to_default_model(
        self, client_factory: ClientFactory
    ) -> None:
        """A failing custom model is retried once with the default model."""
        scripted = ScriptedTransport(
            json_reply(403, {"error": "gated model"}),
            json_reply(200, [{"summary_text": "Recovered."}]),
        )
        client = client_factory(scripted)

        summary = await generate_summary(client, TRANSCRIPT, "google/pegasus-xsum")

        assert summary.summary == "Recovered."
        assert scripted.requests[0].url.path.endswith("/google/pegasus-xsum")
        assert scripted.requests[1].url.path.endswith(f"/{DEFAULT_SUMMARY_MODEL}")

    @pytest.mark.asyncio
    async def test_degrades_when_inference_fails(
        self, client_factory: ClientFactory
    ) -> None:
        """Failure of the default model yields a local summary."""
        client = client_factory(ScriptedTransport(json_reply(403, {"error": "nope"})))

        summary = await generate_summary(client, TRANSCRIPT)

        assert summary == MeetingSummary(
            summary=fallback_summary(TRANSCRIPT),
            action_items=extract_action_items(TRANSCRIPT, limit=3),
            follow_up_text=(
                f"Here's a summary of our discussion: {fallback_summary(TRANSCRIPT)}"
            ),
            degraded=True,
        )
