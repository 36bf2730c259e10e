"""Tests for Telegram message formatting and input routing."""

from datetime import datetime, timezone

from bot import command_text, looks_like_url
from formatter import (
    ARCHIVE_PREVIEW_LIMIT,
    TEXT_MODE_HINT,
    build_saved_buttons,
    format_archive_message,
    format_error_message,
    format_summary_message,
)
from models import ArchiveEntry, SummaryResult

URL = "https://news.example.com/markets"


def _buttons(markup):
    return [button for row in markup.inline_keyboard for button in row]


class TestSummaryMessage:
    def test_full_message(self):
        result = SummaryResult.ok("Rates <held> steady.", title="Fed & Markets", source_url=URL)
        message = format_summary_message(result, save_token="ab12cd34")

        assert f'<a href="{URL}">Fed &amp; Markets</a>' in message["text"]
        assert "Rates &lt;held&gt; steady." in message["text"]
        assert "<i>3 words</i>" in message["text"]
        buttons = _buttons(message["reply_markup"])
        assert buttons[0].url == URL
        assert buttons[1].callback_data == "archive:save:ab12cd34"
        assert message["link_preview_options"].url == URL

    def test_compact_message(self):
        result = SummaryResult.ok("Just the summary.", title="Title", source_url=URL)
        message = format_summary_message(result, save_token="t", compact=True)

        assert message["text"] == "Just the summary."
        assert message["link_preview_options"].is_disabled is True

    def test_text_mode_has_no_read_button(self):
        message = format_summary_message(SummaryResult.ok("From pasted text."), save_token="t")

        assert [b.text for b in _buttons(message["reply_markup"])] == ["Save to archive"]
        assert build_saved_buttons(None) is None


class TestErrorMessage:
    def test_network_failure_suggests_text_mode(self):
        text = format_error_message(SummaryResult.failure("Could not read the article.", "network"))
        assert TEXT_MODE_HINT in text

    def test_validation_failure_has_no_hint(self):
        text = format_error_message(SummaryResult.failure("Text is too short.", "validation"))
        assert text == "Text is too short."


class TestArchiveMessage:
    def test_empty(self):
        message = format_archive_message([])
        assert "No saved summaries" in message["text"]
        assert message["reply_markup"] is None

    def test_lists_entries_with_delete_buttons(self):
        entries = [
            ArchiveEntry(f"id{n}", f"summary {n}", URL, datetime(2024, 5, 1, 12, n, tzinfo=timezone.utc))
            for n in range(ARCHIVE_PREVIEW_LIMIT + 2)
        ]
        message = format_archive_message(entries)

        buttons = _buttons(message["reply_markup"])
        assert len(buttons) == ARCHIVE_PREVIEW_LIMIT
        assert buttons[0].callback_data == "archive:del:id0"
        assert "2024-05-01 12:00 UTC" in message["text"]
        assert "2 older entries not shown" in message["text"]


class TestRouting:
    def test_lone_link_is_url_mode(self):
        assert looks_like_url(f"  {URL}\n")

    def test_prose_is_text_mode(self):
        assert not looks_like_url(f"Read this: {URL}")
        assert not looks_like_url("The central bank held rates steady.")


class TestCommandText:
    def test_keeps_first_word_after_newline(self):
        assert command_text("/text\nFirst line.\nSecond line.") == "First line.\nSecond line."

    def test_keeps_line_breaks(self):
        assert command_text("/text Rates held.\n\nMarkets rose.") == "Rates held.\n\nMarkets rose."

    def test_bare_command(self):
        assert command_text("/text") == ""
        assert command_text("/text   ") == ""

    def test_addressed_command(self):
        assert command_text("/text@bugle_bot Rates held.") == "Rates held."
