"""
Formatter — builds HTML Telegram messages with inline keyboard buttons.

Summary message format:
  <b>Title</b>

  Summary text.

  <i>60 words</i>
"""

import html
from datetime import timezone

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, LinkPreviewOptions

from errors import ContentError, NetworkError, UpstreamAPIError
from models import ArchiveEntry, SummaryResult

ARCHIVE_PREVIEW_LIMIT = 8
ARCHIVE_SNIPPET_CHARS = 280

TEXT_MODE_HINT = "Tip: paste the article text with /text instead."


def format_summary_message(result: SummaryResult, save_token: str, compact: bool = False) -> dict:
    """
    Returns a dict with 'text', 'reply_markup' (InlineKeyboardMarkup), and link preview options.
    """
    text = _build_summary_text(result, compact)
    reply_markup = _build_summary_buttons(result.source_url, save_token)
    return {
        "text": text,
        "reply_markup": reply_markup,
        "link_preview_options": _build_link_preview(result.source_url, compact),
    }


def format_error_message(result: SummaryResult) -> str:
    """Human-readable failure text with a remedial hint for the failure kind."""
    lines = [html.escape(result.error or "Unable to process the article.")]
    if result.error_kind in (NetworkError.kind, ContentError.kind):
        lines.append("")
        lines.append(TEXT_MODE_HINT)
    elif result.error_kind == UpstreamAPIError.kind:
        lines.append("")
        lines.append("Check your API key with /status, or try again shortly.")
    return "\n".join(lines)


def _build_summary_text(result: SummaryResult, compact: bool) -> str:
    safe_summary = html.escape(result.summary or "")
    if compact:
        return safe_summary

    lines = []
    if result.title:
        safe_title = html.escape(result.title)
        if result.source_url:
            lines.append(f'<b><a href="{html.escape(result.source_url)}">{safe_title}</a></b>')
        else:
            lines.append(f"<b>{safe_title}</b>")
        lines.append("")

    lines.append(safe_summary)
    lines.append("")
    lines.append(f"<i>{result.word_count} words</i>")
    return "\n".join(lines)


def _build_link_preview(url: str | None, compact: bool) -> LinkPreviewOptions:
    """Build link preview options for URL embeds."""
    if compact or not url:
        return LinkPreviewOptions(is_disabled=True)
    return LinkPreviewOptions(
        url=url,
        prefer_small_media=True,
        show_above_text=False,
    )


def _build_summary_buttons(url: str | None, save_token: str) -> InlineKeyboardMarkup:
    buttons = [InlineKeyboardButton("Save to archive", callback_data=f"archive:save:{save_token}")]
    if url:
        buttons.insert(0, InlineKeyboardButton("Read", url=url))
    return InlineKeyboardMarkup([buttons])


def build_saved_buttons(url: str | None) -> InlineKeyboardMarkup | None:
    """Buttons after saving: the save button is gone, the read link stays."""
    if not url:
        return None
    return InlineKeyboardMarkup([[InlineKeyboardButton("Read", url=url)]])


def format_archive_message(entries: list[ArchiveEntry]) -> dict:
    """Archive listing, newest first, with one delete button per shown entry."""
    if not entries:
        return {
            "text": "<b>Archive</b>\n\nNo saved summaries yet.",
            "reply_markup": None,
            "link_preview_options": LinkPreviewOptions(is_disabled=True),
        }

    shown = entries[:ARCHIVE_PREVIEW_LIMIT]
    lines = [f"<b>Archive</b> ({len(entries)} saved)"]
    rows = []
    for number, entry in enumerate(shown, start=1):
        stamp = entry.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        snippet = entry.summary
        if len(snippet) > ARCHIVE_SNIPPET_CHARS:
            snippet = snippet[: ARCHIVE_SNIPPET_CHARS - 1] + "…"
        lines.append("")
        header = f"<b>{number}.</b> {stamp}"
        if entry.url:
            header += f' | <a href="{html.escape(entry.url)}">source</a>'
        lines.append(header)
        lines.append(html.escape(snippet))
        rows.append([InlineKeyboardButton(f"Delete {number}", callback_data=f"archive:del:{entry.id}")])

    if len(entries) > len(shown):
        lines.append("")
        lines.append(f"<i>{len(entries) - len(shown)} older entries not shown.</i>")

    return {
        "text": "\n".join(lines),
        "reply_markup": InlineKeyboardMarkup(rows),
        "link_preview_options": LinkPreviewOptions(is_disabled=True),
    }
