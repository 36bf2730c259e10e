#!/usr/bin/env python3
"""
bugle — news article summaries on Telegram
Send a link or paste article text, get a 60-word editorial summary back,
and keep the ones worth keeping in a per-chat archive.
"""

import html
import logging
import sys
from secrets import token_hex

from telegram import BotCommand, Update
from telegram.error import BadRequest
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from config import config
from errors import UpstreamAPIError, notify_admin
from fetcher import close_http_session, is_valid_url
from formatter import (
    build_saved_buttons,
    format_archive_message,
    format_error_message,
    format_summary_message,
)
from models import SummaryResult
from store import Archive, Store
from summarizer import Summarizer

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    stream=sys.stdout
)
logger = logging.getLogger("bugle.bot")

# Unsaved summaries kept per chat so the "Save to archive" button can find them
PENDING_SUMMARY_LIMIT = 20

_store: Store | None = None


def get_store() -> Store:
    global _store
    if _store is None:
        _store = Store(config.db_path)
    return _store


def _namespace(update: Update) -> str:
    return str(update.effective_chat.id) if update.effective_chat else "0"


def _is_allowed(update: Update) -> bool:
    """Check if the user is allowed to use the bot in this chat."""
    chat_id = update.effective_chat.id if update.effective_chat else 0
    user_id = update.effective_user.id if update.effective_user else 0

    # Group/channel: must be whitelisted
    if chat_id < 0:
        return config.is_whitelisted_chat(chat_id)

    # DM: admin check
    return config.is_admin(user_id)


def looks_like_url(text: str) -> bool:
    """A single token that parses as an absolute http(s) URL."""
    stripped = text.strip()
    return len(stripped.split()) == 1 and is_valid_url(stripped)


def command_text(raw: str) -> str:
    """Everything after the command word, line breaks intact (context.args drops them)."""
    parts = raw.split(None, 1)
    return parts[1] if len(parts) > 1 else ""


def _remember_summary(context: ContextTypes.DEFAULT_TYPE, result: SummaryResult) -> str:
    pending: dict = context.chat_data.setdefault("pending_summaries", {})
    token = token_hex(4)
    pending[token] = {"summary": result.summary, "url": result.source_url or ""}
    # Keep the pending map bounded (dicts keep insertion order)
    while len(pending) > PENDING_SUMMARY_LIMIT:
        del pending[next(iter(pending))]
    return token


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return
    await update.message.reply_text(
        "<b>bugle</b> -- the news in sixty words\n\n"
        "Send me an article link, or paste the article text, and I'll write a "
        "60-word newspaper-style summary.\n\n"
        "Commands:\n"
        "/summarize <code>&lt;url&gt;</code> -- summarize an article by link\n"
        "/text <code>&lt;article text&gt;</code> -- summarize pasted text\n"
        "/apikey <code>&lt;key&gt;</code> -- use your own LLM API key in this chat\n"
        "/archive -- show saved summaries\n"
        "/compact -- toggle compact display\n"
        "/status -- show this chat's settings\n"
        "/help -- show this message",
        parse_mode="HTML"
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await cmd_start(update, context)


async def _reply_with_summary(update: Update, context: ContextTypes.DEFAULT_TYPE, url: str = "", text: str = ""):
    """Full pipeline: URL or text -> summary message, edited into a placeholder."""
    store = get_store()
    state = store.load_state(_namespace(update))
    summarizer = Summarizer(api_key=state.api_key or None)

    thinking = await update.message.reply_text("Reading..." if url else "Summarizing...")

    try:
        if url:
            result = await summarizer.summarize_from_url(url)
        else:
            result = await summarizer.summarize_from_text(text)
    except Exception as e:
        logger.error(f"Error summarizing: {e}", exc_info=True)
        await thinking.edit_text(f"Something went wrong: {str(e)[:200]}")
        return

    if not result.success:
        await thinking.edit_text(format_error_message(result), parse_mode="HTML")
        if result.error_kind == UpstreamAPIError.kind:
            await notify_admin(
                context.bot, result.error or "", context=url or "text summary", kind=result.error_kind or ""
            )
        return

    token = _remember_summary(context, result)
    message = format_summary_message(result, save_token=token, compact=state.compact_mode)
    await thinking.edit_text(
        message["text"],
        parse_mode="HTML",
        reply_markup=message["reply_markup"],
        link_preview_options=message["link_preview_options"],
    )


async def cmd_summarize(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /summarize <url>"""
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    url = " ".join(context.args).strip() if context.args else ""
    if not url:
        await update.message.reply_text("Usage: /summarize <article_url>")
        return

    await _reply_with_summary(update, context, url=url)


async def cmd_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /text <article text>"""
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    text = command_text(update.message.text or "")
    if not text.strip():
        await update.message.reply_text(
            f"Usage: /text <article text> (at least {config.min_text_chars} characters)"
        )
        return

    await _reply_with_summary(update, context, text=text)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Route plain messages: a lone link is URL mode, anything else is text mode."""
    if not update.message:
        return

    if not _is_allowed(update):
        return

    text = update.message.text or ""
    if looks_like_url(text):
        await _reply_with_summary(update, context, url=text.strip())
    else:
        await _reply_with_summary(update, context, text=text)


async def cmd_apikey(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /apikey <key>, storing it for this chat."""
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    key = " ".join(context.args).strip() if context.args else ""
    if not key:
        await update.message.reply_text("Usage: /apikey <your_api_key>")
        return

    store = get_store()
    namespace = _namespace(update)
    state = store.load_state(namespace)
    state.api_key = key
    store.save_state(namespace, state)

    # Don't leave the key sitting in the chat history
    try:
        await update.message.delete()
    except BadRequest as e:
        logger.warning(f"Could not delete API key message in {namespace}: {e}")

    await context.bot.send_message(
        chat_id=update.effective_chat.id,
        text="API key saved. You can now summarize articles.",
    )


async def cmd_archive(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    archive = Archive(get_store(), _namespace(update))
    message = format_archive_message(archive.entries())
    await update.message.reply_text(
        message["text"],
        parse_mode="HTML",
        reply_markup=message["reply_markup"],
        link_preview_options=message["link_preview_options"],
    )


async def cmd_compact(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Toggle compact display for this chat."""
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    store = get_store()
    namespace = _namespace(update)
    state = store.load_state(namespace)
    state.compact_mode = not state.compact_mode
    store.save_state(namespace, state)
    await update.message.reply_text(f"Compact mode {'ON' if state.compact_mode else 'OFF'}.")


async def cmd_status(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not update.message:
        return

    if not _is_allowed(update):
        await update.message.reply_text("This command is restricted.")
        return

    state = get_store().load_state(_namespace(update))
    if state.api_key:
        key_text = f"own key ending in ...{html.escape(state.api_key[-4:])}"
    elif config.llm_api_key:
        key_text = "shared default key"
    else:
        key_text = "not configured"

    lines = [
        "<b>Status</b>",
        f"- Model: <code>{html.escape(config.llm_provider)}</code> / <code>{html.escape(config.llm_model)}</code>",
        f"- API key: {key_text}",
        f"- Compact mode: {'ON' if state.compact_mode else 'OFF'}",
        f"- Archived summaries: {len(state.archive)}",
        f"- Extraction: {html.escape(', '.join(config.extraction_strategies))}",
    ]
    await update.message.reply_text("\n".join(lines), parse_mode="HTML")


async def cb_archive(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle archive:save:<token> and archive:del:<entry_id> buttons."""
    query = update.callback_query
    if not query or not query.data:
        return

    if not _is_allowed(update):
        await query.answer("Restricted.", show_alert=True)
        return

    parts = query.data.split(":", 2)
    if len(parts) != 3:
        await query.answer()
        return
    _, action, value = parts
    archive = Archive(get_store(), _namespace(update))

    if action == "save":
        pending = context.chat_data.get("pending_summaries", {})
        item = pending.pop(value, None)
        if item is None:
            await query.answer("That summary is no longer available.", show_alert=True)
            return
        archive.add(item["summary"], item["url"])
        await query.answer("Saved to archive.")
        try:
            await query.edit_message_reply_markup(reply_markup=build_saved_buttons(item["url"]))
        except BadRequest as e:
            logger.debug(f"Could not update buttons after save: {e}")
        return

    if action == "del":
        removed = archive.remove(value)
        await query.answer("Deleted." if removed else "Already gone.")
        message = format_archive_message(archive.entries())
        try:
            await query.edit_message_text(
                message["text"],
                parse_mode="HTML",
                reply_markup=message["reply_markup"],
                link_preview_options=message["link_preview_options"],
            )
        except BadRequest as e:
            logger.debug(f"Could not refresh archive view: {e}")
        return

    await query.answer()


def main():
    config.validate()

    logger.info("Starting bugle bot...")

    app = (
        Application.builder()
        .token(config.telegram_token)
        .build()
    )

    async def _post_init(application: Application):
        await application.bot.set_my_commands([
            BotCommand("start", "Show intro and usage"),
            BotCommand("help", "Show help"),
            BotCommand("summarize", "Summarize an article by link"),
            BotCommand("text", "Summarize pasted article text"),
            BotCommand("apikey", "Use your own LLM API key"),
            BotCommand("archive", "Show saved summaries"),
            BotCommand("compact", "Toggle compact display"),
            BotCommand("status", "Show this chat's settings"),
        ])
        logger.info("Registered bot command menu entries")

    app.post_init = _post_init

    async def _post_shutdown(application: Application):
        await close_http_session()

    app.post_shutdown = _post_shutdown

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("summarize", cmd_summarize))
    app.add_handler(CommandHandler("text", cmd_text))
    app.add_handler(CommandHandler("apikey", cmd_apikey))
    app.add_handler(CommandHandler("archive", cmd_archive))
    app.add_handler(CommandHandler("compact", cmd_compact))
    app.add_handler(CommandHandler("status", cmd_status))
    app.add_handler(CallbackQueryHandler(cb_archive, pattern=r"^archive:"))
    app.add_handler(MessageHandler(filters.ChatType.PRIVATE & filters.TEXT & ~filters.COMMAND, handle_message))

    logger.info("Bot is running. Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
