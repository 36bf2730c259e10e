"""Tests for admin error notifications."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import errors
from config import config
from errors import notify_admin


@pytest.fixture
def bot():
    errors._sent.clear()
    bot = MagicMock()
    bot.send_message = AsyncMock()
    yield bot
    errors._sent.clear()


@pytest.mark.asyncio
async def test_message_carries_error_kind(bot):
    with patch.object(config, "admin_user_ids", {7}):
        await notify_admin(bot, "Summary generation failed: 529", context="https://x.test/a", kind="upstream")

    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 7
    assert kwargs["text"].startswith("<b>bugle upstream error</b>")
    assert "<b>Context:</b> https://x.test/a" in kwargs["text"]


@pytest.mark.asyncio
async def test_repeat_is_suppressed(bot):
    with patch.object(config, "admin_user_ids", {7}):
        await notify_admin(bot, "boom", kind="upstream")
        await notify_admin(bot, "boom", kind="upstream")
        await notify_admin(bot, "boom", kind="network")

    assert bot.send_message.await_count == 2


@pytest.mark.asyncio
async def test_no_admins_sends_nothing(bot):
    with patch.object(config, "admin_user_ids", set()):
        await notify_admin(bot, "boom", kind="upstream")

    bot.send_message.assert_not_awaited()
