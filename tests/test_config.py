"""Tests for environment-driven configuration."""

import pytest

from config import Config, _parse_int_csv, _parse_name_csv


def test_parse_int_csv():
    assert _parse_int_csv("1, 2,,3", "IDS") == {1, 2, 3}
    assert _parse_int_csv("  ", "IDS") == set()


def test_parse_int_csv_rejects_garbage():
    with pytest.raises(ValueError, match="IDS contains invalid values: x"):
        _parse_int_csv("1,x", "IDS")


def test_parse_name_csv_keeps_order():
    assert _parse_name_csv("Direct, allorigins,,trafilatura ") == ["direct", "allorigins", "trafilatura"]


def test_strategies_from_environment(monkeypatch):
    monkeypatch.setenv("EXTRACTION_STRATEGIES", "direct,corsproxy")
    assert Config().extraction_strategies == ["direct", "corsproxy"]


def test_validate_collects_errors():
    cfg = Config(telegram_token="", llm_provider="gemini", min_text_chars=0)
    with pytest.raises(SystemExit) as exc:
        cfg.validate()
    message = str(exc.value)
    assert "TELEGRAM_BOT_TOKEN is not set" in message
    assert "LLM_PROVIDER must be" in message
    assert "MIN_TEXT_CHARS must be > 0" in message


def test_validate_accepts_defaults():
    Config(telegram_token="123:abc").validate()


def test_admin_and_whitelist():
    cfg = Config(admin_user_ids={7}, whitelisted_chat_ids={-100})
    assert cfg.is_admin(7) and not cfg.is_admin(8)
    assert cfg.is_whitelisted_chat(-100) and not cfg.is_whitelisted_chat(-200)
    assert Config(admin_user_ids=set()).is_admin(8)


def test_validate_rejects_unknown_strategy_names():
    cfg = Config(telegram_token="123:abc", extraction_strategies=["direct", "drect"])
    with pytest.raises(SystemExit) as exc:
        cfg.validate()
    assert "EXTRACTION_STRATEGIES has unknown names: drect" in str(exc.value)
