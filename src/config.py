"""Configuration — loaded from environment variables or .env file."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root if present
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env", override=False)

EXTRACTION_STRATEGY_NAMES = ("allorigins", "corsanywhere", "thingproxy", "direct", "corsproxy", "trafilatura")
DEFAULT_STRATEGIES = ",".join(EXTRACTION_STRATEGY_NAMES)
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; NewsBot/1.0)"


def _parse_int_csv(raw: str, label: str) -> set[int]:
    """Parse comma-separated integer values into a set."""
    if not raw.strip():
        return set()

    parsed: set[int] = set()
    invalid: list[str] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            parsed.add(int(token))
        except ValueError:
            invalid.append(token)

    if invalid:
        raise ValueError(f"{label} contains invalid values: {', '.join(invalid)}")

    return parsed


def _parse_name_csv(raw: str) -> list[str]:
    """Parse a comma-separated list of names, keeping order and dropping blanks."""
    return [token.strip().lower() for token in raw.split(",") if token.strip()]


@dataclass
class Config:
    # --- Required ---
    telegram_token: str = field(default_factory=lambda: os.environ.get("TELEGRAM_BOT_TOKEN", ""))

    # --- LLM provider ---
    # Default key for chats that have not set their own with /apikey
    llm_api_key: str = field(default_factory=lambda: os.environ.get("LLM_API_KEY", ""))
    llm_provider: str = field(default_factory=lambda: os.environ.get("LLM_PROVIDER", "claude"))
    llm_model: str = field(default_factory=lambda: os.environ.get("LLM_MODEL", "claude-haiku-4-5-20251001"))
    llm_max_tokens: int = field(default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "300")))

    # --- Admin (comma-separated user IDs, e.g. "1234,4321,5555") ---
    admin_user_ids: set[int] = field(default_factory=lambda: _parse_int_csv(os.environ.get("ADMIN_USER_ID", ""), "ADMIN_USER_ID"))

    # --- Whitelisted channels/groups where anyone can use the bot ---
    whitelisted_chat_ids: set[int] = field(default_factory=lambda: _parse_int_csv(os.environ.get("WHITELISTED_CHAT_IDS", ""), "WHITELISTED_CHAT_IDS"))

    db_path: str = field(
        default_factory=lambda: os.environ.get("DB_PATH", "bugle.db")
    )

    # --- Extraction ---
    request_timeout: int = field(
        default_factory=lambda: int(os.environ.get("REQUEST_TIMEOUT", "15"))
    )
    strategy_timeout: int = field(
        default_factory=lambda: int(os.environ.get("STRATEGY_TIMEOUT", "10"))
    )
    extraction_strategies: list[str] = field(
        default_factory=lambda: _parse_name_csv(os.environ.get("EXTRACTION_STRATEGIES", DEFAULT_STRATEGIES))
    )
    user_agent: str = field(
        default_factory=lambda: os.environ.get("USER_AGENT", DEFAULT_USER_AGENT)
    )

    # --- Content length bounds (characters) ---
    min_content_chars: int = field(default_factory=lambda: int(os.environ.get("MIN_CONTENT_CHARS", "200")))
    max_content_chars: int = field(default_factory=lambda: int(os.environ.get("MAX_CONTENT_CHARS", "12000")))
    min_usable_chars: int = field(default_factory=lambda: int(os.environ.get("MIN_USABLE_CHARS", "200")))
    min_text_chars: int = field(default_factory=lambda: int(os.environ.get("MIN_TEXT_CHARS", "100")))
    max_text_chars: int = field(default_factory=lambda: int(os.environ.get("MAX_TEXT_CHARS", "10000")))

    def is_admin(self, user_id: int) -> bool:
        """Check if a user ID is in the admin set. Unrestricted if no admins configured."""
        if not self.admin_user_ids:
            return True
        return user_id in self.admin_user_ids

    def is_whitelisted_chat(self, chat_id: int) -> bool:
        """Check if a chat is whitelisted. Always True for DMs (positive IDs)."""
        if chat_id > 0:
            return True
        return chat_id in self.whitelisted_chat_ids

    def validate(self):
        """Fail fast on missing or invalid configuration."""
        errors = []
        if not self.telegram_token:
            errors.append("TELEGRAM_BOT_TOKEN is not set")
        if self.llm_provider not in ("claude", "openai"):
            errors.append(f"LLM_PROVIDER must be 'claude' or 'openai', got '{self.llm_provider}'")
        if not self.llm_model:
            errors.append("LLM_MODEL is not set")
        if self.llm_max_tokens <= 0:
            errors.append("LLM_MAX_TOKENS must be > 0")
        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be > 0")
        if self.strategy_timeout <= 0:
            errors.append("STRATEGY_TIMEOUT must be > 0")
        if not self.extraction_strategies:
            errors.append("EXTRACTION_STRATEGIES must name at least one strategy")
        unknown = [name for name in self.extraction_strategies if name not in EXTRACTION_STRATEGY_NAMES]
        if unknown:
            errors.append(
                f"EXTRACTION_STRATEGIES has unknown names: {', '.join(unknown)} "
                f"(known: {', '.join(EXTRACTION_STRATEGY_NAMES)})"
            )
        if self.min_content_chars <= 0:
            errors.append("MIN_CONTENT_CHARS must be > 0")
        if self.max_content_chars < self.min_content_chars:
            errors.append("MAX_CONTENT_CHARS must be >= MIN_CONTENT_CHARS")
        if self.min_text_chars <= 0:
            errors.append("MIN_TEXT_CHARS must be > 0")
        if self.max_text_chars < self.min_text_chars:
            errors.append("MAX_TEXT_CHARS must be >= MIN_TEXT_CHARS")
        if errors:
            raise SystemExit("Configuration error:\n  " + "\n  ".join(errors))


try:
    config = Config()
except ValueError as e:
    raise SystemExit(f"Configuration error:\n  {e}")
