"""
Store — SQLite-backed per-chat key-value state and the summary archive.

Each chat gets a namespace holding three entries:
  api_key       the chat's own LLM key
  archive       JSON array of saved summaries, newest first
  compact_mode  "true"/"false" display flag
"""

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from secrets import token_hex
from typing import Optional

from models import ArchiveEntry

logger = logging.getLogger("bugle.store")

API_KEY_KEY = "api_key"
ARCHIVE_KEY = "archive"
COMPACT_MODE_KEY = "compact_mode"


@dataclass
class AppState:
    api_key: str = ""
    archive: list[ArchiveEntry] = field(default_factory=list)
    compact_mode: bool = False


def encode_archive(entries: list[ArchiveEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries])


def decode_archive(raw: Optional[str]) -> list[ArchiveEntry]:
    """Decode a stored archive. Corrupt data is logged and read as empty."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [ArchiveEntry.from_dict(item) for item in data]
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to parse saved archive, starting empty: {e}")
        return []


class Store:
    def __init__(self, db_path: str = "bugle.db"):
        self.db_path = db_path
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        with self._get_conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    namespace TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (namespace, key)
                )
            """)
            conn.commit()

        logger.debug(f"Store initialized at {self.db_path}")

    def get(self, namespace: str, key: str) -> Optional[str]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT value FROM kv WHERE namespace = ? AND key = ?",
                (str(namespace), key)
            ).fetchone()
            return row["value"] if row else None

    def set(self, namespace: str, key: str, value: str):
        with self._get_conn() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO kv (namespace, key, value, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (str(namespace), key, value, datetime.now(timezone.utc).isoformat())
            )
            conn.commit()

    def delete(self, namespace: str, key: str):
        with self._get_conn() as conn:
            conn.execute(
                "DELETE FROM kv WHERE namespace = ? AND key = ?", (str(namespace), key)
            )
            conn.commit()

    # --- Application state ---

    def load_state(self, namespace: str) -> AppState:
        """Load a chat's full state; missing entries take their defaults."""
        return AppState(
            api_key=self.get(namespace, API_KEY_KEY) or "",
            archive=decode_archive(self.get(namespace, ARCHIVE_KEY)),
            compact_mode=(self.get(namespace, COMPACT_MODE_KEY) == "true"),
        )

    def save_state(self, namespace: str, state: AppState):
        """Write all three entries in one transaction."""
        now = datetime.now(timezone.utc).isoformat()
        rows = [
            (str(namespace), API_KEY_KEY, state.api_key, now),
            (str(namespace), ARCHIVE_KEY, encode_archive(state.archive), now),
            (str(namespace), COMPACT_MODE_KEY, "true" if state.compact_mode else "false", now),
        ]
        with self._get_conn() as conn:
            conn.executemany(
                """INSERT OR REPLACE INTO kv (namespace, key, value, updated_at)
                   VALUES (?, ?, ?, ?)""",
                rows
            )
            conn.commit()
        logger.debug(f"Saved state for {namespace}")


class Archive:
    """A chat's saved summaries. Every mutation rewrites the whole list."""

    def __init__(self, store: Store, namespace: str):
        self.store = store
        self.namespace = str(namespace)

    def entries(self) -> list[ArchiveEntry]:
        """Saved summaries, most recent first."""
        return decode_archive(self.store.get(self.namespace, ARCHIVE_KEY))

    def add(self, summary: str, url: str) -> ArchiveEntry:
        entries = self.entries()
        existing = {entry.id for entry in entries}
        entry_id = token_hex(6)
        while entry_id in existing:
            entry_id = token_hex(6)

        entry = ArchiveEntry(
            id=entry_id,
            summary=summary,
            url=url or "",
            timestamp=datetime.now(timezone.utc),
        )
        self._save([entry] + entries)
        logger.info(f"Archived {entry_id} for {self.namespace}")
        return entry

    def remove(self, entry_id: str) -> bool:
        """Drop an entry. Returns False when the id was not present."""
        entries = self.entries()
        kept = [entry for entry in entries if entry.id != entry_id]
        self._save(kept)
        removed = len(kept) != len(entries)
        if removed:
            logger.info(f"Removed {entry_id} from archive for {self.namespace}")
        return removed

    def _save(self, entries: list[ArchiveEntry]):
        self.store.set(self.namespace, ARCHIVE_KEY, encode_archive(entries))
