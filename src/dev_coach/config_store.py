# src/dev_coach/config_store.py

"""
Runtime key-value configuration (the `/config` command).

Static settings (paths, log level, API endpoint) come from the environment
via config.py; values the user changes while the app runs live here.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from .core.errors import ConfigError, ValidationError
from .core.sqlite_db import SQLiteStore
from .core.timezone import TIMEZONE_KEY, is_valid_timezone

logger = logging.getLogger(__name__)

KEY_MAX_LEN = 100
VALUE_MAX_LEN = 10000

KNOWN_KEYS = {
    "timezone": "IANA timezone for check-in times (e.g. Europe/Berlin).",
    "ai_provider": "AI provider: openai (any OpenAI-compatible endpoint) or offline.",
    "ai_model": "Preferred model; tried before the configured fallback list.",
    "ai_api_key": "API key override for the AI provider.",
    "ai_prompt": "Extra instructions appended to the coach system prompt.",
    "notifications": "Desktop notifications on/off.",
}


def mask_value(key: str, value: str) -> str:
    return "***" if "api_key" in key else value


class ConfigStore(SQLiteStore):
    """SQLite `configurations` table: one row per key."""

    table = "configurations"

    def __init__(self, db_path: str | Path = "coach.sqlite3") -> None:
        super().__init__(db_path)
        logger.info("ConfigStore ready db=%s keys=%s", self._db_path, self.count())

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS configurations (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )

    def get(self, key: str) -> str | None:
        with self._tx() as conn:
            row = conn.execute("SELECT value FROM configurations WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def set(self, key: str, value: str) -> None:
        key = (key or "").strip()
        value = (value or "").strip()
        if not (1 <= len(key) <= KEY_MAX_LEN):
            raise ValidationError(f"Configuration key must be 1-{KEY_MAX_LEN} characters")
        if not (1 <= len(value) <= VALUE_MAX_LEN):
            raise ValidationError(f"Configuration value must be 1-{VALUE_MAX_LEN} characters")
        if key == TIMEZONE_KEY and not is_valid_timezone(value):
            raise ConfigError(f"Invalid timezone: {value}. Use one of the supported timezones.")

        now = time.time()
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO configurations(key, value, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, now, now),
            )
        logger.info("Config set key=%s value=%s", key, mask_value(key, value))

    def list(self) -> dict[str, str]:
        with self._tx() as conn:
            rows = conn.execute("SELECT key, value FROM configurations ORDER BY key ASC").fetchall()
        return {str(r["key"]): str(r["value"]) for r in rows}

    def reset(self) -> int:
        with self._tx() as conn:
            n = int(conn.execute("DELETE FROM configurations").rowcount)
        logger.info("Config reset (%d keys removed)", n)
        return n
