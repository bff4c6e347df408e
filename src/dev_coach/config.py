# src/dev_coach/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Values the user changes at runtime (timezone, AI model, ...) are NOT here;
  they live in the `configurations` table (see config_store.py).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .core.timezone import DEFAULT_TIMEZONE

ENV_PREFIX = "DEV_COACH"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Switches ----
    save_history: bool
    notifications_enabled: bool

    # ---- Time ----
    default_timezone: str

    # ---- LLM (OpenAI-compatible) ----
    openai_api_key: str | None
    openai_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    history_path: Path
    backup_dir: Path

    # ---- Session tuning ----
    max_history_messages: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "dev-coach")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        save_history = _env_bool(_k("SAVE_HISTORY"), True)
        notifications_enabled = _env_bool(_k("NOTIFICATIONS"), True)

        default_timezone = _env(_k("DEFAULT_TIMEZONE"), DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE

        openai_api_key = _first_env(_k("OPENAI_API_KEY"), "OPENAI_API_KEY", default=None)
        openai_base_url = _env(_k("OPENAI_BASE_URL"), "https://api.openai.com/v1")
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o-mini"])

        extra_headers: dict[str, str] = {}
        referer = _env(_k("HTTP_REFERER"), "")
        if referer:
            extra_headers["HTTP-Referer"] = referer
            extra_headers["X-Title"] = app_name

        connect_timeout = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 30.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dev_coach"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "coach.sqlite3")
        history_path = _env_path(_k("HISTORY_PATH"), data_dir / "chat_history.json")
        backup_dir = _env_path(_k("BACKUP_DIR"), Path("."))

        max_history_messages = _env_int(_k("MAX_HISTORY_MESSAGES"), 40)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            save_history=save_history,
            notifications_enabled=notifications_enabled,
            default_timezone=default_timezone,
            openai_api_key=openai_api_key,
            openai_base_url=openai_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            llm_connect_timeout_seconds=connect_timeout,
            llm_read_timeout_seconds=max(read_timeout, connect_timeout),
            data_dir=data_dir,
            db_path=db_path,
            history_path=history_path,
            backup_dir=backup_dir,
            max_history_messages=max_history_messages,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
