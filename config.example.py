# config.example.py

"""
Documentation-only module (safe to commit).

Static settings are loaded from environment variables (optionally via a local .env file).
Values changed while the coach runs (timezone, AI model, extra prompt ...) live in the
`configurations` table and are managed with `/config set <key> <value>`.

Do NOT commit real secrets. Keep API keys in .env (local, gitignored).
"""

ENV_VARS = {
    # App / logging
    "DEV_COACH_APP_NAME": "App display name (default: dev-coach).",
    "DEV_COACH_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Switches
    "DEV_COACH_SAVE_HISTORY": "Persist the coach conversation between runs (true/false).",
    "DEV_COACH_NOTIFICATIONS": "Desktop notifications for check-ins (true/false).",
    # Time
    "DEV_COACH_DEFAULT_TIMEZONE": "Zone used until `/config set timezone ...` (default: America/New_York).",
    # LLM (any OpenAI-compatible endpoint)
    "DEV_COACH_OPENAI_API_KEY": "API key (falls back to OPENAI_API_KEY). Without one the coach runs offline.",
    "DEV_COACH_OPENAI_BASE_URL": "Base URL (default: https://api.openai.com/v1).",
    "DEV_COACH_LLM_MODELS": "Comma/space separated list of models to try in order (default: gpt-4o-mini).",
    "DEV_COACH_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "DEV_COACH_LLM_CONNECT_TIMEOUT_SECONDS": "Connect timeout (default: 5).",
    "DEV_COACH_LLM_READ_TIMEOUT_SECONDS": "Read timeout (default: 30).",
    # Paths (gitignored)
    "DEV_COACH_DATA_DIR": "Local data directory (default: .local/dev_coach).",
    "DEV_COACH_DB_PATH": "SQLite database for tasks, check-ins and config (default: <data_dir>/coach.sqlite3).",
    "DEV_COACH_HISTORY_PATH": "Chat history JSON path (default: <data_dir>/chat_history.json).",
    "DEV_COACH_BACKUP_DIR": "Where `/task backup` writes task_backup_<date>.md (default: current directory).",
    # Tuning
    "DEV_COACH_MAX_HISTORY_MESSAGES": "Messages kept in the conversation window (default: 40).",
}

RUNTIME_KEYS = {
    "timezone": "IANA zone, e.g. Europe/Berlin. Validated on set.",
    "ai_provider": "openai | offline.",
    "ai_model": "Model tried before DEV_COACH_LLM_MODELS.",
    "ai_api_key": "Overrides DEV_COACH_OPENAI_API_KEY. Masked in `/config list`.",
    "ai_prompt": "Extra instructions appended to the system prompt.",
    "notifications": "off/false/0 to silence desktop notifications.",
}
