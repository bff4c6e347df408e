# src/dev_coach/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores/AI client/notifier/session),
- starts the background loop that owns the check-in scheduler,
- persists the coach conversation as JSON (optional).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..checkins.checkin_scheduler import CheckinScheduler
from ..checkins.checkin_store import CheckinStore
from ..config import get_settings
from ..config_store import ConfigStore
from ..core.ports import ChatClient, ChatMessage
from ..core.runtime import CoachRuntime, start_runtime
from ..core.session import CoachSession
from ..core.state import AppState
from ..core.timezone import TimeBoundary
from ..llm.client import OpenAIChatClient
from ..llm.offline import OfflineChatClient
from ..notifier import DesktopNotifier
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.history_path.parent.mkdir(parents=True, exist_ok=True)


def _pick_chat_client(settings, config: ConfigStore) -> ChatClient:
    provider = (config.get("ai_provider") or "").strip().lower()
    if provider == "offline":
        logger.info("AI provider set to offline.")
        return OfflineChatClient()

    if not (settings.openai_api_key or config.get("ai_api_key")):
        # Fallback for demos / local runs without external services.
        logger.info("No AI API key configured; using offline chat client.")
        return OfflineChatClient()

    return OpenAIChatClient(settings, config=config)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). The background loop is not started here;
    see start_background().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    config = ConfigStore(settings.db_path)
    boundary = TimeBoundary(config_get=config.get, default_zone=settings.default_timezone)
    tasks = TaskStore(settings.db_path, boundary=boundary)
    checkins = CheckinStore(settings.db_path, boundary=boundary)

    chat_client = _pick_chat_client(settings, config)
    notifier = DesktopNotifier(enabled=settings.notifications_enabled)

    history = load_history(settings.history_path) if settings.save_history else []
    session = CoachSession(
        tasks=tasks,
        chat_client=chat_client,
        notifier=notifier,
        boundary=boundary,
        config=config,
        history=history,
        max_history=settings.max_history_messages,
    )

    return AppState(
        settings=settings,
        boundary=boundary,
        config=config,
        tasks=tasks,
        checkins=checkins,
        chat_client=chat_client,
        notifier=notifier,
        session=session,
        save_history=settings.save_history,
    )


def start_background(state: AppState) -> CoachRuntime:
    """
    Start the scheduler loop thread. Startup reconciliation (overdue -> SKIPPED,
    arm the rest) has finished when this returns.
    """
    scheduler = CheckinScheduler(state.checkins, state.session, boundary=state.boundary)
    runtime = start_runtime(scheduler, state.session)
    state.runtime = runtime
    return runtime


def stop_background(state: AppState, *, timeout: float = 10.0) -> None:
    runtime = state.runtime
    if runtime is None:
        return
    runtime.stop()
    runtime.join(timeout=timeout)
    if runtime.thread.is_alive():
        logger.warning("Coach loop thread did not stop within %.1fs", timeout)
    state.runtime = None


def load_history(raw_path: str | Path | None) -> list[ChatMessage]:
    if not raw_path:
        return []
    path = Path(raw_path)
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to load chat history from %s", path)
        return []
    if not isinstance(data, list):
        return []

    out: list[ChatMessage] = []
    for m in data:
        if not isinstance(m, dict):
            continue
        role_any = m.get("role", "user")
        role_s = role_any if isinstance(role_any, str) else "user"
        if role_s not in ("user", "assistant"):
            continue
        out.append({"role": role_s, "content": str(m.get("content", ""))})

    logger.info("Loaded chat history: %d messages from %s", len(out), path)
    return out


def save_history(state: AppState) -> None:
    if not state.save_history:
        return
    raw_path = getattr(state.settings, "history_path", None)
    if not raw_path:
        return
    path = Path(raw_path)
    history = state.session.history
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(history, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(OSError):
            # History may contain sensitive content, keep the file private on disk.
            os.chmod(path, 0o600)
        logger.info("Saved chat history: %d messages to %s", len(history), path)
    except OSError:
        logger.exception("Failed to save chat history to %s", path)
