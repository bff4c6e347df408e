# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from dev_coach.checkins.checkin_store import CheckinStore
from dev_coach.config_store import ConfigStore
from dev_coach.core.session import CoachSession
from dev_coach.core.state import AppState
from dev_coach.core.timezone import TimeBoundary
from dev_coach.tasks.task_store import TaskStore

from .fakes import FakeChatClient, FakeClock, FakeNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="dev-coach",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "coach.sqlite3",
        history_path=tmp_path / "chat_history.json",
        backup_dir=tmp_path / "backups",
        # LLM
        openai_api_key=None,
        openai_base_url="https://api.openai.com/v1",
        llm_models=["model-a", "model-b"],
        extra_headers={},
        llm_connect_timeout_seconds=5.0,
        llm_read_timeout_seconds=30.0,
        # Features
        default_timezone="America/New_York",
        notifications_enabled=False,
        save_history=True,
        max_history_messages=40,
    )


@pytest.fixture()
def clock() -> FakeClock:
    # 2025-01-01 10:00 in New York (EST, UTC-5).
    return FakeClock()


@pytest.fixture()
def config_store(settings: SimpleNamespace) -> ConfigStore:
    return ConfigStore(settings.db_path)


@pytest.fixture()
def boundary(config_store: ConfigStore, clock: FakeClock) -> TimeBoundary:
    return TimeBoundary(config_get=config_store.get, default_zone="America/New_York", clock=clock)


@pytest.fixture()
def checkin_store(settings: SimpleNamespace, boundary: TimeBoundary) -> CheckinStore:
    return CheckinStore(settings.db_path, boundary=boundary)


@pytest.fixture()
def task_store(settings: SimpleNamespace, boundary: TimeBoundary) -> TaskStore:
    return TaskStore(settings.db_path, boundary=boundary)


@pytest.fixture()
def chat_client() -> FakeChatClient:
    return FakeChatClient(next_text="How is it going?")


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def session(
    task_store: TaskStore,
    chat_client: FakeChatClient,
    notifier: FakeNotifier,
    boundary: TimeBoundary,
    config_store: ConfigStore,
) -> CoachSession:
    return CoachSession(
        tasks=task_store,
        chat_client=chat_client,
        notifier=notifier,
        boundary=boundary,
        config=config_store,
    )


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    boundary: TimeBoundary,
    config_store: ConfigStore,
    task_store: TaskStore,
    checkin_store: CheckinStore,
    chat_client: FakeChatClient,
    notifier: FakeNotifier,
    session: CoachSession,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep real SQLite stores here because their correctness is part
    of what we want to test. The background runtime is not started.
    """
    return AppState(
        settings=settings,
        boundary=boundary,
        config=config_store,
        tasks=task_store,
        checkins=checkin_store,
        chat_client=chat_client,
        notifier=notifier,
        session=session,
        save_history=True,
    )
