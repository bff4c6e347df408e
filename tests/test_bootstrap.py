# tests/test_bootstrap.py

from __future__ import annotations

import json
from types import SimpleNamespace

from dev_coach.cli.bootstrap import create_initial_state, load_history, save_history
from dev_coach.llm.client import OpenAIChatClient
from dev_coach.llm.offline import OfflineChatClient


def test_create_initial_state_without_api_key_is_offline(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)

    assert isinstance(state.chat_client, OfflineChatClient)
    assert state.runtime is None
    assert state.boundary.zone().key == "America/New_York"
    assert settings.db_path.exists()


def test_api_key_selects_openai_unless_provider_is_offline(settings: SimpleNamespace) -> None:
    settings.openai_api_key = "sk-test"
    state = create_initial_state(settings=settings)
    assert isinstance(state.chat_client, OpenAIChatClient)

    state.config.set("ai_provider", "offline")
    assert isinstance(create_initial_state(settings=settings).chat_client, OfflineChatClient)


def test_history_is_saved_and_reloaded(settings: SimpleNamespace) -> None:
    state = create_initial_state(settings=settings)
    state.session.chat_with_ai("plan my day")
    save_history(state)

    data = json.loads(settings.history_path.read_text("utf-8"))
    assert [m["role"] for m in data] == ["user", "assistant"]

    again = create_initial_state(settings=settings)
    assert again.session.history == data


def test_load_history_ignores_garbage(tmp_path) -> None:
    path = tmp_path / "h.json"
    path.write_text(
        json.dumps([{"role": "system", "content": "x"}, "nope", {"role": "user", "content": "hi"}]),
        "utf-8",
    )
    assert load_history(path) == [{"role": "user", "content": "hi"}]

    path.write_text("{not json", "utf-8")
    assert load_history(path) == []
    assert load_history(tmp_path / "missing.json") == []
