# tests/test_config_store.py

from __future__ import annotations

import pytest

from dev_coach.config_store import ConfigStore, mask_value
from dev_coach.core.errors import ConfigError, ValidationError


def test_set_get_and_upsert(config_store: ConfigStore) -> None:
    assert config_store.get("ai_model") is None
    config_store.set("ai_model", "gpt-4o-mini")
    config_store.set("ai_model", "  gpt-4o  ")
    assert config_store.get("ai_model") == "gpt-4o"
    assert config_store.count() == 1


def test_list_is_sorted_and_reset_clears(config_store: ConfigStore) -> None:
    config_store.set("timezone", "Europe/Berlin")
    config_store.set("ai_prompt", "Be brief.")
    assert list(config_store.list()) == ["ai_prompt", "timezone"]

    assert config_store.reset() == 2
    assert config_store.list() == {}


def test_timezone_is_validated(config_store: ConfigStore) -> None:
    with pytest.raises(ConfigError):
        config_store.set("timezone", "Not/AZone")
    assert config_store.get("timezone") is None

    config_store.set("timezone", "Asia/Tokyo")
    assert config_store.get("timezone") == "Asia/Tokyo"


@pytest.mark.parametrize(
    ("key", "value"),
    [("", "x"), ("k" * 101, "x"), ("key", ""), ("key", "v" * 10001)],
)
def test_lengths_are_validated(config_store: ConfigStore, key: str, value: str) -> None:
    with pytest.raises(ValidationError):
        config_store.set(key, value)


def test_api_keys_are_masked() -> None:
    assert mask_value("ai_api_key", "sk-secret") == "***"
    assert mask_value("timezone", "Europe/Berlin") == "Europe/Berlin"
