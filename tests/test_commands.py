# tests/test_commands.py

from __future__ import annotations

from dev_coach.cli.commands import CommandRegistry, registry, split_time_spec
from dev_coach.core.state import AppState


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bb"])

    notes: list[str] = []
    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BB y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]
    assert "/b - b" in reg.build_help()


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_split_time_spec_rejoins_interval_tokens() -> None:
    assert split_time_spec(["2h", "30m", "Review", "PR"]) == ("2h 30m", ["Review", "PR"])
    assert split_time_spec(["09:30", "standup"]) == ("09:30", ["standup"])
    assert split_time_spec(["45m"]) == ("45m", [])


def test_task_commands_end_to_end(state: AppState) -> None:
    assert registry.handle(state, "/task add Write tests") == "Task added: Write tests [ID: 1]"
    assert registry.handle(state, "/task add Fix bug") == "Task added: Fix bug [ID: 2]"
    assert registry.handle(state, "/task start 1") == "Task 1 started and other tasks put on hold"
    assert registry.handle(state, "/task start 2") == "Task 2 started and other tasks put on hold"

    listing = registry.handle(state, "/task list") or ""
    assert listing.startswith("Your Tasks:")
    assert "Write tests [ON-HOLD]" in listing
    assert "Fix bug [IN-PROGRESS]" in listing

    assert registry.handle(state, "/task start 99") == "Failed to start task: Task not found"
    assert registry.handle(state, "/task complete 2") == "Task 2 marked as completed"
    assert registry.handle(state, "/task status 1 pending") == "Task 1 is now PENDING"
    assert registry.handle(state, "/task remove 1") == "Task 1 removed"
    assert registry.handle(state, "/task start abc") == "Invalid task ID. Please provide a positive integer."
    assert (registry.handle(state, "/task") or "").startswith("Invalid task command.")


def test_task_add_requires_description(state: AppState) -> None:
    assert registry.handle(state, "/task add") == "Failed to add task: Task description cannot be empty"


def test_task_backup_writes_to_backup_dir(state: AppState) -> None:
    registry.handle(state, "/task add Ship it")
    reply = registry.handle(state, "/task backup") or ""
    assert reply.startswith("Tasks backed up to ")
    assert (state.settings.backup_dir / "task_backup_2025-01-01.md").exists()


def test_checkin_commands_without_runtime_report_error(state: AppState) -> None:
    reply = registry.handle(state, "/checkin add 2h 30m Review PR")
    assert reply == "Failed to schedule check-in: Check-in scheduler is not running"
    assert state.checkins.count() == 0
    assert (registry.handle(state, "/checkin") or "").startswith("Invalid check-in command.")
    assert registry.handle(state, "/checkin remove x") == "Invalid check-in ID. Please provide a positive integer."


def test_config_commands(state: AppState) -> None:
    assert registry.handle(state, "/config list") == (
        "No configurations set. Use `/config set <key> <value>` to add some."
    )
    assert registry.handle(state, "/config set ai_api_key sk-123") == "Configuration 'ai_api_key' set to '***'"
    assert registry.handle(state, "/config set timezone Europe/Berlin") == (
        "Configuration 'timezone' set to 'Europe/Berlin'"
    )
    assert (registry.handle(state, "/config set timezone Nowhere/City") or "").startswith("Invalid timezone")

    listing = registry.handle(state, "/config list") or ""
    assert "ai_api_key: ***" in listing
    assert "sk-123" not in listing
    assert registry.handle(state, "/config get timezone") == "timezone: Europe/Berlin"
    assert registry.handle(state, "/config get nope") == "Configuration key 'nope' not found"

    assert registry.handle(state, "/config reset") == "All configurations have been reset"
    assert state.config.list() == {}


def test_status_and_ai_test(state: AppState) -> None:
    status = registry.handle(state, "/status") or ""
    assert "Timezone: America/New_York" in status
    assert "Scheduler: STOPPED" in status

    notes: list[str] = []
    assert registry.handle(state, "/ai test", emit=notes.append) == "Test successful: How is it going?"
    assert notes == ["[AI] Sending a test message..."]


def test_config_timezones_filter(state: AppState) -> None:
    reply = registry.handle(state, "/config timezones berlin") or ""
    assert reply.startswith("Timezones:")
    assert "  Europe/Berlin" in reply.splitlines()
    assert registry.handle(state, "/config timezones zzzz") == "No timezones match 'zzzz'"


def test_status_survives_unknown_stored_timezone(state: AppState) -> None:
    state.boundary.config_get = {"timezone": "Mars/Olympus_Mons"}.get

    status = registry.handle(state, "/status") or ""
    assert "Timezone: INVALID (Invalid timezone: Mars/Olympus_Mons." in status
    assert "Local time: unknown" in status
