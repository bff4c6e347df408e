# src/dev_coach/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
from collections.abc import Callable
from typing import cast

from ..checkins import checkin_api
from ..config_store import KNOWN_KEYS, mask_value
from ..core.errors import ValidationError
from ..core.state import AppState
from ..core.timezone import list_timezones
from ..tasks import task_api

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_HOURS_TOKEN = re.compile(r"^\d+h$", re.IGNORECASE)
_MINUTES_TOKEN = re.compile(r"^\d+m$", re.IGNORECASE)

TIMEZONE_LIST_LIMIT = 50
CONFIG_USAGE = "Usage: /config list | get <key> | set <key> <value> | reset | keys | timezones [filter]"


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /task, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _reply(result: tuple[str | None, str | None]) -> str:
    message, error = result
    return error if error is not None else (message or "")


def _parse_id(raw: str, what: str = "task") -> int:
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        raise ValidationError(f"Invalid {what} ID. Please provide a positive integer.")
    return value


def split_time_spec(args: list[str]) -> tuple[str, list[str]]:
    """
    Pull the time spec off the front of the args.

    "2h 30m" arrives as two tokens after whitespace splitting; glue them back.
    """
    if len(args) >= 2 and _HOURS_TOKEN.match(args[0]) and _MINUTES_TOKEN.match(args[1]):
        return f"{args[0]} {args[1]}", args[2:]
    return args[0], args[1:]


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    try:
        zone = state.boundary.zone().key
        local_time = state.boundary.local_now().strftime("%Y-%m-%d %H:%M")
    except ValidationError as e:
        zone = f"INVALID ({e})"
        local_time = "unknown"
    running = state.runtime is not None and state.runtime.thread.is_alive()
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  Timezone: {zone}\n"
        f"  Local time: {local_time}\n"
        f"  Scheduler: {'RUNNING' if running else 'STOPPED'}\n"
        f"  Tasks: {state.tasks.count()}  Check-ins (all): {state.checkins.count()}\n"
        f"  Models (priority -> fallback): {models}"
    )


TASK_USAGE = (
    "Invalid task command. Available options:\n"
    "  /task add <description>\n"
    "  /task list\n"
    "  /task start <id>\n"
    "  /task complete <id>\n"
    "  /task status <id> <PENDING|IN-PROGRESS|ON-HOLD|COMPLETED>\n"
    "  /task remove <id>\n"
    "  /task backup"
)


def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return TASK_USAGE

    sub, rest = args[0].lower(), args[1:]
    try:
        if sub == "add":
            return _reply(task_api.task_add(state, " ".join(rest)))
        if sub in ("list", "ls"):
            return _reply(task_api.task_list(state))
        if sub == "backup":
            return _reply(task_api.task_backup(state))
        if sub in ("start", "complete", "done", "remove", "rm") and len(rest) == 1:
            task_id = _parse_id(rest[0])
            if sub == "start":
                return _reply(task_api.task_start(state, task_id))
            if sub in ("complete", "done"):
                return _reply(task_api.task_complete(state, task_id))
            return _reply(task_api.task_remove(state, task_id))
        if sub == "status" and len(rest) == 2:
            return _reply(task_api.task_set_status(state, _parse_id(rest[0]), rest[1]))
    except ValidationError as e:
        return str(e)
    return TASK_USAGE


CHECKIN_USAGE = (
    "Invalid check-in command. Available options:\n"
    "  /checkin add <time> [description]  - Schedule a check-in\n"
    "  /checkin list                      - List scheduled check-ins\n"
    "  /checkin remove <id>               - Remove a check-in\n"
    "  /checkin cancel <id>               - Cancel but keep it in history\n"
    "  /checkin status                    - Show timers\n"
    "\n"
    "Time formats:\n"
    "  HH:MM (e.g., '09:30' for 9:30 AM)\n"
    "  Xh Ym (e.g., '2h 30m' for 2 hours 30 minutes from now)"
)


def cmd_checkin(state: AppState, args: list[str]) -> str:
    if not args:
        return CHECKIN_USAGE

    sub, rest = args[0].lower(), args[1:]
    try:
        if sub == "add" and rest:
            time_spec, desc_parts = split_time_spec(rest)
            return _reply(checkin_api.checkin_add(state, time_spec, " ".join(desc_parts) or None))
        if sub in ("list", "ls") and not rest:
            return _reply(checkin_api.checkin_list(state))
        if sub == "status" and not rest:
            return _reply(checkin_api.checkin_status(state))
        if sub in ("remove", "rm") and len(rest) == 1:
            return _reply(checkin_api.checkin_remove(state, _parse_id(rest[0], "check-in")))
        if sub == "cancel" and len(rest) == 1:
            return _reply(checkin_api.checkin_cancel(state, _parse_id(rest[0], "check-in")))
    except ValidationError as e:
        return str(e)
    return CHECKIN_USAGE


def cmd_config(state: AppState, args: list[str]) -> str:
    """
    /config list | get <key> | set <key> <value> | reset | keys | timezones [filter]
    """
    if not args:
        return CONFIG_USAGE

    sub, rest = args[0].lower(), args[1:]

    if sub == "list":
        configs = state.config.list()
        if not configs:
            return "No configurations set. Use `/config set <key> <value>` to add some."
        lines = ["Current Configurations:"]
        lines.extend(f"  {k}: {mask_value(k, v)}" for k, v in configs.items())
        return "\n".join(lines)

    if sub == "get" and len(rest) == 1:
        value = state.config.get(rest[0])
        if value is None:
            return f"Configuration key '{rest[0]}' not found"
        return f"{rest[0]}: {mask_value(rest[0], value)}"

    if sub == "set" and len(rest) >= 2:
        key, value = rest[0], " ".join(rest[1:])
        try:
            state.config.set(key, value)
        except ValidationError as e:
            return str(e)
        return f"Configuration '{key}' set to '{mask_value(key, value)}'"

    if sub == "reset":
        state.config.reset()
        return "All configurations have been reset"

    if sub == "keys":
        return "Known keys:\n" + "\n".join(f"  {k} - {v}" for k, v in KNOWN_KEYS.items())

    if sub == "timezones":
        needle = rest[0].lower() if rest else ""
        zones = [z for z in list_timezones() if needle in z.lower()]
        if not zones:
            return f"No timezones match '{needle}'"
        shown = zones[:TIMEZONE_LIST_LIMIT]
        more = f"\n  ... and {len(zones) - len(shown)} more" if len(zones) > len(shown) else ""
        return "Timezones:\n" + "\n".join(f"  {z}" for z in shown) + more

    return CONFIG_USAGE


def cmd_ai(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/ai test -> send a tiny prompt through the configured client."""
    if not args or args[0].lower() != "test":
        return "Usage: /ai test"

    if emit:
        with contextlib.suppress(Exception):
            emit("[AI] Sending a test message...")

    text, error = state.chat_client.chat(
        [{"role": "user", "content": "Hello! Please respond with a brief greeting."}]
    )
    if error is not None:
        logger.info("AI test failed: %s", error)
        return f"Test failed: {error}"
    return f"Test successful: {text}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show timezone, scheduler state and models.")
registry.register("task", cmd_task, help_text="Tasks: add | list | start | complete | status | remove | backup.")
registry.register(
    "checkin", cmd_checkin, help_text="Check-ins: add <HH:MM|Xh Ym> [desc] | list | remove | cancel | status."
)
registry.register("config", cmd_config, help_text="Runtime settings: list | get | set | reset | keys | timezones.")
registry.register("ai", cmd_ai, help_text="AI diagnostics: /ai test.")
