# src/dev_coach/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the AI provider / notifier / storage swappable and makes testing easier.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

ChatResult = tuple[str | None, str | None]
# (text, error): exactly one of them is set.


class ChatClient(Protocol):
    """Blocking chat completion: returns (text, None) or (None, error message)."""

    def chat(self, messages: list[ChatMessage]) -> ChatResult: ...


class Notifier(Protocol):
    """Best-effort user notification: (True, None) or (False, reason)."""

    def notify(self, title: str, body: str) -> tuple[bool, str | None]: ...


class ConfigRepo(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def list(self) -> dict[str, str]: ...
    def reset(self) -> int: ...


class CheckinSink(Protocol):
    """
    Receiver of fired check-ins (the coach session).

    Called from inside the scheduler's turn: implementations must only enqueue
    and return quickly.
    """

    def handle_checkin(self, checkin: Any) -> None: ...


class CheckinRepo(Protocol):
    def create(self, scheduled_at: datetime | None, description: str | None = None, status: Any = None) -> Any: ...
    def get(self, checkin_id: int) -> Any: ...
    def list_by_status(self, status: Any) -> list[Any]: ...
    def update(self, checkin_id: int, **fields: Any) -> Any: ...
    def delete(self, checkin_id: int) -> None: ...
    def mark_overdue_scheduled_as_skipped(self, now: datetime) -> int: ...


class TaskRepo(Protocol):
    def add_task(self, description: str) -> Any: ...
    def get_task(self, task_id: int) -> Any: ...
    def list_tasks(self) -> list[Any]: ...
    def start_task(self, task_id: int) -> Any: ...
    def complete_task(self, task_id: int) -> Any: ...
    def set_status(self, task_id: int, status: Any) -> Any: ...
    def remove_task(self, task_id: int) -> None: ...
