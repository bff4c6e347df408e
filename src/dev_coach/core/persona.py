# src/dev_coach/core/persona.py

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Final

BASE_COACH_PROMPT: Final[str] = """
You are "dev-coach", a personal developer productivity coach.
You help developers stay organized, motivated, and productive.

Truthfulness:
- Only refer to tasks that appear in the task list below.
- If you are unsure, say you are unsure.

Style:
- Match the user's language.
- Be encouraging, practical, and helpful.
- Keep responses concise but supportive (a few sentences).
""".strip()


CHECKIN_INSTRUCTIONS: Final[str] = """
This message is a scheduled check-in, not a user message.
Briefly ask how the current task is going, point out anything that looks stuck
(tasks on hold, nothing in progress) and suggest one concrete next step.
""".strip()


def format_task_context(tasks: Iterable[Any]) -> str:
    lines = [f"Task {t.id}: {t.description} [{t.status}]" for t in tasks]
    if not lines:
        return "You have no tasks currently."
    return "Your current tasks:\n" + "\n".join(lines)


def format_history_context(history: list[dict[str, str]], *, limit: int = 3, max_chars: int = 100) -> str:
    if not history:
        return "This is your first interaction."
    lines: list[str] = []
    for entry in history[-limit:]:
        content = entry.get("content", "")
        short = content[:max_chars] + ("..." if len(content) > max_chars else "")
        lines.append(f"{entry.get('role', 'user')}: {short}")
    return "Recent conversation:\n" + "\n".join(lines)


def get_system_prompt(
    *,
    tasks: Iterable[Any],
    history: list[dict[str, str]],
    now_local: datetime,
    extra: str | None = None,
) -> str:
    parts = [
        BASE_COACH_PROMPT,
        format_task_context(tasks),
        format_history_context(history),
        f"Current local time: {now_local.strftime('%Y-%m-%d %H:%M %Z')}",
    ]
    if extra and extra.strip():
        parts.append(extra.strip())
    return "\n\n".join(parts)
