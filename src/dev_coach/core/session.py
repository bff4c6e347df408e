# src/dev_coach/core/session.py

"""
Coach session.

Two entry points:
- handle_checkin(): called by the scheduler when a check-in fires. It only
  enqueues; the session worker (run()) builds a prompt from the task list and
  recent conversation, asks the AI, then notifies the user.
- chat_with_ai(): free text typed by the user in the REPL.

AI or notifier failures during a check-in are logged and reported to the user;
they never feed back into check-in bookkeeping (the scheduler has already
marked the check-in COMPLETED).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ..checkins.checkin_models import Checkin
from .persona import CHECKIN_INSTRUCTIONS, get_system_prompt
from .ports import ChatClient, ChatMessage, ConfigRepo, Notifier, TaskRepo
from .timezone import TimeBoundary

logger = logging.getLogger(__name__)

CHECKIN_TITLE = "dev-coach check-in"
FALLBACK_CHECKIN_TEXT = "Check-in time! Take a moment to review your progress on the current task."

Emitter = Callable[[str], None]

_OFF_VALUES = {"0", "off", "false", "no", "disabled"}


@dataclass(slots=True, frozen=True)
class CheckinDelivery:
    checkin_id: int
    text: str
    ai_error: str | None
    notified: bool
    notify_error: str | None


def format_checkin_time(checkin: Checkin) -> str:
    return checkin.scheduled_at.strftime("%Y-%m-%d %H:%M")


class CoachSession:
    def __init__(
        self,
        *,
        tasks: TaskRepo,
        chat_client: ChatClient,
        notifier: Notifier,
        boundary: TimeBoundary,
        config: ConfigRepo | None = None,
        emit: Emitter | None = None,
        history: list[ChatMessage] | None = None,
        max_history: int = 40,
    ) -> None:
        self._tasks = tasks
        self._chat = chat_client
        self._notifier = notifier
        self._boundary = boundary
        self._config = config
        self._emit = emit
        self._max_history = max(2, int(max_history))

        self._lock = threading.Lock()
        self._history: list[ChatMessage] = list(history or [])[-self._max_history :]
        self._inbox: asyncio.Queue[Checkin] = asyncio.Queue()

    def set_emitter(self, emit: Emitter | None) -> None:
        """Where delivered check-ins are echoed (the console connector installs one)."""
        self._emit = emit

    # ---- history ----

    @property
    def history(self) -> list[ChatMessage]:
        with self._lock:
            return list(self._history)

    def _remember(self, role: str, content: str) -> None:
        with self._lock:
            self._history.append({"role": role, "content": content})
            if len(self._history) > self._max_history:
                del self._history[: len(self._history) - self._max_history]

    # ---- prompt ----

    def _config_value(self, key: str) -> str | None:
        if self._config is None:
            return None
        try:
            return self._config.get(key)
        except Exception:
            logger.exception("Config lookup failed for %s", key)
            return None

    def _extra_prompt(self) -> str | None:
        return self._config_value("ai_prompt")

    def notifications_enabled(self) -> bool:
        raw = self._config_value("notifications")
        return raw is None or raw.strip().lower() not in _OFF_VALUES

    def build_system_prompt(self, *, checkin: Checkin | None = None) -> str:
        try:
            tasks = self._tasks.list_tasks()
        except Exception:
            logger.exception("Failed to load tasks for AI context")
            tasks = []

        extra = self._extra_prompt()
        if checkin is not None:
            extra = "\n\n".join(p for p in (CHECKIN_INSTRUCTIONS, extra) if p)

        return get_system_prompt(
            tasks=tasks,
            history=self.history,
            now_local=self._boundary.local_now(),
            extra=extra,
        )

    # ---- free chat ----

    def chat_with_ai(self, user_text: str) -> tuple[str | None, str | None]:
        text = (user_text or "").strip()
        if not text:
            return None, "Message is empty."

        messages: list[ChatMessage] = [
            {"role": "system", "content": self.build_system_prompt()},
            {"role": "user", "content": text},
        ]
        reply, err = self._chat.chat(messages)
        if err is not None:
            logger.info("AI chat failed: %s", err)
            return None, f"AI service error: {err}"

        self._remember("user", text)
        self._remember("assistant", reply or "")
        return reply, None

    # ---- check-ins ----

    def handle_checkin(self, checkin: Checkin) -> None:
        """Scheduler hand-off. Must be called from the session's event loop thread."""
        logger.info("Check-in %s queued for delivery", checkin.id)
        self._inbox.put_nowait(checkin)

    async def run(self) -> None:
        """Deliver queued check-ins one by one. Cancel the task to stop."""
        while True:
            checkin = await self._inbox.get()
            try:
                await self.deliver_checkin(checkin)
            except Exception:
                logger.exception("Check-in %s delivery crashed", checkin.id)
            finally:
                self._inbox.task_done()

    async def wait_idle(self) -> None:
        await self._inbox.join()

    async def deliver_checkin(self, checkin: Checkin) -> CheckinDelivery:
        header = f"Check-in for {format_checkin_time(checkin)}"
        if checkin.description:
            header += f": {checkin.description}"

        messages: list[ChatMessage] = [
            {"role": "system", "content": self.build_system_prompt(checkin=checkin)},
            {"role": "user", "content": header},
        ]

        try:
            reply, ai_error = await asyncio.to_thread(self._chat.chat, messages)
        except Exception as e:
            logger.exception("Check-in %s: AI call raised", checkin.id)
            reply, ai_error = None, str(e) or e.__class__.__name__

        if ai_error is not None or not reply:
            logger.warning("Check-in %s: AI unavailable (%s); using fallback text", checkin.id, ai_error)
            text = FALLBACK_CHECKIN_TEXT
        else:
            text = reply
            self._remember("assistant", reply)

        body = f"{header}\n\n{text}"
        if not self.notifications_enabled():
            notified, notify_error = False, "notifications disabled"
        else:
            try:
                notified, notify_error = await asyncio.to_thread(self._notifier.notify, CHECKIN_TITLE, body)
            except Exception as e:
                logger.exception("Check-in %s: notifier raised", checkin.id)
                notified, notify_error = False, str(e) or e.__class__.__name__

        if not notified:
            logger.warning("Check-in %s: notification not shown (%s)", checkin.id, notify_error)

        if self._emit is not None:
            with contextlib.suppress(Exception):
                self._emit(f"[CHECK-IN] {body}")

        return CheckinDelivery(
            checkin_id=checkin.id,
            text=text,
            ai_error=ai_error,
            notified=notified,
            notify_error=notify_error,
        )
