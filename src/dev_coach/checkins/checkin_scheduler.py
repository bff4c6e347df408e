# src/dev_coach/checkins/checkin_scheduler.py

"""
Check-in scheduler.

A single asyncio coordinator that:
- reconciles the store on start (overdue SCHEDULED -> SKIPPED),
- arms one loop.call_later() handle per remaining SCHEDULED check-in,
- applies add / list / remove / cancel / timer-fire one at a time from one inbox.

The store is the source of truth. The handle map is only a cache of "which
SCHEDULED rows currently have a timer" and is rebuilt from the store by start().

Timer callbacks never touch the store directly: they enqueue a "fire" command,
so a fire and a concurrent remove of the same id are strictly ordered. The
loser finds the row gone (or no longer SCHEDULED) and does nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from ..core.ports import CheckinRepo, CheckinSink
from ..core.timezone import TimeBoundary, parse_time_spec
from .checkin_models import Checkin, CheckinStatus, CheckinStatusInfo

logger = logging.getLogger(__name__)

# A timer that wakes up earlier than this (wall clock moved back, loop clock
# drift) is re-armed for the remainder instead of firing early.
EARLY_FIRE_TOLERANCE_SECONDS = 1.0


class SchedulerState(StrEnum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True)
class _Command:
    kind: str
    args: tuple[Any, ...] = ()
    future: asyncio.Future[Any] | None = field(default=None)


class SchedulerStoppedError(RuntimeError):
    pass


class CheckinScheduler:
    def __init__(
        self,
        store: CheckinRepo,
        sink: CheckinSink,
        *,
        boundary: TimeBoundary | None = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._boundary = boundary or getattr(store, "boundary", None) or TimeBoundary()

        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._inbox: asyncio.Queue[_Command] = asyncio.Queue()
        self._runner: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self.state = SchedulerState.STARTING

        self._handlers: dict[str, Callable[..., Any]] = {
            "add": self._handle_add,
            "list": self._handle_list,
            "remove": self._handle_remove,
            "cancel": self._handle_cancel,
            "status": self._handle_status,
            "fire": self._handle_fire,
        }

    # ---- lifecycle ----

    async def start(self) -> int:
        """
        Reconcile with the store, arm timers, then begin serving commands.

        Returns the number of armed check-ins. Commands submitted before start()
        wait in the inbox and are served only after reconciliation.
        """
        if self.state is not SchedulerState.STARTING:
            raise RuntimeError(f"scheduler cannot start from state {self.state.value}")

        self._loop = asyncio.get_running_loop()
        now = self._boundary.now_utc()

        skipped = self._store.mark_overdue_scheduled_as_skipped(now)
        pending = self._store.list_by_status(CheckinStatus.SCHEDULED)
        for checkin in pending:
            self._arm(checkin)

        self.state = SchedulerState.RUNNING
        self._runner = asyncio.create_task(self._drain(), name="checkin-scheduler")
        logger.info("Check-in scheduler running: %d armed, %d overdue skipped", len(pending), skipped)
        return len(pending)

    async def stop(self) -> None:
        """Cancel every timer and the inbox consumer. The store is not touched."""
        if self.state is SchedulerState.STOPPED:
            return
        self.state = SchedulerState.STOPPED

        for handle in self._timers.values():
            handle.cancel()
        n = len(self._timers)
        self._timers.clear()

        if self._runner is not None:
            self._runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._runner
            self._runner = None

        while not self._inbox.empty():
            cmd = self._inbox.get_nowait()
            if cmd.future is not None and not cmd.future.done():
                cmd.future.set_exception(SchedulerStoppedError("scheduler stopped"))
            self._inbox.task_done()

        logger.info("Check-in scheduler stopped (%d timers cancelled)", n)

    async def wait_idle(self) -> None:
        """Wait until every command queued so far has been applied."""
        await self._inbox.join()

    def armed_ids(self) -> frozenset[int]:
        return frozenset(self._timers)

    # ---- public commands (serialized through the inbox) ----

    async def add(self, time_spec: str, description: str | None = None) -> Checkin:
        return await self._submit("add", time_spec, description)

    async def list(self) -> list[Checkin]:
        return await self._submit("list")

    async def remove(self, checkin_id: int) -> None:
        await self._submit("remove", int(checkin_id))

    async def cancel(self, checkin_id: int) -> Checkin:
        return await self._submit("cancel", int(checkin_id))

    async def status(self) -> list[CheckinStatusInfo]:
        return await self._submit("status")

    # ---- inbox ----

    async def _submit(self, kind: str, *args: Any) -> Any:
        if self.state is SchedulerState.STOPPED:
            raise SchedulerStoppedError("scheduler stopped")
        fut: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(_Command(kind, args, fut))
        return await fut

    async def _drain(self) -> None:
        while True:
            cmd = await self._inbox.get()
            try:
                result = self._handlers[cmd.kind](*cmd.args)
            except Exception as e:
                if cmd.future is None:
                    logger.exception("Check-in scheduler: %s%s failed", cmd.kind, cmd.args)
                elif not cmd.future.done():
                    cmd.future.set_exception(e)
            else:
                if cmd.future is not None and not cmd.future.done():
                    cmd.future.set_result(result)
            finally:
                self._inbox.task_done()

    # ---- timers ----

    def _arm(self, checkin: Checkin) -> None:
        if self._loop is None:
            raise RuntimeError("scheduler loop is not set; call start() first")

        self._disarm(checkin.id)
        delay = max(0.0, (checkin.scheduled_at - self._boundary.now_utc()).total_seconds())
        self._timers[checkin.id] = self._loop.call_later(delay, self._on_timer, checkin.id)
        logger.debug("Armed check-in %s in %.1fs (due %s)", checkin.id, delay, checkin.scheduled_at.isoformat())

    def _disarm(self, checkin_id: int) -> bool:
        handle = self._timers.pop(checkin_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def _on_timer(self, checkin_id: int) -> None:
        # Runs as a loop callback: only enqueue.
        if self.state is SchedulerState.STOPPED:
            return
        self._inbox.put_nowait(_Command("fire", (checkin_id,)))

    # ---- handlers (run one at a time inside _drain) ----

    def _handle_add(self, time_spec: str, description: str | None) -> Checkin:
        scheduled_local = parse_time_spec(time_spec, self._boundary.local_now())
        checkin = self._store.create(scheduled_local, description)
        # Arm only after the insert succeeded.
        self._arm(checkin)
        logger.info("Check-in %s scheduled for %s", checkin.id, checkin.scheduled_at.isoformat())
        return checkin

    def _handle_list(self) -> list[Checkin]:
        return self._store.list_by_status(CheckinStatus.SCHEDULED)

    def _handle_remove(self, checkin_id: int) -> None:
        # Delete first: on NotFound/StoreError the timer set stays as it was.
        self._store.delete(checkin_id)
        had_timer = self._disarm(checkin_id)
        logger.info("Check-in %s removed (timer cancelled=%s)", checkin_id, had_timer)

    def _handle_cancel(self, checkin_id: int) -> Checkin:
        checkin = self._store.get(checkin_id)
        if checkin.status.is_terminal:
            raise ValidationError(f"Check-in {checkin_id} is already {checkin.status.value}")
        updated = self._store.update(checkin_id, status=CheckinStatus.CANCELLED)
        self._disarm(checkin_id)
        logger.info("Check-in %s cancelled", checkin_id)
        return updated

    def _handle_status(self) -> list[CheckinStatusInfo]:
        now = self._boundary.now_utc()
        out: list[CheckinStatusInfo] = []
        for checkin in self._store.list_by_status(CheckinStatus.SCHEDULED):
            out.append(
                CheckinStatusInfo(
                    checkin=checkin,
                    armed=checkin.id in self._timers,
                    seconds_until_due=max(0.0, (checkin.scheduled_at - now).total_seconds()),
                )
            )
        return out

    def _handle_fire(self, checkin_id: int) -> None:
        self._timers.pop(checkin_id, None)

        try:
            checkin = self._store.get(checkin_id)
        except NotFoundError:
            logger.info("Check-in %s fired but was removed; nothing to do", checkin_id)
            return

        if checkin.status is not CheckinStatus.SCHEDULED:
            logger.info("Check-in %s fired but is %s; nothing to do", checkin_id, checkin.status.value)
            return

        now = self._boundary.now_utc()
        remaining = (checkin.scheduled_at - now).total_seconds()
        if remaining > EARLY_FIRE_TOLERANCE_SECONDS:
            logger.info("Check-in %s woke up %.1fs early; re-arming", checkin_id, remaining)
            self._arm(checkin)
            return

        try:
            self._sink.handle_checkin(checkin)
        except Exception:
            # Delivered once fired; downstream trouble never blocks bookkeeping.
            logger.exception("Check-in %s: hand-off to session failed", checkin_id)

        self._store.update(
            checkin_id,
            status=CheckinStatus.COMPLETED,
            last_triggered_at=now,
            completed_at=now,
        )
        logger.info("Check-in %s fired -> COMPLETED", checkin_id)
