# src/dev_coach/core/runtime.py

"""
Background event loop for the scheduler and the session worker.

Why a thread:
- the console REPL is blocking (input()).
- the scheduler is asyncio and wants its own long-lived event loop.

The console thread talks to the loop only through CoachRuntime.call(), which
submits a coroutine with asyncio.run_coroutine_threadsafe and waits for it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..checkins.checkin_scheduler import CheckinScheduler
from .session import CoachSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CALL_TIMEOUT_SECONDS = 30.0


@dataclass
class CoachRuntime:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    scheduler: CheckinScheduler
    session: CoachSession

    def call(self, coro: Coroutine[Any, Any, T], timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS) -> T:
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal runtime stop (loop already closed).", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_coach(
    scheduler: CheckinScheduler,
    session: CoachSession,
    stop_event: asyncio.Event,
    started: threading.Event,
    errors: list[BaseException],
) -> None:
    session_task = asyncio.create_task(session.run(), name="coach-session")
    try:
        try:
            await scheduler.start()
        except Exception as e:
            logger.exception("Check-in scheduler failed to start")
            errors.append(e)
            return
        finally:
            started.set()

        await stop_event.wait()
    finally:
        await scheduler.stop()
        session_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await session_task


def start_runtime(
    scheduler: CheckinScheduler,
    session: CoachSession,
    *,
    startup_timeout: float = 10.0,
) -> CoachRuntime:
    """
    Start the loop thread and wait until startup reconciliation is done.

    Raises RuntimeError if the thread does not come up or the scheduler fails
    to start (e.g. the database is unreadable).
    """
    ready = threading.Event()
    started = threading.Event()
    holder: dict[str, object] = {}
    errors: list[BaseException] = []

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_coach(scheduler, session, stop_event, started, errors))
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name="coach-loop", daemon=True)
    t.start()

    ready.wait(timeout=startup_timeout)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")
    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        raise RuntimeError("Coach loop thread did not initialize properly.")

    if not started.wait(timeout=startup_timeout):
        raise RuntimeError("Check-in scheduler did not finish startup in time.")
    if errors:
        raise RuntimeError("Check-in scheduler failed to start.") from errors[0]

    logger.info("Coach background loop started.")
    return CoachRuntime(thread=t, loop=loop, stop_event=stop_event, scheduler=scheduler, session=session)
