# src/dev_coach/checkins/checkin_api.py

from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

from ..core.errors import NotFoundError, StoreError, ValidationError
from ..core.state import AppState
from .checkin_models import Checkin
from .checkin_scheduler import SchedulerStoppedError

logger = logging.getLogger(__name__)

Reply = tuple[str | None, str | None]

_SERVICE_ERRORS = (StoreError, SchedulerStoppedError, FutureTimeoutError)


def format_checkin_line(checkin: Checkin) -> str:
    when = checkin.scheduled_at.strftime("%Y-%m-%d %H:%M")
    desc = f" - {checkin.description}" if checkin.description else ""
    return f"  {checkin.id}. {when}{desc} ({checkin.status.value})"


def _call(state: AppState, op: str, *args: Any) -> Any:
    """Run a scheduler coroutine on the background loop and wait for it."""
    runtime = state.runtime
    if runtime is None:
        raise SchedulerStoppedError("Check-in scheduler is not running")
    return runtime.call(getattr(runtime.scheduler, op)(*args))


def _reason(e: Exception) -> str:
    return str(e) or e.__class__.__name__


def checkin_add(state: AppState, time_spec: str, description: str | None = None) -> Reply:
    """Schedule a one-shot check-in from "HH:MM" or an interval such as "2h 30m"."""
    try:
        checkin: Checkin = _call(state, "add", time_spec, description)
    except ValidationError as e:
        return None, f"Failed to schedule check-in: {e}"
    except _SERVICE_ERRORS as e:
        logger.warning("checkin_add failed: %s", _reason(e))
        return None, f"Failed to schedule check-in: {_reason(e)}"

    when = checkin.scheduled_at.strftime("%Y-%m-%d %H:%M %Z")
    if checkin.description:
        return f"Check-in {checkin.id} scheduled for {when} with description: {checkin.description}", None
    return f"Check-in {checkin.id} scheduled for {when}", None


def checkin_list(state: AppState) -> Reply:
    try:
        checkins: list[Checkin] = _call(state, "list")
    except _SERVICE_ERRORS as e:
        return None, f"Failed to list check-ins: {_reason(e)}"

    if not checkins:
        return "No scheduled check-ins found.", None
    return "Scheduled Check-ins:\n" + "\n".join(format_checkin_line(c) for c in checkins), None


def checkin_remove(state: AppState, checkin_id: int) -> Reply:
    try:
        _call(state, "remove", checkin_id)
    except NotFoundError:
        return None, "Failed to remove check-in: Check-in not found"
    except _SERVICE_ERRORS as e:
        return None, f"Failed to remove check-in: {_reason(e)}"
    return "Check-in removed", None


def checkin_cancel(state: AppState, checkin_id: int) -> Reply:
    try:
        checkin: Checkin = _call(state, "cancel", checkin_id)
    except NotFoundError:
        return None, "Failed to cancel check-in: Check-in not found"
    except ValidationError as e:
        return None, f"Failed to cancel check-in: {e}"
    except _SERVICE_ERRORS as e:
        return None, f"Failed to cancel check-in: {_reason(e)}"
    return f"Check-in {checkin.id} cancelled", None


def checkin_status(state: AppState) -> Reply:
    try:
        infos = _call(state, "status")
    except _SERVICE_ERRORS as e:
        return None, f"Failed to read check-in status: {_reason(e)}"

    if not infos:
        return "No scheduled check-ins found.", None
    lines = ["Check-in timers:"]
    for info in infos:
        mins = int(info.seconds_until_due // 60)
        armed = "armed" if info.armed else "NOT ARMED"
        lines.append(f"{format_checkin_line(info.checkin)} in {mins // 60}h {mins % 60}m [{armed}]")
    return "\n".join(lines), None
