# src/dev_coach/tasks/task_api.py

from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import NotFoundError, StoreError, ValidationError
from ..core.state import AppState
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)

Reply = tuple[str | None, str | None]

_STATUS_COLORS = {
    TaskStatus.PENDING: "\033[33m",  # yellow
    TaskStatus.IN_PROGRESS: "\033[34m",  # blue
    TaskStatus.ON_HOLD: "\033[35m",  # magenta
    TaskStatus.COMPLETED: "\033[32m",  # green
}
_RESET = "\033[0m"


def status_marker(status: TaskStatus, *, color: bool = True) -> str:
    if not color:
        return "o"
    return f"{_STATUS_COLORS.get(status, '')}●{_RESET}"


def format_task_line(task: Task, *, color: bool = True) -> str:
    return f"  {task.id}. {status_marker(task.status, color=color)} {task.description} [{task.status.value}]"


def task_add(state: AppState, description: str) -> Reply:
    try:
        task = state.tasks.add_task(description)
    except (ValidationError, StoreError) as e:
        return None, f"Failed to add task: {e}"
    return f"Task added: {task.description} [ID: {task.id}]", None


def task_list(state: AppState, *, color: bool = True) -> Reply:
    try:
        tasks = state.tasks.list_tasks()
    except StoreError as e:
        return None, f"Failed to list tasks: {e}"
    if not tasks:
        return "No tasks found. Add one with `/task add <description>`", None
    return "Your Tasks:\n" + "\n".join(format_task_line(t, color=color) for t in tasks), None


def task_start(state: AppState, task_id: int) -> Reply:
    """Put task_id IN-PROGRESS and every other in-progress task ON-HOLD (atomically)."""
    try:
        state.tasks.start_task(task_id)
    except NotFoundError:
        return None, "Failed to start task: Task not found"
    except StoreError as e:
        return None, f"Failed to start task: {e}"
    return f"Task {task_id} started and other tasks put on hold", None


def task_complete(state: AppState, task_id: int) -> Reply:
    try:
        state.tasks.complete_task(task_id)
    except NotFoundError:
        return None, "Failed to complete task: Task not found"
    except StoreError as e:
        return None, f"Failed to complete task: {e}"
    return f"Task {task_id} marked as completed", None


def task_set_status(state: AppState, task_id: int, status: str) -> Reply:
    try:
        task = state.tasks.set_status(task_id, status)
    except NotFoundError:
        return None, "Failed to update task: Task not found"
    except (ValidationError, StoreError) as e:
        return None, f"Failed to update task: {e}"
    return f"Task {task_id} is now {task.status.value}", None


def task_remove(state: AppState, task_id: int) -> Reply:
    try:
        state.tasks.remove_task(task_id)
    except NotFoundError:
        return None, "Failed to remove task: Task not found"
    except StoreError as e:
        return None, f"Failed to remove task: {e}"
    return f"Task {task_id} removed", None


def task_backup(state: AppState, out_dir: str | Path | None = None) -> Reply:
    target = Path(out_dir) if out_dir is not None else Path(getattr(state.settings, "backup_dir", "."))
    try:
        path = state.tasks.backup_markdown(target)
    except (OSError, StoreError) as e:
        logger.warning("Task backup failed: %s", e)
        return None, f"Failed to backup tasks: {e}"
    return f"Tasks backed up to {path}", None
