# src/dev_coach/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

DESCRIPTION_MAX_LEN = 1000


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Any state may move to any other; the only enforced rule is that at most one
    task is IN-PROGRESS (see TaskStore.start_task).
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN-PROGRESS"
    ON_HOLD = "ON-HOLD"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING

    @classmethod
    def parse(cls, raw: str) -> TaskStatus:
        """Lenient user-input parsing: 'in_progress', 'in-progress', 'on hold' ..."""
        norm = (raw or "").strip().upper().replace("_", "-").replace(" ", "-")
        return cls(norm)


@dataclass(slots=True)
class Task:
    id: int
    description: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    started_at: datetime | None = None
    completed_at: datetime | None = None
