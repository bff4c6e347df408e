# src/dev_coach/checkins/checkin_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

logger = logging.getLogger(__name__)


class CheckinStatus(StrEnum):
    """
    Check-in lifecycle status.

    SCHEDULED is the only non-terminal state; a record leaves it exactly once.
    """

    SCHEDULED = "SCHEDULED"
    SKIPPED = "SKIPPED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not CheckinStatus.SCHEDULED

    @classmethod
    def from_db(cls, raw: str | None) -> CheckinStatus:
        # Unknown values are treated as terminal so they can never be armed.
        try:
            return cls(raw or "")
        except ValueError:
            logger.warning("Unknown check-in status in DB: %r (treated as CANCELLED)", raw)
            return cls.CANCELLED


@dataclass(slots=True)
class Checkin:
    """A one-shot scheduled reminder. Datetimes are local (aware) when handed out by the store."""

    id: int
    scheduled_at: datetime
    status: CheckinStatus
    description: str | None
    created_at: datetime
    updated_at: datetime

    last_triggered_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class CheckinStatusInfo:
    checkin: Checkin
    armed: bool
    seconds_until_due: float
