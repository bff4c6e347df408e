# src/dev_coach/checkins/checkin_store.py

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError, ValidationError
from ..core.sqlite_db import SQLiteStore
from ..core.timezone import TimeBoundary, from_epoch, to_epoch
from .checkin_models import Checkin, CheckinStatus

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"status", "description", "scheduled_at", "last_triggered_at", "completed_at"}
)
_TIME_FIELDS = frozenset({"scheduled_at", "last_triggered_at", "completed_at"})


class CheckinStore(SQLiteStore):
    """
    SQLite check-in store.

    Instants are stored as UTC epoch seconds. Every Checkin returned by the
    public API carries local (aware) datetimes, converted through the
    TimeBoundary at read time.
    """

    table = "checkins"

    def __init__(self, db_path: str | Path = "coach.sqlite3", *, boundary: TimeBoundary | None = None) -> None:
        self._boundary = boundary or TimeBoundary()
        super().__init__(db_path)
        logger.info("CheckinStore ready db=%s total=%s", self._db_path, self.count())

    @property
    def boundary(self) -> TimeBoundary:
        return self._boundary

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS checkins (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                scheduled_at REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'SCHEDULED',
                description TEXT,
                last_triggered_at REAL,
                completed_at REAL,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(
            conn,
            {
                "description": "TEXT",
                "last_triggered_at": "REAL",
                "completed_at": "REAL",
                "created_at": "REAL NOT NULL DEFAULT 0",
                "updated_at": "REAL NOT NULL DEFAULT 0",
            },
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_checkins_status_due ON checkins(status, scheduled_at)")

    def _local(self, ts: float | None) -> datetime | None:
        if ts is None:
            return None
        return self._boundary.to_local(from_epoch(ts))

    def _row_to_checkin(self, row: sqlite3.Row) -> Checkin:
        return Checkin(
            id=int(row["id"]),
            scheduled_at=self._boundary.to_local(from_epoch(row["scheduled_at"])),
            status=CheckinStatus.from_db(row["status"]),
            description=row["description"],
            created_at=self._boundary.to_local(from_epoch(row["created_at"] or 0.0)),
            updated_at=self._boundary.to_local(from_epoch(row["updated_at"] or 0.0)),
            last_triggered_at=self._local(row["last_triggered_at"]),
            completed_at=self._local(row["completed_at"]),
        )

    @staticmethod
    def _coerce_status(raw: Any) -> CheckinStatus:
        try:
            return CheckinStatus(str(raw))
        except ValueError:
            allowed = ", ".join(s.value for s in CheckinStatus)
            raise ValidationError(f"Invalid check-in status: {raw!r}. Allowed: {allowed}") from None

    def _epoch(self, value: Any, field: str) -> float:
        if not isinstance(value, datetime):
            raise ValidationError(f"{field} must be a datetime, got {type(value).__name__}")
        if value.tzinfo is None:
            value = self._boundary.to_utc(value)
        return to_epoch(value)

    # ---- public API ----

    def create(self, scheduled_at: datetime | None, description: str | None = None, status: Any = None) -> Checkin:
        """
        Insert a new check-in.

        `status` is accepted for call-site symmetry but ignored: new rows are
        always SCHEDULED.
        """
        if scheduled_at is None:
            raise ValidationError("scheduled_at is required")
        due_ts = self._epoch(scheduled_at, "scheduled_at")
        if status is not None and str(status) != CheckinStatus.SCHEDULED.value:
            logger.debug("create(): ignoring caller status=%r, forcing SCHEDULED", status)

        desc = (description or "").strip() or None
        now_ts = to_epoch(self._boundary.now_utc())

        with self._tx() as conn:
            cur = conn.execute(
                """
                INSERT INTO checkins(scheduled_at, status, description, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (due_ts, CheckinStatus.SCHEDULED.value, desc, now_ts, now_ts),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for checkins insert")
            row = conn.execute("SELECT * FROM checkins WHERE id = ?", (int(rowid),)).fetchone()

        checkin = self._row_to_checkin(row)
        logger.debug("Check-in created id=%s scheduled_at=%s", checkin.id, checkin.scheduled_at.isoformat())
        return checkin

    def get(self, checkin_id: int) -> Checkin:
        with self._tx() as conn:
            row = conn.execute("SELECT * FROM checkins WHERE id = ?", (int(checkin_id),)).fetchone()
        if row is None:
            raise NotFoundError("Check-in", checkin_id)
        return self._row_to_checkin(row)

    def list_by_status(self, status: CheckinStatus | str) -> list[Checkin]:
        st = self._coerce_status(status)
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM checkins WHERE status = ? ORDER BY scheduled_at ASC, id ASC",
                (st.value,),
            ).fetchall()
        return [self._row_to_checkin(r) for r in rows]

    def list_all(self) -> list[Checkin]:
        with self._tx() as conn:
            rows = conn.execute("SELECT * FROM checkins ORDER BY scheduled_at ASC, id ASC").fetchall()
        return [self._row_to_checkin(r) for r in rows]

    def update(self, checkin_id: int, **fields: Any) -> Checkin:
        """
        Update selected columns. Validation happens before anything is written:
        an unknown field or a status outside the four known values rejects the
        whole update.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown check-in field(s): {', '.join(sorted(unknown))}")

        sets: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name == "status":
                value = self._coerce_status(value).value
            elif name in _TIME_FIELDS:
                if value is None and name == "scheduled_at":
                    raise ValidationError("scheduled_at cannot be cleared")
                value = None if value is None else self._epoch(value, name)
            elif name == "description":
                value = (str(value).strip() or None) if value is not None else None
            sets.append(f"{name} = ?")
            params.append(value)

        with self._tx() as conn:
            if sets:
                sets.append("updated_at = ?")
                params.append(to_epoch(self._boundary.now_utc()))
                params.append(int(checkin_id))
                conn.execute(f"UPDATE checkins SET {', '.join(sets)} WHERE id = ?", params)
            row = conn.execute("SELECT * FROM checkins WHERE id = ?", (int(checkin_id),)).fetchone()

        if row is None:
            raise NotFoundError("Check-in", checkin_id)
        return self._row_to_checkin(row)

    def delete(self, checkin_id: int) -> None:
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM checkins WHERE id = ?", (int(checkin_id),))
            deleted = cur.rowcount
        if deleted != 1:
            raise NotFoundError("Check-in", checkin_id)
        logger.debug("Check-in deleted id=%s", checkin_id)

    def mark_overdue_scheduled_as_skipped(self, now: datetime) -> int:
        """
        Bulk SCHEDULED -> SKIPPED for rows due strictly before `now`.

        Startup reconciliation only: a check-in that is merely due now is
        handled by its timer, not by this sweep.
        """
        now_ts = self._epoch(now, "now")
        with self._tx() as conn:
            cur = conn.execute(
                """
                UPDATE checkins
                SET status = ?, updated_at = ?
                WHERE status = ?
                  AND scheduled_at < ?
                """,
                (CheckinStatus.SKIPPED.value, now_ts, CheckinStatus.SCHEDULED.value, now_ts),
            )
            n = int(cur.rowcount)
        if n:
            logger.info("Marked %d overdue check-in(s) as SKIPPED", n)
        return n
