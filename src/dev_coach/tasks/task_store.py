# src/dev_coach/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime
from pathlib import Path

from ..core.errors import NotFoundError, ValidationError
from ..core.sqlite_db import SQLiteStore
from ..core.timezone import TimeBoundary, from_epoch, to_epoch
from .task_models import DESCRIPTION_MAX_LEN, Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore(SQLiteStore):
    """
    SQLite task store + status machine.

    The single-active-task rule lives in start_task(): demoting the current
    IN-PROGRESS task and promoting the new one happen in one BEGIN IMMEDIATE
    transaction, so either both apply or neither does.
    """

    table = "tasks"

    def __init__(self, db_path: str | Path = "coach.sqlite3", *, boundary: TimeBoundary | None = None) -> None:
        self._boundary = boundary or TimeBoundary()
        super().__init__(db_path)
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count())

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                description TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'PENDING',
                started_at REAL,
                completed_at REAL,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        self._add_missing_columns(
            conn,
            {
                "status": "TEXT NOT NULL DEFAULT 'PENDING'",
                "started_at": "REAL",
                "completed_at": "REAL",
                "created_at": "REAL NOT NULL DEFAULT 0",
                "updated_at": "REAL NOT NULL DEFAULT 0",
            },
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status)")

    def _local(self, ts: float | None) -> datetime | None:
        if ts is None:
            return None
        return self._boundary.to_local(from_epoch(ts))

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            description=str(row["description"] or ""),
            status=TaskStatus.from_db(row["status"]),
            created_at=self._boundary.to_local(from_epoch(row["created_at"] or 0.0)),
            updated_at=self._boundary.to_local(from_epoch(row["updated_at"] or 0.0)),
            started_at=self._local(row["started_at"]),
            completed_at=self._local(row["completed_at"]),
        )

    def _now_ts(self) -> float:
        return to_epoch(self._boundary.now_utc())

    @staticmethod
    def _fetch(conn: sqlite3.Connection, task_id: int) -> sqlite3.Row | None:
        return conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()

    # ---- public API ----

    def add_task(self, description: str) -> Task:
        desc = (description or "").strip()
        if not desc:
            raise ValidationError("Task description cannot be empty")
        if len(desc) > DESCRIPTION_MAX_LEN:
            raise ValidationError(f"Task description is too long (max {DESCRIPTION_MAX_LEN} characters)")

        now = self._now_ts()
        with self._tx() as conn:
            cur = conn.execute(
                "INSERT INTO tasks(description, status, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (desc, TaskStatus.PENDING.value, now, now),
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
            row = self._fetch(conn, int(rowid))

        task = self._row_to_task(row)
        logger.debug("Task added id=%s", task.id)
        return task

    def get_task(self, task_id: int) -> Task:
        with self._tx() as conn:
            row = self._fetch(conn, task_id)
        if row is None:
            raise NotFoundError("Task", task_id)
        return self._row_to_task(row)

    def list_tasks(self) -> list[Task]:
        """All tasks, newest first."""
        with self._tx() as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC, id DESC").fetchall()
        return [self._row_to_task(r) for r in rows]

    def list_by_status(self, status: TaskStatus) -> list[Task]:
        with self._tx() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE status = ? ORDER BY id ASC", (TaskStatus(status).value,)
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    def start_task(self, task_id: int) -> Task:
        """
        Atomically:
          every IN-PROGRESS task -> ON-HOLD
          task_id -> IN-PROGRESS, started_at = now
        A missing task_id rolls back the demotion and raises NotFoundError.
        """
        now = self._now_ts()
        with self._tx(immediate=True) as conn:
            if self._fetch(conn, task_id) is None:
                raise NotFoundError("Task", task_id)

            demoted = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE status = ? AND id != ?",
                (TaskStatus.ON_HOLD.value, now, TaskStatus.IN_PROGRESS.value, int(task_id)),
            ).rowcount
            cur = conn.execute(
                "UPDATE tasks SET status = ?, started_at = ?, updated_at = ? WHERE id = ?",
                (TaskStatus.IN_PROGRESS.value, now, now, int(task_id)),
            )
            if cur.rowcount != 1:
                raise NotFoundError("Task", task_id)
            row = self._fetch(conn, task_id)

        logger.info("Task %s -> IN-PROGRESS (%d put on hold)", task_id, demoted)
        return self._row_to_task(row)

    def complete_task(self, task_id: int) -> Task:
        now = self._now_ts()
        with self._tx() as conn:
            cur = conn.execute(
                "UPDATE tasks SET status = ?, completed_at = ?, updated_at = ? WHERE id = ?",
                (TaskStatus.COMPLETED.value, now, now, int(task_id)),
            )
            if cur.rowcount != 1:
                raise NotFoundError("Task", task_id)
            row = self._fetch(conn, task_id)

        logger.info("Task %s -> COMPLETED", task_id)
        return self._row_to_task(row)

    def set_status(self, task_id: int, status: TaskStatus | str) -> Task:
        """Free-form transition. IN-PROGRESS and COMPLETED go through their dedicated paths."""
        try:
            new_status = TaskStatus(status) if isinstance(status, TaskStatus) else TaskStatus.parse(status)
        except ValueError:
            allowed = ", ".join(s.value for s in TaskStatus)
            raise ValidationError(f"Invalid task status: {status!r}. Allowed: {allowed}") from None

        if new_status is TaskStatus.IN_PROGRESS:
            return self.start_task(task_id)
        if new_status is TaskStatus.COMPLETED:
            return self.complete_task(task_id)

        with self._tx() as conn:
            cur = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
                (new_status.value, self._now_ts(), int(task_id)),
            )
            if cur.rowcount != 1:
                raise NotFoundError("Task", task_id)
            row = self._fetch(conn, task_id)
        return self._row_to_task(row)

    def remove_task(self, task_id: int) -> None:
        with self._tx() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            if cur.rowcount != 1:
                raise NotFoundError("Task", task_id)
        logger.debug("Task removed id=%s", task_id)

    def backup_markdown(self, out_dir: str | Path, *, today: date | None = None) -> Path:
        """Write `task_backup_<date>.md` with a markdown checklist of every task."""
        today = today or self._boundary.local_now().date()
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"task_backup_{today.isoformat()}.md"

        lines = [f"# Task Backup - {today.isoformat()}", ""]
        for task in self.list_tasks():
            mark = "x" if task.status is TaskStatus.COMPLETED else " "
            lines.append(f"- [{mark}] {task.description} [{task.status.value}]")

        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info("Task backup written: %s", path)
        return path
