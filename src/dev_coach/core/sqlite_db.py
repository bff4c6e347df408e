# src/dev_coach/core/sqlite_db.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .errors import StoreError

logger = logging.getLogger(__name__)


class SQLiteStore:
    """
    Base for the SQLite-backed stores.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each operation opens its own SQLite connection, so the stores can be used
      from the console thread and the scheduler loop at the same time.
    """

    table: str = ""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._tx() as conn:
            self._ensure_schema(conn)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _tx(self, *, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        One transaction per call: COMMIT on success, ROLLBACK on any exception.

        `immediate=True` takes the write lock up front (BEGIN IMMEDIATE) for
        read-then-write sequences that must not interleave with other writers.
        sqlite3.Error is re-raised as StoreError; other exceptions propagate as-is.
        """
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {self._db_path}: {e}") from e

        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                conn.execute("ROLLBACK")
            logger.error("%s: sqlite error, rolled back: %s", self.table or "db", e)
            raise StoreError(str(e)) from e
        except BaseException:
            with contextlib.suppress(sqlite3.Error):
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        raise NotImplementedError

    def _add_missing_columns(self, conn: sqlite3.Connection, columns: dict[str, str]) -> None:
        cur = conn.execute(f"PRAGMA table_info({self.table})")
        existing = {row["name"] for row in cur.fetchall()}
        for name, decl in columns.items():
            if name in existing:
                continue
            conn.execute(f"ALTER TABLE {self.table} ADD COLUMN {name} {decl}")
            logger.info("%s migration: added column %s", self.table, name)

    def count(self) -> int:
        with self._tx() as conn:
            (n,) = conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()
            return int(n)
