"""SQLite connection manager for lead research storage (WAL mode)."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

_DEFAULT_DB = ".lead_research.db"


class Database:
    """Thin wrapper around sqlite3 with WAL mode and row-factory helpers."""

    def __init__(self, db_path: str = _DEFAULT_DB):
        self.db_path = db_path
        self.conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.row_factory = sqlite3.Row
        logger.debug("Opened SQLite database %s", self.db_path)

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        assert self.conn, "Database not connected"
        return self.conn.execute(sql, params)

    def executescript(self, sql: str) -> None:
        assert self.conn, "Database not connected"
        self.conn.executescript(sql)

    def commit(self) -> None:
        assert self.conn, "Database not connected"
        self.conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Commit on success, roll back everything on any error."""
        assert self.conn, "Database not connected"
        try:
            yield self
            self.conn.commit()
        except BaseException:
            self.conn.rollback()
            raise

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()
