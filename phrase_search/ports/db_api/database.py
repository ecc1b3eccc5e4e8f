"""DB-API adapter implementation for the core database port."""

from __future__ import annotations

import contextlib
import sqlite3
import threading
from typing import Any, Iterator, Mapping

from ...core.types import MaybeRow, QueryParams, RowMapping, Rows
from .dialects import Dialect, SQLiteDialect


class Database:
    """Thin DB-API wrapper that normalizes execute and row mapping behavior.

    One connection is shared by every caller; `lock` serializes access to it
    so a single handle can be injected into multi-threaded hosts.
    """

    def __init__(self, conn: Any, dialect: Dialect):
        """Create database adapter.

        Args:
            conn: DB-API connection object.
            dialect: Concrete SQL dialect instance.
        """

        self._closed = False
        self.conn: Any | None = conn
        self.dialect = dialect
        self.lock = threading.RLock()

    @classmethod
    def sqlite(cls, path: str = ":memory:", *, timeout: float = 5.0) -> Database:
        """Open a SQLite database usable from multiple threads."""

        conn = sqlite3.connect(path, timeout=timeout, check_same_thread=False)
        return cls(conn, SQLiteDialect())

    def _require_open_connection(self) -> Any:
        if self._closed or self.conn is None:
            raise RuntimeError("connection is closed")
        return self.conn

    def _should_begin_sqlite_transaction(self, conn: Any) -> bool:
        if getattr(self.dialect, "name", "").lower() != "sqlite":
            return False
        if getattr(conn, "isolation_level", None) is not None:
            return False
        return not bool(getattr(conn, "in_transaction", False))

    @contextlib.contextmanager
    def transaction(self) -> Iterator[None]:
        """Provide commit/rollback transaction scope under the connection lock."""

        with self.lock:
            conn = self._require_open_connection()
            try:
                if self._should_begin_sqlite_transaction(conn):
                    conn.execute("BEGIN")
                yield
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def execute(self, sql: str, params: QueryParams = None) -> Any:
        """Execute SQL with optional parameters and return cursor."""

        with self.lock:
            conn = self._require_open_connection()
            cur = conn.cursor()
            if params is None:
                cur.execute(sql)
            else:
                cur.execute(sql, params)
            return cur

    def _row_to_mapping(self, cursor: Any, row: Any) -> RowMapping:
        if isinstance(row, Mapping):
            return row

        if isinstance(row, (tuple, list)):
            desc = getattr(cursor, "description", None)
            if not desc:
                raise TypeError(
                    "Cursor has no description; cannot map tuple rows to dict."
                )
            cols = [d[0] for d in desc]
            return dict(zip(cols, row))

        raise TypeError(f"Unsupported row type: {type(row)}")

    def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow:
        """Execute query and return one normalized row mapping."""

        with self.lock:
            cur = self.execute(sql, params)
            row = cur.fetchone()
        if row is None:
            return None
        return self._row_to_mapping(cur, row)

    def fetchall(self, sql: str, params: QueryParams = None) -> Rows:
        """Execute query and return all rows as normalized mappings."""

        with self.lock:
            cur = self.execute(sql, params)
            rows = cur.fetchall()
        return [self._row_to_mapping(cur, r) for r in rows]

    def close(self) -> None:
        """Close the underlying connection; further calls raise `RuntimeError`."""

        with self.lock:
            if self._closed:
                return
            conn = self.conn
            self._closed = True
            self.conn = None
            close = getattr(conn, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
