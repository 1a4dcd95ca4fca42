# Overview: Synchronous prepared-statement adapter over an in-memory SQLite image.

# backend/catalog/persistence.py
"""
Catalog Store (persistence adapter)

The whole database is loaded into an in-memory SQLite connection at open()
and written back to the database file after every successful mutation.

Invariants:
- One DBAPI connection per Store (StaticPool); every statement and every
  transaction runs under a single re-entrant lock (at most one writer).
- Outside a transaction, execute() and Statement.run() persist immediately.
- Inside a transaction nothing is persisted until COMMIT; the file is then
  rewritten exactly once. ROLLBACK never touches the file.
- Nested transaction() calls join the outer transaction.
- The file is replaced atomically (temp file + os.replace), so a crash during
  persist leaves the previous committed image in place.
"""
from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool


log = logging.getLogger("catalog.store")


class PersistenceError(RuntimeError):
    """
    Raised when the in-memory image could not be written to disk.

    Fatal class: the in-memory state is ahead of the durable file.
    """


class StoreClosedError(RuntimeError):
    """Raised when a closed Store is used."""


@dataclass(frozen=True)
class RunResult:
    last_insert_id: int | None
    rows_changed: int


def normalize_params(args: tuple) -> tuple | dict | None:
    """
    Normalize call-site parameters to a DBAPI parameter set.

    - ()                 -> None
    - (dict,)            -> named parameters
    - (list|tuple,)      -> positional parameters
    - (scalar,)          -> one-element positional
    - (a, b, ...)        -> positional
    """
    if not args:
        return None
    if len(args) == 1:
        only = args[0]
        if isinstance(only, dict):
            return only
        if isinstance(only, (list, tuple)):
            return tuple(only)
        return (only,)
    return tuple(args)


def split_statements(sql: str) -> list[str]:
    """Split a script into complete SQL statements (semicolons in literals are kept)."""
    statements: list[str] = []
    buffer = ""
    for chunk in sql.split(";"):
        buffer += chunk + ";"
        if sqlite3.complete_statement(buffer):
            stmt = buffer.strip()
            if stmt.strip(";").strip():
                statements.append(stmt)
            buffer = ""
    if buffer.strip(" \n\t;"):
        statements.append(buffer.strip())
    return statements


class Statement:
    """Prepared statement handle returned by Store.prepare()."""

    def __init__(self, store: "Store", sql: str, into: Callable[[dict], Any] | None = None):
        self._store = store
        self.sql = sql
        self._into = into

    def _decode(self, row: dict) -> Any:
        return self._into(row) if self._into is not None else row

    def get(self, *params) -> Any | None:
        rows = self._store._query(self.sql, normalize_params(params), first_only=True)
        return self._decode(rows[0]) if rows else None

    def all(self, *params) -> list:
        rows = self._store._query(self.sql, normalize_params(params), first_only=False)
        return [self._decode(r) for r in rows]

    def run(self, *params) -> RunResult:
        return self._store._run(self.sql, normalize_params(params))

    def __repr__(self) -> str:
        return f"<Statement sql={self.sql.strip()[:60]!r}>"


class Store:
    """
    Explicitly constructed database handle.

    Usage:
        store = Store("/path/app.db")
        store.open()
        with store.transaction():
            store.prepare("INSERT ...").run(...)
        store.close()

    path=None keeps the database purely in memory (persist() is a no-op).
    """

    def __init__(self, path: str | None):
        self.path = path
        self._engine: Engine | None = None
        self._conn: Connection | None = None
        self._tx = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "Store":
        if self._conn is not None:
            return self

        if self.path:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)

        self._engine = create_engine(
            "sqlite://",
            creator=lambda: sqlite3.connect(":memory:", check_same_thread=False),
            poolclass=StaticPool,
        )
        self._conn = self._engine.connect()

        if self.path and os.path.exists(self.path):
            source = sqlite3.connect(self.path)
            try:
                source.backup(self._raw_connection())
            finally:
                source.close()
            log.info("Loaded database image from %s", self.path)

        return self

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            if self._tx is not None:
                self._tx.rollback()
                self._tx = None
            self._conn.close()
            self._engine.dispose()
            self._conn = None
            self._engine = None

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _connection(self) -> Connection:
        if self._conn is None:
            raise StoreClosedError("Store is not open")
        return self._conn

    def _raw_connection(self) -> sqlite3.Connection:
        return self._connection().connection.driver_connection

    # ------------------------------------------------------------------
    # Public adapter surface
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._tx is not None

    def execute(self, sql: str) -> None:
        """Run one or more statements without parameters."""
        with self._lock:
            conn = self._connection()
            try:
                for stmt in split_statements(sql):
                    conn.exec_driver_sql(stmt)
            except Exception:
                self._end_implicit(conn, ok=False)
                raise
            self._end_implicit(conn, ok=True)
            if self._tx is None:
                self.persist()

    def prepare(self, sql: str, into: Callable[[dict], Any] | None = None) -> Statement:
        self._connection()
        return Statement(self, sql, into)

    def pragma(self, directive: str) -> list[dict]:
        """Run a PRAGMA directive; never persists."""
        with self._lock:
            conn = self._connection()
            result = conn.exec_driver_sql(f"PRAGMA {directive}")
            rows = [dict(r) for r in result.mappings()] if result.returns_rows else []
            result.close()
            self._end_implicit(conn, ok=True)
            return rows

    @contextmanager
    def transaction(self) -> Iterator["Store"]:
        """
        Scoped transaction: COMMIT + one persist on success, ROLLBACK on any error.

        A nested transaction() joins the enclosing one.
        """
        with self._lock:
            if self._tx is not None:
                yield self
                return

            tx = self._connection().begin()
            self._tx = tx
            try:
                yield self
            except BaseException:
                self._tx = None
                tx.rollback()
                raise
            self._tx = None
            tx.commit()
            self.persist()

    def transactional(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap fn so each call runs inside transaction()."""
        @wraps(fn)
        def wrapped(*args, **kwargs):
            with self.transaction():
                return fn(*args, **kwargs)
        return wrapped

    def persist(self) -> None:
        """Write the whole in-memory image to the database file."""
        if not self.path:
            return
        with self._lock:
            try:
                self.snapshot(self.path)
            except (OSError, sqlite3.Error) as exc:
                log.error("Failed to persist database to %s: %s", self.path, exc)
                raise PersistenceError(f"Failed to persist database: {exc}") from exc

    def snapshot(self, target_path: str) -> None:
        """Write a full copy of the current image to target_path (atomic replace)."""
        with self._lock:
            directory = os.path.dirname(os.path.abspath(target_path))
            os.makedirs(directory, exist_ok=True)
            tmp_path = f"{target_path}.tmp"
            dest = sqlite3.connect(tmp_path)
            try:
                self._raw_connection().backup(dest)
            finally:
                dest.close()
            os.replace(tmp_path, target_path)

    # ------------------------------------------------------------------
    # Statement execution (used by Statement)
    # ------------------------------------------------------------------

    def _query(self, sql: str, params, *, first_only: bool) -> list[dict]:
        with self._lock:
            conn = self._connection()
            try:
                result = conn.exec_driver_sql(sql, params)
                if first_only:
                    row = result.mappings().first()
                    rows = [dict(row)] if row is not None else []
                else:
                    rows = [dict(r) for r in result.mappings().all()]
            except Exception:
                self._end_implicit(conn, ok=False)
                raise
            self._end_implicit(conn, ok=True)
            return rows

    def _run(self, sql: str, params) -> RunResult:
        with self._lock:
            conn = self._connection()
            try:
                result = conn.exec_driver_sql(sql, params)
                outcome = RunResult(
                    last_insert_id=result.lastrowid,
                    rows_changed=result.rowcount if result.rowcount is not None else 0,
                )
                result.close()
            except Exception:
                self._end_implicit(conn, ok=False)
                raise
            self._end_implicit(conn, ok=True)
            if self._tx is None:
                self.persist()
            return outcome

    def _end_implicit(self, conn: Connection, *, ok: bool) -> None:
        # SQLAlchemy autobegins; close that implicit transaction unless an
        # explicit one is active.
        if self._tx is not None:
            return
        if ok:
            conn.commit()
        else:
            conn.rollback()
