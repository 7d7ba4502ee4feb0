"""
SQLite connection manager for the catalog file.

- Backed by `aiosqlite`; the public API is async.
- One connection per catalog file; writes and transactions are serialized
  on an asyncio lock.
- The adapter never raises to callers; it returns `Result(...)`.
"""

from __future__ import annotations

import asyncio
import contextvars
import sqlite3
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiosqlite

from ...config import DB_TIMEOUT
from ...shared import ErrorCode, Result, get_logger

logger = get_logger(__name__)

SQLITE_BUSY_TIMEOUT_MS = max(1000, int(float(DB_TIMEOUT) * 1000))

_TX_TOKEN: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("mcat_db_tx_token", default=None)


class Sqlite:
    """
    Async SQLite adapter (aiosqlite-backed).

    Usage:
        db = Sqlite("/media/root/media_cache.db")
        res = await db.aquery("SELECT path FROM media_entries")
        async with db.atransaction() as tx:
            ...
        await db.aclose()
    """

    def __init__(self, db_path: str, timeout: float = DB_TIMEOUT):
        self.db_path = Path(db_path)
        self._timeout = float(timeout)
        self._conn: Optional[aiosqlite.Connection] = None
        self._open_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._tx_token: Optional[str] = None
        self._closed = False

    async def _apply_connection_pragmas(self, conn: aiosqlite.Connection) -> None:
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        await conn.execute("PRAGMA temp_store=MEMORY")
        await conn.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
        await conn.execute("PRAGMA foreign_keys=ON")

    async def _ensure_open(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        async with self._open_lock:
            if self._conn is not None:
                return self._conn
            if self._closed:
                raise sqlite3.ProgrammingError("Database is closed")
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are managed explicitly with BEGIN/COMMIT.
            conn = await aiosqlite.connect(str(self.db_path), timeout=self._timeout, isolation_level=None)
            conn.row_factory = sqlite3.Row
            await self._apply_connection_pragmas(conn)
            self._conn = conn
            logger.info("Database opened: %s", self.db_path)
            return conn

    def _in_transaction(self) -> bool:
        token = _TX_TOKEN.get()
        return bool(token) and token == self._tx_token

    @staticmethod
    def _rows_to_dicts(rows: Any) -> List[Dict[str, Any]]:
        if not rows:
            return []
        return [dict(r) for r in rows]

    @staticmethod
    def _is_write_sql(query: str) -> bool:
        q = str(query or "").lstrip()
        if not q:
            return False
        head = q.split(None, 1)[0].upper()
        return head not in ("SELECT", "PRAGMA", "WITH", "EXPLAIN")

    async def _run(self, query: str, params: Optional[tuple], fetch: bool) -> Result[Any]:
        conn = await self._ensure_open()
        cursor = await conn.execute(query, params or ())
        try:
            if fetch:
                rows = await cursor.fetchall()
                return Result.Ok(self._rows_to_dicts(rows))
            rowcount = cursor.rowcount
            return Result.Ok(rowcount if rowcount is not None else 0)
        finally:
            await cursor.close()

    async def aexecute(self, query: str, params: Optional[tuple] = None, fetch: bool = False) -> Result[Any]:
        """Execute one statement; joins the caller's transaction when one is open."""
        try:
            if self._in_transaction() or not self._is_write_sql(query):
                return await self._run(query, params, fetch)
            async with self._write_lock:
                return await self._run(query, params, fetch)
        except sqlite3.IntegrityError as exc:
            logger.warning("Integrity error: %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, f"Integrity error: {exc}")
        except sqlite3.Error as exc:
            logger.error("Database error: %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, str(exc))
        except (OSError, ValueError) as exc:
            logger.error("Database unavailable: %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, str(exc))

    async def aquery(self, sql: str, params: Optional[tuple] = None) -> Result[List[Dict[str, Any]]]:
        """Execute a SELECT query and return rows."""
        return await self.aexecute(sql, params, fetch=True)

    async def aexecutemany(self, query: str, params_list: List[Tuple]) -> Result[int]:
        if not params_list:
            return Result.Ok(0)

        async def _many() -> Result[int]:
            conn = await self._ensure_open()
            cursor = await conn.executemany(query, params_list)
            try:
                return Result.Ok(cursor.rowcount if cursor.rowcount is not None else len(params_list))
            finally:
                await cursor.close()

        try:
            if self._in_transaction():
                return await _many()
            async with self._write_lock:
                return await _many()
        except sqlite3.Error as exc:
            logger.error("Database error (executemany): %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, str(exc))

    async def aexecutescript(self, script: str) -> Result[bool]:
        try:
            async with self._write_lock:
                conn = await self._ensure_open()
                await conn.executescript(script)
            return Result.Ok(True)
        except sqlite3.Error as exc:
            logger.error("Database error (script): %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, str(exc))
        except OSError as exc:
            logger.error("Database unavailable: %s", exc)
            return Result.Err(ErrorCode.DB_ERROR, str(exc))

    @staticmethod
    def _begin_stmt_for_mode(mode: str) -> str:
        m = str(mode or "").strip().lower()
        if m == "exclusive":
            return "BEGIN EXCLUSIVE"
        if m == "deferred":
            return "BEGIN"
        return "BEGIN IMMEDIATE"

    @asynccontextmanager
    async def atransaction(self, mode: str = "immediate"):
        """
        Async context manager for a DB transaction.

        Yields a Result describing the transaction state. An exception raised inside
        the block rolls back and propagates; otherwise the transaction commits and a
        failed commit flips the yielded state to an error.
        """
        async with self._write_lock:
            tx_state: Result[bool] = Result.Ok(True)
            try:
                conn = await self._ensure_open()
                await conn.execute(self._begin_stmt_for_mode(mode))
            except (sqlite3.Error, OSError) as exc:
                logger.error("Failed to begin transaction: %s", exc)
                yield Result.Err(ErrorCode.DB_ERROR, f"Failed to begin transaction: {exc}")
                return

            token = uuid.uuid4().hex
            self._tx_token = token
            token_handle = _TX_TOKEN.set(token)
            try:
                yield tx_state
                try:
                    await conn.commit()
                except sqlite3.Error as exc:
                    logger.error("Commit failed: %s", exc)
                    await self._rollback(conn)
                    tx_state.ok = False
                    tx_state.code = ErrorCode.DB_ERROR.value
                    tx_state.error = f"Commit failed: {exc}"
            except BaseException:
                await self._rollback(conn)
                raise
            finally:
                _TX_TOKEN.reset(token_handle)
                self._tx_token = None

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback failed: %s", exc)

    async def aclose(self) -> None:
        self._closed = True
        conn = self._conn
        self._conn = None
        if conn is None:
            return
        try:
            await conn.close()
        except sqlite3.Error as exc:
            logger.debug("Database close error: %s", exc)
