"""Shared helpers for the SQLite repositories."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional, Union

import aiosqlite

logger = logging.getLogger(__name__)


def safe_get(row: Any, key: str, default: Any = None) -> Any:
    """Read a column from an aiosqlite.Row or dict, or ``default`` if absent."""
    if row is None:
        return default
    try:
        if hasattr(row, "keys") and key not in row.keys():
            return default
        return row[key]
    except (KeyError, IndexError, TypeError):
        return default


def safe_get_bool(row: Any, key: str, default: bool = False) -> bool:
    """Read a 0/1 flag column."""
    value = safe_get(row, key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def safe_get_float(
    row: Any, key: str, default: Optional[float] = None
) -> Optional[float]:
    """Read a REAL column.

    NULL comes back as ``default`` (None unless given): for the driving
    columns NULL and 0 mean different things.
    """
    value = safe_get(row, key)
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Non-numeric value in column {key}: {value!r}")
        return default


def safe_get_int(row: Any, key: str, default: Optional[int] = None) -> Optional[int]:
    """Read an INTEGER column, accepting "3" and 3.0 as well."""
    number = safe_get_float(row, key)
    return default if number is None else int(number)


@asynccontextmanager
async def transaction_context(
    db: Union[Any, aiosqlite.Connection],
) -> AsyncIterator[aiosqlite.Connection]:
    """
    Transaction over a Database (or DatabaseAdapter) or a raw connection.

    Yields:
        aiosqlite.Connection to run the statements on; commits on exit,
        rolls back if the block raises
    """
    if hasattr(db, "transaction"):
        async with db.transaction() as conn:
            yield conn
        return

    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


class DatabaseAdapter:
    """Gives a raw aiosqlite.Connection the Database interface (tests)."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()):
        return await self._conn.execute(sql, params)

    async def fetchone(self, sql: str, params: tuple = ()):
        cursor = await self.execute(sql, params)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple = ()):
        cursor = await self.execute(sql, params)
        return list(await cursor.fetchall())

    async def commit(self):
        await self._conn.commit()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with transaction_context(self._conn) as conn:
            yield conn


def resolve_db(db: Any, default_factory: Callable[[], Any]) -> Any:
    """Pick the database a repository talks to.

    A raw aiosqlite connection (tests) is wrapped in DatabaseAdapter; None
    falls back to the application database from ``default_factory``.
    """
    if db is None:
        return default_factory()
    if isinstance(db, aiosqlite.Connection):
        return DatabaseAdapter(db)
    return db
