"""
Database manager for the schedules store.

Every connection is opened here, with WAL journaling, a busy timeout and
foreign keys on. Repositories get their Database from get_db_manager()
unless a test hands them a connection directly.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

logger = logging.getLogger(__name__)

# Applied to every new connection, in order
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=30000",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
)


class Database:
    """One SQLite file behind a lazily opened, shared aiosqlite connection.

    Rows come back as aiosqlite.Row, so columns are read by name.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def connect(self) -> aiosqlite.Connection:
        """Open the connection on first use and return it."""
        async with self._lock:
            if self._connection is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                connection = await aiosqlite.connect(self.path)
                connection.row_factory = aiosqlite.Row
                for pragma in CONNECTION_PRAGMAS:
                    await connection.execute(pragma)
                self._connection = connection
                logger.debug(f"Opened database {self.name} at {self.path}")

            return self._connection

    async def close(self):
        async with self._lock:
            if self._connection is None:
                return
            await self._connection.close()
            self._connection = None
            logger.debug(f"Closed database {self.name}")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Run a block of statements as one transaction.

        Commits when the block exits normally and rolls back when it raises;
        the exception is re-raised either way.
        """
        conn = await self.connect()
        try:
            yield conn
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        conn = await self.connect()
        return await conn.execute(sql, params)

    async def executescript(self, sql: str):
        conn = await self.connect()
        await conn.executescript(sql)

    async def commit(self):
        conn = await self.connect()
        await conn.commit()

    async def fetchone(self, sql: str, params: tuple = ()) -> Optional[aiosqlite.Row]:
        cursor = await self.execute(sql, params)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        cursor = await self.execute(sql, params)
        return list(await cursor.fetchall())


class DatabaseManager:
    """Holds the application's databases.

    Databases:
    - schedules: payment schedules and their milestone rows
    """

    def __init__(self, data_dir: Path, schedules_name: str = "schedules.db"):
        self.data_dir = Path(data_dir)
        self.schedules = Database(self.data_dir / schedules_name)

    async def close_all(self):
        await self.schedules.close()
        logger.info("All database connections closed")


# Set by init_databases() during application startup
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Return the process-wide DatabaseManager.

    Raises:
        RuntimeError: init_databases() has not run
    """
    if _db_manager is None:
        raise RuntimeError(
            "Database manager not initialized. Call init_databases() first."
        )
    return _db_manager


async def init_databases(
    data_dir: Path, schedules_name: str = "schedules.db"
) -> DatabaseManager:
    """Create the global DatabaseManager and make sure the schema exists."""
    global _db_manager

    from milestones.core.database.schemas import init_schedules_schema

    manager = DatabaseManager(data_dir, schedules_name)
    await init_schedules_schema(manager.schedules)
    _db_manager = manager

    logger.info(f"Databases initialized in {data_dir}")
    return manager


async def shutdown_databases():
    global _db_manager

    if _db_manager is not None:
        await _db_manager.close_all()
        _db_manager = None
