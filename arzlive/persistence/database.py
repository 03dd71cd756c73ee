"""Database: the single aiosqlite connection behind StateStore."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
from loguru import logger

from arzlive.persistence.schema import SCHEMA_SQL

IN_MEMORY = ":memory:"

# WAL lets the CLI read history while a watcher is writing it
_PRAGMAS: tuple[str, ...] = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA busy_timeout=5000",
)


class Database:
    """Owns one aiosqlite connection and the ``app_state`` schema.

    Args:
        db_path: SQLite file (parent directories are created), or
            ``":memory:"`` for a throwaway database

    Example:
        >>> async with Database("data/arzlive.db") as db:
        ...     store = StateStore(db)
    """

    def __init__(self, db_path: str | Path = "data/arzlive.db") -> None:
        self._path = str(db_path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the file (once), apply pragmas, create the schema."""
        if self._connection is not None:
            return
        if self._path != IN_MEMORY:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        connection = await aiosqlite.connect(self._path)
        for pragma in _PRAGMAS:
            await connection.execute(pragma)
        await connection.executescript(SCHEMA_SQL)
        await connection.commit()
        self._connection = connection
        logger.debug("State database open: {}", self._path)

    async def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()
            logger.debug("State database closed: {}", self._path)

    @property
    def connection(self) -> aiosqlite.Connection:
        """Open connection; AssertionError when :meth:`connect` was not awaited."""
        assert self._connection is not None, "Database not connected. Call connect() first."
        return self._connection

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
