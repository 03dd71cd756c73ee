"""StateStore — namespaced key/value persistence on top of ``app_state``.

Values are opaque strings (JSON documents in practice). SQLite failures
are wrapped in StorageError so callers can treat persistence as
best-effort without catching driver-specific exceptions.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loguru import logger

from arzlive.core.exceptions import StorageError

if TYPE_CHECKING:
    from arzlive.persistence.database import Database

NAMESPACE = "arzlive"


def namespaced(name: str) -> str:
    """``arzlive:<name>``."""
    return f"{NAMESPACE}:{name}"


class StateStore:
    """Key/value access to the ``app_state`` table.

    Args:
        database: Connected Database instance
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def save_key(self, key: str, value: str) -> None:
        """INSERT OR REPLACE *value* under *key*.

        Raises:
            StorageError: the write failed
        """
        now = datetime.now(UTC).isoformat()
        try:
            conn = self._db.connection
            await conn.execute(
                "INSERT OR REPLACE INTO app_state (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, now),
            )
            await conn.commit()
        except (sqlite3.Error, ValueError, AssertionError) as e:
            raise StorageError(
                "Failed to write state",
                context={"key": key, "error": str(e)},
            ) from e

    async def load_key(self, key: str) -> str | None:
        """Stored value for *key*, None when absent.

        Raises:
            StorageError: the read failed
        """
        try:
            cursor = await self._db.connection.execute(
                "SELECT value FROM app_state WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        except (sqlite3.Error, ValueError, AssertionError) as e:
            raise StorageError(
                "Failed to read state",
                context={"key": key, "error": str(e)},
            ) from e
        if row is None:
            return None
        return row[0]  # type: ignore[no-any-return]

    async def get_updated_at(self, key: str) -> datetime | None:
        """Last write time of *key*. None when absent.

        Raises:
            StorageError: the read failed
        """
        try:
            cursor = await self._db.connection.execute(
                "SELECT updated_at FROM app_state WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
        except (sqlite3.Error, ValueError, AssertionError) as e:
            raise StorageError(
                "Failed to read state timestamp",
                context={"key": key, "error": str(e)},
            ) from e
        if row is None:
            return None
        return datetime.fromisoformat(row[0])

    async def delete_key(self, key: str) -> None:
        try:
            conn = self._db.connection
            await conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
            await conn.commit()
        except (sqlite3.Error, ValueError, AssertionError) as e:
            raise StorageError(
                "Failed to delete state",
                context={"key": key, "error": str(e)},
            ) from e
        logger.info("State key cleared: {}", key)
