"""
Database infrastructure with SQLite and async support.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiosqlite


logger = logging.getLogger(__name__)


class Database:
    """Async SQLite database wrapper.

    ``schema`` statements are executed once on connect, so each store owns
    its own tables.
    """

    def __init__(self, db_path: str = "funding_radar.db", schema: Sequence[str] = ()):
        # Handle sqlite+aiosqlite:///path format
        if db_path.startswith("sqlite"):
            if "///" in db_path:
                actual_path = db_path.split("///")[-1]
            else:
                actual_path = db_path.split("//")[-1]
            db_path = actual_path
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._schema = list(schema)
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Connect to the database and create the schema."""
        if self._connection:
            return

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path, timeout=30)
        self._connection.row_factory = aiosqlite.Row
        if self.db_path != ":memory:":
            await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._connection.execute("PRAGMA busy_timeout=30000;")
        await self._run_migrations()
        logger.debug(f"Connected to {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *_) -> None:
        await self.close()

    async def execute(self, sql: str, params: Tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Execute a SQL statement and commit it."""
        if not self._connection:
            await self.connect()
        cursor = await self._connection.execute(sql, params)
        await self._connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: Tuple[Any, ...] = ()) -> Optional[aiosqlite.Row]:
        """Fetch one row."""
        if not self._connection:
            await self.connect()
        cursor = await self._connection.execute(sql, params)
        return await cursor.fetchone()

    async def fetch_all(self, sql: str, params: Tuple[Any, ...] = ()) -> List[aiosqlite.Row]:
        """Fetch all rows."""
        if not self._connection:
            await self.connect()
        cursor = await self._connection.execute(sql, params)
        return await cursor.fetchall()

    async def upsert(
        self,
        table: str,
        data: Dict[str, Any],
        pk_columns: List[str],
    ) -> None:
        """Upsert data into a table."""
        columns = list(data.keys())
        placeholders = ", ".join("?" * len(columns))

        update_columns = [col for col in columns if col not in pk_columns]
        if update_columns:
            update_clause = ", ".join(f"{col} = excluded.{col}" for col in update_columns)
            conflict_clause = f"ON CONFLICT({', '.join(pk_columns)}) DO UPDATE SET {update_clause}"
        else:
            conflict_clause = f"ON CONFLICT({', '.join(pk_columns)}) DO NOTHING"

        sql = f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({placeholders})
            {conflict_clause}
        """
        await self.execute(sql, tuple(data.values()))

    async def _run_migrations(self) -> None:
        for statement in self._schema:
            await self._connection.execute(statement)
        await self._connection.commit()
