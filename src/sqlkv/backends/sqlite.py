"""SQLite backend."""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any

from sqlkv.exceptions import BackendError
from sqlkv.observability import get_logger
from sqlkv.protocols.backend import Row

logger = get_logger(__name__)


class SQLiteBackend:
    """SQLite backend built on the standard library driver.

    Suitable for local deployments and tests. Statements run one at a time
    behind an asyncio lock and are committed immediately.
    """

    def __init__(
        self,
        path: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize SQLite backend.

        Args:
            path: Path to SQLite database file. Defaults to ./data/kv.db
                  Use ":memory:" for in-memory database.
            **kwargs: Ignored (for compatibility with other backends)
        """
        if path == ":memory:":
            self.path: str | Path = ":memory:"
        else:
            self.path = Path(path) if path else Path("./data/kv.db")
            self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    async def _execute(self, query: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        async with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.execute(query, params)
                rows = cursor.fetchall()
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                logger.error("SQLite statement failed", context={"query": query}, error=e)
                raise BackendError(f"SQLite statement failed: {e}") from e
            return rows

    async def first(self, query: str, *params: Any) -> Row | None:
        """Execute a query and return its first row, if any."""
        rows = await self._execute(query, params)
        if not rows:
            return None
        return Row(_data=dict(rows[0]))

    async def all(self, query: str, *params: Any) -> list[Row]:
        """Execute a query and return every row."""
        rows = await self._execute(query, params)
        return [Row(_data=dict(row)) for row in rows]

    async def run(self, query: str, *params: Any) -> None:
        """Execute a mutating statement."""
        await self._execute(query, params)

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
