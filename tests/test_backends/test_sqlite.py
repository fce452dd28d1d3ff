"""Tests for SQLite backend."""

import pytest

from sqlkv.backends.sqlite import SQLiteBackend
from sqlkv.exceptions import BackendError
from sqlkv.protocols import KVBackend


@pytest.fixture
async def db():
    """Create an in-memory SQLite backend with a test table."""
    backend = SQLiteBackend(path=":memory:")
    await backend.run("""
        CREATE TABLE users (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT UNIQUE
        )
    """)
    yield backend
    await backend.close()


class TestSQLiteBackend:
    """Tests for SQLiteBackend."""

    @pytest.mark.asyncio
    async def test_satisfies_protocol(self, db):
        """The backend implements the KVBackend protocol."""
        assert isinstance(db, KVBackend)

    @pytest.mark.asyncio
    async def test_run_and_first(self, db):
        """Test inserting and selecting one row."""
        await db.run(
            "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
            "1", "Alice", "alice@example.com",
        )

        row = await db.first("SELECT * FROM users WHERE id = ?", "1")
        assert row is not None
        assert row.name == "Alice"
        assert row["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_first_without_rows(self, db):
        """first returns None when nothing matches."""
        assert await db.first("SELECT * FROM users WHERE id = ?", "999") is None

    @pytest.mark.asyncio
    async def test_all(self, db):
        """all returns every row in query order."""
        for n, name in enumerate(["Charlie", "Alice", "Bob"]):
            await db.run("INSERT INTO users (id, name) VALUES (?, ?)", str(n), name)

        rows = await db.all("SELECT * FROM users ORDER BY name")
        assert [row.name for row in rows] == ["Alice", "Bob", "Charlie"]

    @pytest.mark.asyncio
    async def test_all_empty(self, db):
        assert await db.all("SELECT * FROM users") == []

    @pytest.mark.asyncio
    async def test_row_access(self, db):
        """Test Row attribute-style access."""
        await db.run("INSERT INTO users (id, name) VALUES (?, ?)", "1", "Bob")

        row = await db.first("SELECT * FROM users")
        assert "name" in row
        assert row.keys() == ["id", "name", "email"]
        assert row.values() == ["1", "Bob", None]
        assert row.to_dict() == {"id": "1", "name": "Bob", "email": None}

        with pytest.raises(AttributeError, match="nonexistent"):
            _ = row.nonexistent

    @pytest.mark.asyncio
    async def test_constraint_violation_raises_backend_error(self, db):
        """Driver errors surface as BackendError."""
        await db.run("INSERT INTO users (id, name) VALUES (?, ?)", "1", "Alice")

        with pytest.raises(BackendError, match="UNIQUE"):
            await db.run("INSERT INTO users (id, name) VALUES (?, ?)", "1", "Again")

        rows = await db.all("SELECT * FROM users")
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_malformed_sql_raises_backend_error(self, db):
        with pytest.raises(BackendError):
            await db.all("SELEKT nothing")

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path):
        """Data written to a file survives reopening."""
        path = tmp_path / "nested" / "kv.db"
        backend = SQLiteBackend(path=str(path))
        await backend.run("CREATE TABLE t (v TEXT)")
        await backend.run("INSERT INTO t (v) VALUES (?)", "kept")
        await backend.close()

        reopened = SQLiteBackend(path=str(path))
        row = await reopened.first("SELECT v FROM t")
        await reopened.close()
        assert row.v == "kept"
