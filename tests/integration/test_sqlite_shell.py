"""Integration tests driving a real sqlite3 shell."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import pytest

from sqlite_pipe import SQLiteWrapper, StatementError
from sqlite_pipe.domain.value_objects import ProcessState
from sqlite_pipe.infrastructure.config import Config
from sqlite_pipe.infrastructure.metrics import MetricsRegistry

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("sqlite3") is None, reason="sqlite3 shell not installed"),
]


@pytest.fixture
async def db(test_config: Config, metrics_registry: MetricsRegistry):
    """In-memory database on a real sqlite3 process."""
    wrapper = SQLiteWrapper("sqlite3", config=test_config, metrics=metrics_registry)
    yield wrapper
    await wrapper.close()


class TestSQLiteShell:
    """Test cases against sqlite3 itself."""

    async def test_create_insert_select(self, db: SQLiteWrapper) -> None:
        """Test the basic create/insert/select round trip."""
        await db.exec("CREATE TABLE t (x INTEGER)")
        await db.exec("INSERT INTO t (x) VALUES (?)", [5])

        rows = await db.query("SELECT x FROM t")

        assert rows == [{"x": 5}]

    async def test_quote_round_trip(self, db: SQLiteWrapper) -> None:
        """Strings with quotes come back exactly as inserted."""
        value = "O'Brien said \"hi\"; it's fine -- really?"
        await db.exec("CREATE TABLE people (name TEXT)")
        await db.exec("INSERT INTO people VALUES (?)", [value])

        rows = await db.query("SELECT name FROM people WHERE name = ?", [value])

        assert rows == [{"name": value}]

    async def test_unicode(self, db: SQLiteWrapper) -> None:
        rows = await db.query("SELECT ? AS s", ["héllo, 世界"])

        assert rows == [{"s": "héllo, 世界"}]

    async def test_value_types(self, db: SQLiteWrapper) -> None:
        rows = await db.query("SELECT ? AS i, ? AS f, ? AS n, ? AS b", [2**40, 1.5, None, True])

        assert rows == [{"i": 2**40, "f": 1.5, "n": None, "b": 1}]

    async def test_empty_query(self, db: SQLiteWrapper) -> None:
        """A query with no rows returns an empty list."""
        await db.exec("CREATE TABLE t (x INTEGER)")

        assert await db.query("SELECT * FROM t") == []

    async def test_exec_output(self, db: SQLiteWrapper) -> None:
        """exec() returns the shell's list-mode text."""
        assert await db.exec("SELECT 1, 'a'") == "1|a"

    async def test_statement_error_then_continue(self, db: SQLiteWrapper) -> None:
        """A failed statement does not disturb the next one."""
        with pytest.raises(StatementError, match="no such table"):
            await db.exec("SELECT * FROM missing")

        assert await db.query("SELECT 7 AS n") == [{"n": 7}]
        assert db.state is ProcessState.RUNNING

    async def test_syntax_error(self, db: SQLiteWrapper) -> None:
        with pytest.raises(StatementError, match="syntax error"):
            await db.exec("SELEC 1")

    async def test_concurrent_inserts(self, db: SQLiteWrapper) -> None:
        """Concurrent callers are serialized in call order."""
        await db.exec("CREATE TABLE seq (n INTEGER)")

        await asyncio.gather(*(db.exec("INSERT INTO seq VALUES (?)", [i]) for i in range(50)))

        rows = await db.query("SELECT n FROM seq ORDER BY rowid")
        assert [r["n"] for r in rows] == list(range(50))

    async def test_mixed_modes(self, db: SQLiteWrapper) -> None:
        """exec() after query() sees JSON output but still completes."""
        await db.query("SELECT 1")

        assert await db.exec("SELECT 2 AS v") == '[{"v":2}]'

    async def test_batch_fail_fast(self, db: SQLiteWrapper) -> None:
        """Later batch items do not run after a failure; earlier ones stay."""
        await db.exec("CREATE TABLE u (id INTEGER PRIMARY KEY)")

        with pytest.raises(StatementError, match="UNIQUE"):
            await db.batch([
                ("INSERT INTO u VALUES (?)", [1]),
                ("INSERT INTO u VALUES (?)", [1]),
                ("INSERT INTO u VALUES (?)", [2]),
            ])

        assert await db.query("SELECT id FROM u") == [{"id": 1}]

    async def test_large_result(self, db: SQLiteWrapper) -> None:
        rows = await db.query(
            "WITH RECURSIVE c(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM c WHERE n < 2000) "
            "SELECT n, printf('row-%d', n) AS label FROM c"
        )

        assert len(rows) == 2000
        assert rows[-1] == {"n": 2000, "label": "row-2000"}

    async def test_close_is_idempotent(self, db: SQLiteWrapper) -> None:
        await db.exec("SELECT 1")

        await asyncio.gather(db.close(), db.close())
        await db.close()

        assert db.state is ProcessState.CLOSED_GRACEFUL


class TestPersistence:
    """Test cases for file-backed databases."""

    async def test_data_persists(
        self, temp_dir: Path, test_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        """Data written by one wrapper is visible to the next."""
        path = temp_dir / "app.db"

        async with SQLiteWrapper("sqlite3", path, config=test_config, metrics=metrics_registry) as db:
            await db.exec("CREATE TABLE kv (k TEXT PRIMARY KEY, v TEXT)")
            await db.exec("INSERT INTO kv VALUES (?, ?)", ["answer", "42"])

        async with SQLiteWrapper("sqlite3", path, config=test_config, metrics=metrics_registry) as db:
            rows = await db.query("SELECT v FROM kv WHERE k = ?", ["answer"])

        assert rows == [{"v": "42"}]
