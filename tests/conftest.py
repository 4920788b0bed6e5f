"""Pytest configuration and fixtures for sqlite_pipe tests."""

from __future__ import annotations

import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, AsyncGenerator, Generator

import pytest
from prometheus_client import CollectorRegistry

from sqlite_pipe import SQLiteWrapper
from sqlite_pipe.domain.errors import ProcessSpawnError, ProcessTransportError
from sqlite_pipe.domain.value_objects.shell_protocol import (
    DEFAULT_SENTINEL,
    EXIT_COMMAND,
    JSON_MODE_COMMAND,
    Sentinel,
)
from sqlite_pipe.infrastructure.config import Config, ProcessConfig, QueueConfig
from sqlite_pipe.infrastructure.metrics import MetricsRegistry


class FakeShellTransport:
    """In-memory stand-in for the sqlite3 shell.

    Emulates just enough of the shell for the driver: list and json output
    modes, the sentinel echo, errors on stderr, ``.mode json`` and ``.exit``.
    Responses are scripted per statement with respond(); unscripted SQL
    prints nothing.

    pause() holds incoming lines until resume(), which keeps a request in
    flight for as long as a test needs.
    """

    PID = 4242

    def __init__(
        self,
        sentinel: Sentinel = DEFAULT_SENTINEL,
        spawn_error: ProcessSpawnError | None = None,
    ) -> None:
        self.sentinel = sentinel
        self.spawn_error = spawn_error
        self.start_calls = 0
        self.received: list[str] = []
        self.json_mode = False
        self.fail_writes = False
        self.ignore_exit = False

        self._responses: dict[str, tuple[list[dict[str, Any]] | None, str | None]] = {}
        self._partial = ""
        self._held: list[str] = []
        self._paused = False
        self._started = False
        self._stdin_closed = False
        self._returncode: int | None = None
        self._exited = asyncio.Event()
        self._stdout: asyncio.Queue[str | BaseException | None] = asyncio.Queue()
        self._stderr: asyncio.Queue[str | None] = asyncio.Queue()

    # -- scripting -------------------------------------------------------

    def respond(
        self,
        statement: str,
        rows: list[dict[str, Any]] | None = None,
        error: str | None = None,
    ) -> None:
        """Script the output of a statement (matched without its ';')."""
        self._responses[_key(statement)] = (rows, error)

    @property
    def statements(self) -> list[str]:
        """SQL and dot-commands received, sentinel selects excluded."""
        return [line for line in self.received if line != self.sentinel.statement]

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False
        held, self._held = self._held, []
        for line in held:
            self._execute(line)

    def crash(self, returncode: int = 1) -> None:
        """Simulate the shell dying on its own."""
        self._finish(returncode)

    def break_stdout(self, error: BaseException) -> None:
        """Make the next stdout read raise error."""
        self._stdout.put_nowait(error)

    def emit_stdout(self, line: str) -> None:
        self._stdout.put_nowait(line)

    # -- ProcessTransport ------------------------------------------------

    @property
    def argv(self) -> list[str]:
        return ["fake-sqlite3"]

    @property
    def pid(self) -> int | None:
        return self.PID if self._started else None

    @property
    def returncode(self) -> int | None:
        return self._returncode

    @property
    def is_alive(self) -> bool:
        return self._started and self._returncode is None

    async def start(self) -> None:
        self.start_calls += 1
        await asyncio.sleep(0)
        if self.spawn_error is not None:
            raise self.spawn_error
        self._started = True

    def write(self, data: str) -> None:
        if not self.is_alive or self._stdin_closed or self.fail_writes:
            raise ProcessTransportError("fake stdin is not writable")
        text = self._partial + data
        *lines, self._partial = text.split("\n")
        for line in lines:
            self.received.append(line)
            if self._paused:
                self._held.append(line)
            else:
                self._execute(line)

    async def read_stdout_line(self) -> str | None:
        item = await self._stdout.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def read_stderr(self) -> str | None:
        return await self._stderr.get()

    def close_stdin(self) -> None:
        self._stdin_closed = True
        if not self.ignore_exit:
            self._finish(0)

    async def wait(self, timeout: float | None = None) -> int | None:
        if not self._started:
            return None
        try:
            await asyncio.wait_for(self._exited.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        return self._returncode

    def kill(self) -> None:
        if self.is_alive:
            self._finish(-9)

    # -- shell emulation -------------------------------------------------

    def _execute(self, line: str) -> None:
        if self._returncode is not None:
            return
        command = line.strip()
        if not command:
            return
        if command == EXIT_COMMAND:
            if not self.ignore_exit:
                self._finish(0)
            return
        if command == JSON_MODE_COMMAND:
            self.json_mode = True
            return
        if command == self.sentinel.statement:
            self._print_rows([{f"'{self.sentinel.tag}'": self.sentinel.tag}])
            return

        rows, error = self._responses.get(_key(command), (None, None))
        if error is not None:
            self._stderr.put_nowait(error + "\n")
        elif rows:
            self._print_rows(rows)

    def _print_rows(self, rows: list[dict[str, Any]]) -> None:
        if self.json_mode:
            records = [json.dumps(row, separators=(",", ":")) for row in rows]
            text = "[" + ",\n".join(records) + "]"
            for line in text.split("\n"):
                self._stdout.put_nowait(line)
        else:
            for row in rows:
                self._stdout.put_nowait("|".join(str(v) for v in row.values()))

    def _finish(self, returncode: int) -> None:
        if self._returncode is not None:
            return
        self._returncode = returncode
        self._stdout.put_nowait(None)
        self._stderr.put_nowait(None)
        self._exited.set()


def _key(statement: str) -> str:
    return statement.strip().rstrip(";").strip()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration with short shutdown timings."""
    return Config(
        process=ProcessConfig(
            close_grace_seconds=0.5,
        ),
        queue=QueueConfig(
            max_buffer_chars=65536,  # 64K for tests
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def fake_shell() -> FakeShellTransport:
    """Provide a scripted in-memory shell."""
    return FakeShellTransport()


@pytest.fixture
async def wrapper(
    fake_shell: FakeShellTransport,
    test_config: Config,
    metrics_registry: MetricsRegistry,
) -> AsyncGenerator[SQLiteWrapper, None]:
    """Provide a wrapper driving the fake shell; closed after the test."""
    db = SQLiteWrapper(config=test_config, metrics=metrics_registry, transport=fake_shell)
    yield db
    await db.close()


def sample_value(registry: MetricsRegistry, name: str, **labels: str) -> float:
    """Read one sample from the wrapper's prometheus registry (0 if absent)."""
    value = registry.registry.get_sample_value(name, labels or None)
    return value or 0.0


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "chaos: Chaos/fault injection tests")
    config.addinivalue_line("markers", "slow: Slow tests")
