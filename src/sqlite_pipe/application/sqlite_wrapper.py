"""SQLiteWrapper - async API over the sqlite3 command-line shell.

This module provides the public entry point. It wires a transport, a
request queue, a line reassembler and a process supervisor together and
exposes exec/query/batch/close on top of them.

Usage:
    from sqlite_pipe import SQLiteWrapper

    async with SQLiteWrapper("sqlite3", "app.db") as db:
        await db.exec("CREATE TABLE users (id INTEGER, name TEXT)")
        await db.exec("INSERT INTO users VALUES (?, ?)", [1, "Alice"])
        rows = await db.query("SELECT * FROM users WHERE id = ?", [1])
        # [{'id': 1, 'name': 'Alice'}]

All calls share one FIFO. A call issued earlier is executed earlier no
matter which coroutine issued it, and the child process only ever sees one
statement at a time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from sqlite_pipe.adapters.outbound.sql_literal_interpolator import SQLLiteralInterpolator
from sqlite_pipe.adapters.outbound.subprocess_transport import SubprocessTransport
from sqlite_pipe.application.process_supervisor import ProcessSupervisor
from sqlite_pipe.domain.errors import ParameterError, ResultParseError
from sqlite_pipe.domain.services.line_reassembler import LineReassembler
from sqlite_pipe.domain.services.request_queue import RequestQueue
from sqlite_pipe.domain.value_objects.batch import BatchOperation
from sqlite_pipe.domain.value_objects.process_state import ProcessState
from sqlite_pipe.domain.value_objects.shell_protocol import JSON_MODE_COMMAND, Sentinel
from sqlite_pipe.infrastructure.config import Config, get_config
from sqlite_pipe.infrastructure.logging import NullLogger, get_logger
from sqlite_pipe.infrastructure.metrics import MetricsRegistry, get_metrics
from sqlite_pipe.infrastructure.tracing import trace_span
from sqlite_pipe.ports.outbound.logger import LoggerSink
from sqlite_pipe.ports.outbound.process_transport import ProcessTransport
from sqlite_pipe.ports.outbound.statement_interpolator import StatementInterpolator

_RECORDS = TypeAdapter(list[dict[str, Any]])

# Widest UTF-8 character; a line tail of (cap + 1) * 4 bytes still overflows a cap in chars
_MAX_CHAR_BYTES = 4


class SQLiteWrapper:
    """Async client driving one sqlite3 shell process.

    The process is spawned by the first call (or by ``async with``) and
    lives until close() or a fatal fault. After either, every call fails:
    with WrapperClosedError after close(), or with the original
    ProcessFatalError after a fault.

    Thread Safety:
        Not thread-safe. Use one wrapper per event loop.
    """

    def __init__(
        self,
        executable: str | None = None,
        database_path: str | Path | None = None,
        *,
        config: Config | None = None,
        logger: LoggerSink | None = None,
        metrics: MetricsRegistry | None = None,
        transport: ProcessTransport | None = None,
        interpolator: StatementInterpolator | None = None,
        request_timeout: float | None = None,
    ) -> None:
        """Initialize the wrapper. No process is spawned yet.

        Args:
            executable: sqlite3 executable. Defaults to config.
            database_path: Database file; None (and no configured path)
                runs an in-memory database.
            config: Settings; defaults to get_config().
            logger: Event sink. Defaults to a structlog logger when
                logging is enabled in config, else a no-op sink.
            metrics: Metrics registry; defaults to the global one.
            transport: Overrides the subprocess transport (for tests or
                alternative launchers); executable/database_path are then
                ignored.
            interpolator: Overrides parameter rendering.
            request_timeout: Default per-request deadline in seconds.
        """
        self._config = config or get_config()
        process = self._config.process

        self._executable = executable or process.executable
        self._database_path = database_path if database_path is not None else process.database_path
        self._request_timeout = (
            request_timeout
            if request_timeout is not None
            else self._config.queue.request_timeout_seconds
        )

        if logger is None:
            if self._config.observability.logging_enabled:
                logger = get_logger(
                    executable=self._executable,
                    database=str(self._database_path or ":memory:"),
                )
            else:
                logger = NullLogger()
        self._logger = logger
        self._metrics = metrics or get_metrics()

        self._transport = transport or SubprocessTransport(
            self._executable,
            self._database_path,
            extra_args=process.extra_args,
            stream_limit=process.stream_limit_bytes,
            encoding=process.encoding,
            max_line_bytes=(self._config.queue.max_buffer_chars + 1) * _MAX_CHAR_BYTES,
        )
        sentinel = Sentinel(self._config.queue.sentinel_tag)
        self._reassembler = LineReassembler(
            sentinel=sentinel,
            max_buffer_chars=self._config.queue.max_buffer_chars,
            logger=self._logger,
            metrics=self._metrics,
        )
        self._queue = RequestQueue(
            writer=self._transport.write,
            interpolator=interpolator or SQLLiteralInterpolator(),
            sentinel=sentinel,
            logger=self._logger,
            metrics=self._metrics,
            encoding=process.encoding,
        )
        self._supervisor = ProcessSupervisor(
            transport=self._transport,
            queue=self._queue,
            reassembler=self._reassembler,
            close_grace_seconds=process.close_grace_seconds,
            logger=self._logger,
            metrics=self._metrics,
        )

        self._json_mode_set = False

    @property
    def state(self) -> ProcessState:
        """Current lifecycle state of the child process."""
        return self._supervisor.state

    @property
    def closed(self) -> bool:
        return self._supervisor.state.is_closed()

    async def exec(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Execute a statement.

        Args:
            statement: SQL, optionally with ``?`` placeholders.
            params: Values for the placeholders, in order.
            timeout: Deadline in seconds; defaults to the configured one.

        Returns:
            Whatever the shell printed for the statement, right-stripped.

        Raises:
            StatementError: If the shell reported an error.
            ParameterError: If params cannot be interpolated.
            RequestTimeoutError: If the deadline passed.
            WrapperClosedError, ProcessFatalError: If the wrapper is unusable.
        """
        with trace_span("sqlite_pipe.exec", {"db.statement": statement}):
            await self._supervisor.start()
            future = self._queue.enqueue(statement, params, timeout=self._timeout(timeout))
            return await future

    async def query(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a statement and decode its rows.

        The first query switches the shell to JSON output. The mode command
        is queued immediately ahead of the statement, so nothing else can
        run between them.

        Returns:
            One dict per row; an empty list when no rows are produced.

        Raises:
            ResultParseError: If the output is not a JSON array of objects.
            Plus everything exec() raises.
        """
        with trace_span("sqlite_pipe.query", {"db.statement": statement}):
            await self._supervisor.start()
            deadline = self._timeout(timeout)

            mode_future = None
            if not self._json_mode_set:
                mode_future = self._queue.enqueue(JSON_MODE_COMMAND, raw=True, timeout=deadline)
                mode_future.add_done_callback(self._on_mode_settled)
                self._json_mode_set = True

            # A ParameterError leaves the mode switch queued; it still runs
            future = self._queue.enqueue(statement, params, timeout=deadline)

            if mode_future is not None:
                try:
                    # A cancelled caller leaves the switch queued for later queries
                    await asyncio.shield(mode_future)
                except BaseException:
                    # Would run in the wrong output mode, or nobody waits for it
                    self._withdraw(future)
                    raise
            return self._parse_records(await future)

    async def batch(
        self,
        operations: Iterable[Any],
        *,
        timeout: float | None = None,
    ) -> list[str]:
        """Execute statements strictly in order, failing fast.

        Each item may be a statement string, a ``(statement, params)`` pair,
        a ``{"statement": ..., "params": ...}`` mapping or a BatchOperation.
        The items are queued back to back, so no other caller's statements
        run in between. On the first failure the remaining items are not
        executed and the error is raised; statements that already ran are
        not rolled back (wrap the batch in BEGIN/COMMIT for that).

        Returns:
            The output text of every statement, in order.

        Raises:
            TypeError: If an item has an unsupported shape (nothing runs).
            The first error raised by any item.
        """
        ops = [BatchOperation.coerce(item) for item in operations]

        with trace_span("sqlite_pipe.batch", {"db.batch.size": len(ops)}):
            await self._supervisor.start()
            deadline = self._timeout(timeout)
            group = object()

            futures = []
            parameter_error: ParameterError | None = None
            for op in ops:
                try:
                    futures.append(
                        self._queue.enqueue(op.statement, op.params, timeout=deadline, group=group)
                    )
                except ParameterError as e:
                    # Items before this one still run, as if executed one by one
                    parameter_error = e
                    break

            results: list[str] = []
            for index, future in enumerate(futures):
                try:
                    results.append(await future)
                except BaseException:
                    # Later items were aborted in the same step; collect them
                    await self._drain(futures[index + 1 :])
                    raise

            if parameter_error is not None:
                raise parameter_error
            return results

    async def close(self) -> None:
        """Shut down the shell. Safe to call any number of times."""
        await self._supervisor.close()

    def stats(self) -> dict[str, Any]:
        """Get wrapper statistics.

        Returns:
            Dictionary with lifecycle and queue information.
        """
        in_flight = self._queue.in_flight
        return {
            "state": self._supervisor.state.name,
            "pid": self._supervisor.pid,
            "executable": self._executable,
            "database_path": str(self._database_path) if self._database_path else None,
            "pending": self._queue.pending_count,
            "in_flight": in_flight.request_id if in_flight is not None else None,
            "json_mode_set": self._json_mode_set,
        }

    def _timeout(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._request_timeout

    def _on_mode_settled(self, future: asyncio.Future[str]) -> None:
        if future.cancelled() or future.exception() is not None:
            # Never confirmed; the next query sends it again (it is idempotent)
            self._json_mode_set = False

    @staticmethod
    def _withdraw(future: asyncio.Future[str]) -> None:
        if not future.cancel() and not future.cancelled():
            # Already settled; mark its outcome as retrieved
            future.exception()

    @staticmethod
    def _parse_records(text: str) -> list[dict[str, Any]]:
        if not text.strip():
            return []
        try:
            return _RECORDS.validate_json(text)
        except ValidationError as e:
            raise ResultParseError(f"Invalid JSON from sqlite3: {e.error_count()} error(s)", text) from e

    @staticmethod
    async def _drain(futures: list[asyncio.Future[str]]) -> None:
        for future in futures:
            future.cancel()
        # Collect the outcomes so no rejection goes unretrieved
        await asyncio.gather(*futures, return_exceptions=True)

    async def __aenter__(self) -> SQLiteWrapper:
        await self._supervisor.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
