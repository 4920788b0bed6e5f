"""Process Supervisor - owns the sqlite3 child process lifecycle.

The supervisor spawns the process, runs one reader task per output stream
plus an exit watcher, and turns everything those tasks observe into
events. handle() maps each event type to one synchronous transition, so
queue and reassembler state only ever change inside a single callback.

Lifecycle (see ProcessState):
    - start() spawns lazily; concurrent callers share one attempt
    - a spawn failure, unexpected exit or stream fault enters CLOSED_FATAL:
      every outstanding request is rejected and the process is killed
    - close() enters CLOSED_GRACEFUL: outstanding requests are rejected,
      the shell is asked to exit, and killed if it outlives the grace period
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Callable

from sqlite_pipe.domain.errors import (
    ProcessExitedError,
    ProcessFatalError,
    ProcessSpawnError,
    ProcessTransportError,
    WrapperClosedError,
)
from sqlite_pipe.domain.services.line_reassembler import LineReassembler
from sqlite_pipe.domain.services.request_queue import RequestQueue
from sqlite_pipe.domain.value_objects.process_events import (
    ProcessEvent,
    ProcessExited,
    StderrText,
    StdoutLine,
    TransportFailed,
)
from sqlite_pipe.domain.value_objects.process_state import ProcessState
from sqlite_pipe.domain.value_objects.shell_protocol import EXIT_COMMAND
from sqlite_pipe.infrastructure.logging import NullLogger

if TYPE_CHECKING:
    from sqlite_pipe.infrastructure.metrics import MetricsRegistry
    from sqlite_pipe.ports.outbound.logger import LoggerSink
    from sqlite_pipe.ports.outbound.process_transport import ProcessTransport


class ProcessSupervisor:
    """Drives one ProcessTransport and feeds its output to the queue.

    Thread Safety:
        Not thread-safe. Everything runs on the event loop that first
        called start().
    """

    def __init__(
        self,
        transport: ProcessTransport,
        queue: RequestQueue,
        reassembler: LineReassembler,
        close_grace_seconds: float = 2.0,
        logger: LoggerSink | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the supervisor. Nothing is spawned until start().

        Args:
            transport: The child process transport.
            queue: Request queue that writes through the transport.
            reassembler: Turns stdout/stderr into finalized results.
            close_grace_seconds: Time allowed for a polite exit on close().
            logger: Sink for lifecycle events.
            metrics: Optional MetricsRegistry.
        """
        self._transport = transport
        self._queue = queue
        self._reassembler = reassembler
        self._close_grace_seconds = close_grace_seconds
        self._logger = logger or NullLogger()
        self._metrics = metrics

        self._state = ProcessState.STARTING
        self._fatal_error: ProcessFatalError | None = None
        self._start_task: asyncio.Task[None] | None = None
        self._shutdown_task: asyncio.Task[None] | None = None
        self._reap_task: asyncio.Task[int | None] | None = None
        self._reader_tasks: list[asyncio.Task[None]] = []

        self._handlers: dict[type, Callable] = {
            StdoutLine: self._on_stdout_line,
            StderrText: self._on_stderr_text,
            ProcessExited: self._on_process_exited,
            TransportFailed: self._on_transport_failed,
        }

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def fatal_error(self) -> ProcessFatalError | None:
        return self._fatal_error

    @property
    def pid(self) -> int | None:
        return self._transport.pid

    async def start(self) -> None:
        """Spawn the process if this is the first call.

        Returns without suspending once the process is running or closed.
        A failed spawn does not raise here; it closes the queue, so the
        caller's next enqueue() raises the spawn error.
        """
        if self._state is not ProcessState.STARTING:
            return
        if self._start_task is None:
            self._start_task = asyncio.ensure_future(self._spawn())
        await asyncio.shield(self._start_task)

    async def _spawn(self) -> None:
        try:
            await self._transport.start()
        except ProcessSpawnError as e:
            if self._state is ProcessState.STARTING:
                self._enter_fatal(e, reason="spawn")
            return

        if self._state is not ProcessState.STARTING:
            # close() arrived while spawning; it shuts the process down
            return

        self._transition(ProcessState.RUNNING)
        self._logger.info("process_started", argv=self._transport.argv, pid=self._transport.pid)

        loop = asyncio.get_running_loop()
        stdout_task = loop.create_task(self._pump_stdout())
        stderr_task = loop.create_task(self._pump_stderr())
        exit_task = loop.create_task(self._watch_exit(stdout_task, stderr_task))
        self._reader_tasks = [stdout_task, stderr_task, exit_task]

    def handle(self, event: ProcessEvent) -> None:
        """Apply one event to the state machine."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unknown process event: {event!r}")
        handler(event)

    def _on_stdout_line(self, event: StdoutLine) -> None:
        if self._state is not ProcessState.RUNNING:
            return
        result = self._reassembler.feed_line(event.text)
        if result is not None:
            self._queue.complete_current(result)

    def _on_stderr_text(self, event: StderrText) -> None:
        if self._state is not ProcessState.RUNNING:
            return
        self._reassembler.feed_error(event.text)

    def _on_process_exited(self, event: ProcessExited) -> None:
        if self._state is not ProcessState.RUNNING:
            self._logger.debug("process_exited", returncode=event.returncode, state=self._state.name)
            return
        self._enter_fatal(ProcessExitedError(event.returncode), reason="exit")

    def _on_transport_failed(self, event: TransportFailed) -> None:
        if self._state is not ProcessState.RUNNING:
            return
        error = ProcessTransportError(f"Reading sqlite3 {event.stream} failed: {event.error}")
        error.__cause__ = event.error
        self._enter_fatal(error, reason="transport")

    async def _pump_stdout(self) -> None:
        try:
            while True:
                line = await self._transport.read_stdout_line()
                if line is None:
                    return
                if self._reassembler.is_boundary(line):
                    # The shell writes a statement's error before running the
                    # sentinel; let the stderr reader deliver it first.
                    await asyncio.sleep(0)
                self.handle(StdoutLine(line))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.handle(TransportFailed(e, "stdout"))

    async def _pump_stderr(self) -> None:
        try:
            while True:
                text = await self._transport.read_stderr()
                if text is None:
                    return
                self.handle(StderrText(text))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.handle(TransportFailed(e, "stderr"))

    async def _watch_exit(self, *readers: asyncio.Task[None]) -> None:
        # Drain both streams first so output written before exit is applied
        await asyncio.gather(*readers, return_exceptions=True)
        returncode = await self._transport.wait()
        self.handle(ProcessExited(returncode))

    def _enter_fatal(self, error: ProcessFatalError, reason: str) -> None:
        self._transition(ProcessState.CLOSED_FATAL)
        self._fatal_error = error
        self._logger.error(
            "process_fatal",
            reason=reason,
            error=str(error),
            pid=self._transport.pid,
            pending=self._queue.pending_count,
        )
        if self._metrics is not None:
            self._metrics.process_faults_total.labels(reason=reason).inc()

        self._queue.close(error, fatal=True)
        self._reassembler.reset()
        self._cancel_readers()

        if self._transport.is_alive:
            self._transport.kill()
        if self._transport.pid is not None:
            self._reap_task = asyncio.ensure_future(self._transport.wait())

    async def close(self) -> None:
        """Close gracefully. Idempotent; concurrent calls share one shutdown."""
        if self._state.is_closed():
            await self._await_shutdown()
            return

        previous = self._state
        self._transition(ProcessState.CLOSED_GRACEFUL)
        self._queue.close(WrapperClosedError("sqlite3 wrapper closed before the request completed"))
        self._reassembler.reset()
        self._logger.info("process_closing", pid=self._transport.pid)

        if previous is ProcessState.STARTING:
            if self._start_task is None:
                return
            await asyncio.shield(self._start_task)

        self._shutdown_task = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._shutdown_task)

    async def _shutdown(self) -> None:
        if self._transport.is_alive:
            try:
                self._transport.write(EXIT_COMMAND + "\n")
            except ProcessTransportError as e:
                self._logger.debug("exit_command_not_sent", error=str(e))
            self._transport.close_stdin()

            returncode = await self._transport.wait(self._close_grace_seconds)
            if returncode is None:
                self._logger.warning(
                    "process_kill_after_grace",
                    pid=self._transport.pid,
                    grace_seconds=self._close_grace_seconds,
                )
                self._transport.kill()
                returncode = await self._transport.wait()
            self._logger.info("process_closed", returncode=returncode)

        if self._reader_tasks:
            await asyncio.gather(*self._reader_tasks, return_exceptions=True)

    async def _await_shutdown(self) -> None:
        if self._shutdown_task is not None:
            await asyncio.shield(self._shutdown_task)
        elif self._reap_task is not None:
            await asyncio.shield(self._reap_task)

    def _cancel_readers(self) -> None:
        current = asyncio.current_task()
        for task in self._reader_tasks:
            if task is not current and not task.done():
                task.cancel()

    def _transition(self, target: ProcessState) -> None:
        if not self._state.can_transition_to(target):
            raise RuntimeError(f"Invalid process state transition {self._state.name} -> {target.name}")
        self._state = target
