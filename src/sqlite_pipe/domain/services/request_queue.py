"""Request Queue - serializes callers onto the shell's single stdin.

The shell processes one statement at a time and has no request ids, so the
only way to pair output with its caller is ordering. The queue enforces:

    - at most one request is in flight ("current") at any time
    - requests are written strictly in enqueue order (FIFO), SQL and raw
      commands alike
    - a result is delivered to whichever request is current when the
      sentinel arrives

Timeouts:
    A pending request whose deadline passes is withdrawn and never sent.
    An in-flight request whose deadline passes is rejected, but keeps the
    "current" slot until its own sentinel arrives; that late result is
    discarded. Releasing the slot early would pair the late sentinel with
    the next request and hand it the wrong output.

Batches:
    Requests enqueued with the same group token form a batch. When one of
    them fails, the still-pending rest of the group is rejected with
    BatchAbortedError before anything else is written.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Callable, Sequence
from itertools import count
from typing import TYPE_CHECKING, Any

from sqlite_pipe.domain.entities.request import Request, RequestKind
from sqlite_pipe.domain.errors import (
    BatchAbortedError,
    ParameterEncodingError,
    ProcessTransportError,
    RequestTimeoutError,
    SQLitePipeError,
    StatementError,
    WrapperClosedError,
)
from sqlite_pipe.domain.services.line_reassembler import FinalizedResult
from sqlite_pipe.domain.value_objects.shell_protocol import (
    DEFAULT_SENTINEL,
    Sentinel,
    frame_statement,
)

if TYPE_CHECKING:
    from sqlite_pipe.infrastructure.metrics import MetricsRegistry
    from sqlite_pipe.ports.outbound.logger import LoggerSink
    from sqlite_pipe.ports.outbound.statement_interpolator import StatementInterpolator


class RequestQueue:
    """FIFO of requests with a single in-flight slot.

    All methods are synchronous and must be called from the event loop
    thread; that is what makes the single-slot invariant hold without locks.
    """

    def __init__(
        self,
        writer: Callable[[str], None],
        interpolator: StatementInterpolator,
        sentinel: Sentinel = DEFAULT_SENTINEL,
        logger: LoggerSink | None = None,
        metrics: MetricsRegistry | None = None,
        encoding: str = "utf-8",
    ) -> None:
        """Initialize the queue.

        Args:
            writer: Writes framed text to the shell's stdin. Raises
                ProcessTransportError when stdin is gone.
            interpolator: Renders parameters into statements.
            sentinel: End-of-output marker appended to every statement.
            logger: Sink for dispatch/orphan events.
            metrics: Optional MetricsRegistry.
            encoding: Encoding of the shell's stdin; statement text that
                cannot be encoded is refused at enqueue time.
        """
        self._writer = writer
        self._interpolator = interpolator
        self._sentinel = sentinel
        self._logger = logger
        self._metrics = metrics
        self._encoding = encoding

        self._pending: deque[Request] = deque()
        self._current: Request | None = None
        self._ids = count(1)

        self._closed = False
        self._fatal_error: SQLitePipeError | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> Request | None:
        return self._current

    def enqueue(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
        *,
        raw: bool = False,
        timeout: float | None = None,
        group: object | None = None,
    ) -> asyncio.Future[str]:
        """Queue a statement and return the future for its output.

        Args:
            statement: SQL (with ``?`` placeholders) or a raw shell command.
            params: Positional parameters; ignored for raw commands.
            raw: Send the text verbatim, without interpolation or separator.
            timeout: Seconds before the request is rejected with
                RequestTimeoutError; None waits forever.
            group: Batch token; see the module docstring.

        Returns:
            A future resolved with the output text, or failed with the error.

        Raises:
            WrapperClosedError: If the queue was closed gracefully.
            ProcessFatalError: If the queue was closed by a process fault.
            ParameterError: If params cannot be interpolated, or the text
                cannot be encoded. The queue is left untouched.
        """
        if self._closed:
            if self._fatal_error is not None:
                # Same instance for every caller; drop frames from earlier raises
                raise self._fatal_error.with_traceback(None)
            raise WrapperClosedError("sqlite3 wrapper is closed")

        if raw:
            text = statement
        else:
            text = self._interpolator.interpolate(statement, params or ())
        self._check_encodable(text)

        loop = asyncio.get_running_loop()
        request = Request(
            request_id=next(self._ids),
            statement=text,
            kind=RequestKind.RAW if raw else RequestKind.SQL,
            future=loop.create_future(),
            group=group,
        )
        if timeout is not None:
            request.arm_timer(loop.call_later(timeout, self._expire, request, timeout))

        self._pending.append(request)
        self._update_depth()
        self.dispatch_next()
        return request.future

    def dispatch_next(self) -> None:
        """Write the next pending request if the slot is free."""
        while not self._closed and self._current is None and self._pending:
            request = self._pending.popleft()
            if request.settled:
                # Cancelled by its caller while waiting; never sent
                continue

            self._current = request
            try:
                self._writer(frame_statement(request.statement, request.raw, self._sentinel))
            except ProcessTransportError as e:
                self._current = None
                self._fail(request, e, "rejected")
                continue

            request.dispatched_at = time.monotonic()
            if self._logger is not None:
                self._logger.debug(
                    "request_dispatched",
                    request_id=request.request_id,
                    kind=request.kind.value,
                    waited=request.dispatched_at - request.enqueued_at,
                )
        self._update_depth()

    def complete_current(self, result: FinalizedResult) -> None:
        """Deliver a finalized result to the in-flight request.

        A result with no live request to receive it (the request timed out,
        was cancelled, or the output was unsolicited) is discarded.
        """
        request = self._current
        if request is None or request.timed_out or request.settled:
            self._discard(request, result)
            if request is not None:
                self._current = None
                self.dispatch_next()
            return

        self._current = None
        if result.failed:
            self._fail(request, StatementError(result.error, statement=request.statement), "error")
        else:
            request.resolve(result.output)
            self._record(request, "ok")
        self.dispatch_next()

    def close(self, error: SQLitePipeError, *, fatal: bool = False) -> None:
        """Reject all outstanding requests and refuse new ones.

        Args:
            error: Delivered to the in-flight and every pending request.
            fatal: If True, later enqueue() calls raise this same error;
                otherwise they raise WrapperClosedError.
        """
        if self._closed:
            return
        self._closed = True
        if fatal:
            self._fatal_error = error

        outstanding: list[Request] = []
        if self._current is not None:
            outstanding.append(self._current)
        outstanding.extend(self._pending)
        self._current = None
        self._pending.clear()

        for request in outstanding:
            if request.reject(error):
                self._record(request, "rejected")
        self._update_depth()

        if self._logger is not None and outstanding:
            self._logger.info(
                "requests_rejected_on_close",
                count=len(outstanding),
                error=type(error).__name__,
            )

    def _check_encodable(self, text: str) -> None:
        try:
            text.encode(self._encoding)
        except UnicodeEncodeError as e:
            raise ParameterEncodingError(
                f"Statement cannot be encoded as {self._encoding}: {e.reason} at position {e.start}"
            ) from e

    def _expire(self, request: Request, timeout: float) -> None:
        if request.settled:
            return
        error = RequestTimeoutError(f"Request {request.request_id} timed out after {timeout}s")

        if request is self._current:
            request.timed_out = True
            if self._logger is not None:
                self._logger.warning(
                    "request_timed_out_in_flight",
                    request_id=request.request_id,
                    timeout=timeout,
                )
        else:
            try:
                self._pending.remove(request)
            except ValueError:
                return
            self._update_depth()

        self._fail(request, error, "timeout")

    def _fail(self, request: Request, error: SQLitePipeError, status: str) -> None:
        if request.reject(error):
            self._record(request, status)
        self._abort_group(request)

    def _abort_group(self, failed: Request) -> None:
        if failed.group is None:
            return
        remaining = [r for r in self._pending if r.group is failed.group]
        if not remaining:
            return
        for request in remaining:
            self._pending.remove(request)
            request.reject(
                BatchAbortedError(f"Batch aborted: request {failed.request_id} failed")
            )
            self._record(request, "rejected")
        self._update_depth()

    def _discard(self, request: Request | None, result: FinalizedResult) -> None:
        if self._metrics is not None:
            self._metrics.orphaned_results_total.inc()
        if self._logger is not None:
            self._logger.info(
                "orphaned_result_discarded",
                request_id=request.request_id if request is not None else None,
                output_chars=len(result.output),
                had_error=result.failed,
            )

    def _record(self, request: Request, status: str) -> None:
        if self._metrics is None:
            return
        kind = request.kind.value
        self._metrics.requests_total.labels(kind=kind, status=status).inc()
        if status == "ok":
            self._metrics.request_latency_seconds.labels(kind=kind).observe(request.elapsed())

    def _update_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.queue_depth.set(len(self._pending))
