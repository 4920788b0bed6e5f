"""Request entity - one logical statement waiting for the shell.

A Request is created for every exec/query/batch item and for the internal
mode-set command. The RequestQueue owns it until it settles. Its future is
the only channel back to the caller, and it settles at most once: the
first of resolve(), reject() or caller cancellation wins and every later
attempt is a no-op.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum


class RequestKind(Enum):
    """What kind of text a request carries."""

    SQL = "sql"
    """SQL with optional ``?`` placeholders; framed with a separator."""

    RAW = "raw"
    """Shell dot-command sent verbatim."""


@dataclass(eq=False)
class Request:
    """A statement queued for, or in flight at, the child process.

    Attributes:
        request_id: Monotonic id, unique per queue.
        statement: Text to send, already interpolated.
        kind: SQL or RAW.
        future: Settled with the output text or an error.
        group: Token shared by the items of one batch, or None.
        timed_out: Set when the deadline passed while the request was in
            flight; its eventual result is discarded.
    """

    request_id: int
    statement: str
    kind: RequestKind
    future: asyncio.Future[str]
    group: object | None = None
    timed_out: bool = False
    enqueued_at: float = field(default_factory=time.monotonic)
    dispatched_at: float | None = None
    _timer: asyncio.TimerHandle | None = field(default=None, repr=False)

    @property
    def raw(self) -> bool:
        return self.kind is RequestKind.RAW

    @property
    def settled(self) -> bool:
        """True once the caller has an outcome (including cancellation)."""
        return self.future.done()

    def arm_timer(self, timer: asyncio.TimerHandle) -> None:
        self.cancel_timer()
        self._timer = timer

    def cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def resolve(self, output: str) -> bool:
        """Deliver the output text. Returns False if already settled."""
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_result(output)
        return True

    def reject(self, error: BaseException) -> bool:
        """Deliver an error. Returns False if already settled."""
        self.cancel_timer()
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True

    def elapsed(self) -> float:
        """Seconds since the request was enqueued."""
        return time.monotonic() - self.enqueued_at
