"""Events fed from the child process's streams into the supervisor.

Reader tasks never mutate queue or buffer state themselves; they turn
whatever they observe into one of these messages and hand it to
ProcessSupervisor.handle(), which maps each event type to exactly one
synchronous state transition.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class StdoutLine:
    """One line of standard output, without its line terminator."""

    text: str


@dataclass(frozen=True, slots=True)
class StderrText:
    """A chunk of standard error text (not necessarily line aligned)."""

    text: str


@dataclass(frozen=True, slots=True)
class ProcessExited:
    """The process has exited and its output streams are drained."""

    returncode: int | None


@dataclass(frozen=True, slots=True)
class TransportFailed:
    """Reading one of the process's streams raised."""

    error: BaseException
    stream: str


ProcessEvent = Union[StdoutLine, StderrText, ProcessExited, TransportFailed]
