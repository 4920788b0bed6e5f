"""Process transport port for the sqlite3 child process.

This outbound port defines the contract for owning the child process and
its three standard streams. The supervisor drives it; the request queue
only ever sees its write() method.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol


class ProcessTransport(Protocol):
    """Protocol for a line-oriented child process transport.

    Lifecycle:
        start() once, then any number of write()/read_*() calls, then
        close_stdin() and wait(), or kill(). A transport is never
        restarted.

    Thread Safety:
        Single event loop assumed. write() is synchronous so the queue can
        dispatch from inside an event handler.
    """

    @property
    @abstractmethod
    def argv(self) -> list[str]:
        """Return the command line used to spawn the process."""
        ...

    @property
    @abstractmethod
    def pid(self) -> int | None:
        """Return the process id, or None if not spawned."""
        ...

    @property
    @abstractmethod
    def returncode(self) -> int | None:
        """Return the exit status, or None while running or before spawn."""
        ...

    @property
    @abstractmethod
    def is_alive(self) -> bool:
        """Return True if the process was spawned and has not exited."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Spawn the process.

        Raises:
            ProcessSpawnError: If the executable cannot be started.
        """
        ...

    @abstractmethod
    def write(self, data: str) -> None:
        """Queue text for the process's standard input.

        Raises:
            ProcessTransportError: If standard input is no longer writable.
        """
        ...

    @abstractmethod
    async def read_stdout_line(self) -> str | None:
        """Return the next stdout line without its terminator, or None at EOF."""
        ...

    @abstractmethod
    async def read_stderr(self) -> str | None:
        """Return the next chunk of stderr text, or None at EOF."""
        ...

    @abstractmethod
    def close_stdin(self) -> None:
        """Close standard input (the shell exits at end of input)."""
        ...

    @abstractmethod
    async def wait(self, timeout: float | None = None) -> int | None:
        """Wait for exit and return the exit status, or None on timeout."""
        ...

    @abstractmethod
    def kill(self) -> None:
        """Force-terminate the process if it is still alive."""
        ...
