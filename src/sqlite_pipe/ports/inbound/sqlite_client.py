"""SQLite client port - the API offered to callers.

References:
    - SQLiteWrapper (application layer) is the implementation.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SQLiteClient(Protocol):
    """Protocol for an async sqlite3 client.

    All calls share one FIFO: a call submitted earlier is always executed
    earlier, whichever coroutine submitted it.
    """

    @abstractmethod
    async def exec(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Execute a statement and return the shell's raw output text."""
        ...

    @abstractmethod
    async def query(
        self,
        statement: str,
        params: Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """Execute a statement and return its rows as records."""
        ...

    @abstractmethod
    async def batch(self, operations: Iterable[Any], *, timeout: float | None = None) -> list[str]:
        """Execute statements in order, stopping at the first failure."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Shut the client down. Safe to call more than once."""
        ...
