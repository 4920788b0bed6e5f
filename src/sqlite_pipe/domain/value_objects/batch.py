"""Batch operation records."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class BatchOperation:
    """One statement of a batch, with its positional parameters."""

    statement: str
    params: tuple[Any, ...] = field(default_factory=tuple)

    @classmethod
    def coerce(cls, item: Any) -> BatchOperation:
        """Normalize the accepted batch item shapes.

        Accepted shapes:
            - "CREATE TABLE t(x)"
            - ("INSERT INTO t VALUES (?)", [1])
            - {"statement": "INSERT INTO t VALUES (?)", "params": [1]}
            - BatchOperation(...)

        Raises:
            TypeError: If the item has none of these shapes.
        """
        if isinstance(item, BatchOperation):
            return item
        if isinstance(item, str):
            return cls(item)
        if isinstance(item, Mapping):
            statement = item.get("statement")
            if not isinstance(statement, str):
                raise TypeError(f"batch mapping needs a 'statement' string, got {item!r}")
            return cls(statement, _as_params(item.get("params")))
        if isinstance(item, Sequence) and len(item) == 2 and isinstance(item[0], str):
            return cls(item[0], _as_params(item[1]))
        raise TypeError(f"unsupported batch operation: {item!r}")


def _as_params(params: Any) -> tuple[Any, ...]:
    if params is None:
        return ()
    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise TypeError(f"batch params must be a sequence, got {type(params).__name__}")
    return tuple(params)
