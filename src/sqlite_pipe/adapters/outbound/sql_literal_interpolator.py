"""SQL literal interpolation for the sqlite3 shell.

The shell reads plain SQL text, so parameters are bound by rendering each
value as a SQL literal and substituting it for the matching ``?``
placeholder.

Literal forms:
    str       -> 'text' with embedded quotes doubled
    None      -> NULL
    bool      -> TRUE / FALSE
    int       -> decimal digits (any magnitude)
    float     -> repr() of a finite value
    datetime  -> ISO-8601 text; aware values are rendered in UTC with a
                 millisecond ``Z`` suffix
    date      -> ISO-8601 date text

Placeholders are matched textually: a ``?`` inside a string literal of the
template is also treated as a placeholder.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import date, datetime, timezone
from typing import Any

from sqlite_pipe.domain.errors import ParameterCountError, ParameterTypeError

PLACEHOLDER = "?"
_PLACEHOLDER_RE = re.compile(re.escape(PLACEHOLDER))


def escape_value(value: Any) -> str:
    """Render a Python value as a SQL literal.

    Raises:
        ParameterTypeError: If the value has no literal form.
    """
    if isinstance(value, str):
        return "'" + value.replace("'", "''") + "'"
    if value is None:
        return "NULL"
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ParameterTypeError(f"Unsupported parameter value: {value!r} is not finite")
        return repr(value)
    if isinstance(value, datetime):
        return "'" + _format_datetime(value) + "'"
    if isinstance(value, date):
        return "'" + value.isoformat() + "'"
    raise ParameterTypeError(f"Unsupported parameter type: {type(value).__name__}")


def _format_datetime(value: datetime) -> str:
    if value.tzinfo is None or value.utcoffset() is None:
        return value.isoformat(timespec="milliseconds")
    utc = value.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def interpolate_sql(statement: str, params: Sequence[Any] | None) -> str:
    """Replace each ``?`` in statement with the next parameter's literal.

    Extra parameters are ignored.

    Raises:
        ParameterCountError: If there are more placeholders than parameters.
        ParameterTypeError: If a parameter has no literal form.
    """
    if not params:
        return statement

    values = iter(params)

    def substitute(match: re.Match[str]) -> str:
        try:
            value = next(values)
        except StopIteration:
            raise ParameterCountError(
                f"Too few parameters provided ({len(params)}) for statement: {statement!r}"
            ) from None
        return escape_value(value)

    return _PLACEHOLDER_RE.sub(substitute, statement)


class SQLLiteralInterpolator:
    """StatementInterpolator implementation backed by interpolate_sql()."""

    def interpolate(self, statement: str, params: Sequence[Any]) -> str:
        return interpolate_sql(statement, params)
