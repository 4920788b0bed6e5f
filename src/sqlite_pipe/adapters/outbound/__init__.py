"""Outbound adapters - implementations of outbound ports.

These adapters implement the driver's external dependencies: the sqlite3
child process and SQL literal rendering.
"""

from sqlite_pipe.adapters.outbound.sql_literal_interpolator import (
    SQLLiteralInterpolator,
    escape_value,
    interpolate_sql,
)
from sqlite_pipe.adapters.outbound.subprocess_transport import SubprocessTransport

__all__ = [
    "SQLLiteralInterpolator",
    "SubprocessTransport",
    "escape_value",
    "interpolate_sql",
]
