"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Outbound adapters: the child process transport and literal interpolation
"""

from sqlite_pipe.adapters.outbound import (
    SQLLiteralInterpolator,
    SubprocessTransport,
)

__all__ = [
    # Outbound adapters
    "SQLLiteralInterpolator",
    "SubprocessTransport",
]
