"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (SQLiteClient)
- Outbound ports: Dependencies on external systems (ProcessTransport,
  StatementInterpolator, LoggerSink)

Adapters implement these ports with concrete functionality.
"""

from sqlite_pipe.ports.inbound import SQLiteClient
from sqlite_pipe.ports.outbound import LoggerSink, ProcessTransport, StatementInterpolator

__all__ = [
    # Inbound ports
    "SQLiteClient",
    # Outbound ports
    "LoggerSink",
    "ProcessTransport",
    "StatementInterpolator",
]
