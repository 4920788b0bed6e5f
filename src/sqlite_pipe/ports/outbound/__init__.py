"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for the collaborators the driver depends
on: the child process, parameter escaping and logging.
"""

from sqlite_pipe.ports.outbound.logger import LoggerSink
from sqlite_pipe.ports.outbound.process_transport import ProcessTransport
from sqlite_pipe.ports.outbound.statement_interpolator import StatementInterpolator

__all__ = [
    "LoggerSink",
    "ProcessTransport",
    "StatementInterpolator",
]
