"""
sqlite_pipe - Async driver for the sqlite3 command-line shell

Drives a single long-lived sqlite3 child process over its standard streams,
serializing concurrent callers into one FIFO and using an out-of-band
sentinel statement to find where each result ends.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"

from sqlite_pipe.application.sqlite_wrapper import SQLiteWrapper
from sqlite_pipe.domain.errors import (
    BatchAbortedError,
    ParameterCountError,
    ParameterEncodingError,
    ParameterError,
    ParameterTypeError,
    ProcessExitedError,
    ProcessFatalError,
    ProcessSpawnError,
    ProcessTransportError,
    RequestTimeoutError,
    ResultParseError,
    SQLitePipeError,
    StatementError,
    WrapperClosedError,
)
from sqlite_pipe.domain.value_objects.batch import BatchOperation

__all__ = [
    "SQLiteWrapper",
    "BatchOperation",
    # Errors
    "SQLitePipeError",
    "WrapperClosedError",
    "ParameterError",
    "ParameterCountError",
    "ParameterTypeError",
    "ParameterEncodingError",
    "StatementError",
    "ResultParseError",
    "ProcessFatalError",
    "ProcessSpawnError",
    "ProcessExitedError",
    "ProcessTransportError",
    "RequestTimeoutError",
    "BatchAbortedError",
]
