"""Error taxonomy for the sqlite3 pipe driver.

Every error a caller can observe derives from SQLitePipeError. Errors
concerning one statement are delivered only to the caller that submitted
it; ProcessFatalError subclasses are delivered to every outstanding caller
and leave the wrapper permanently unusable.
"""

from __future__ import annotations


class SQLitePipeError(Exception):
    """Base class for all sqlite_pipe errors."""


class WrapperClosedError(SQLitePipeError):
    """Raised when work is submitted to, or cut short by, a closed wrapper."""


class ParameterError(SQLitePipeError):
    """Raised when statement parameters cannot be interpolated."""


class ParameterCountError(ParameterError):
    """Raised when a statement has more placeholders than parameters."""


class ParameterTypeError(ParameterError, TypeError):
    """Raised for a parameter value that has no SQL literal form."""


class ParameterEncodingError(ParameterError, UnicodeError):
    """Raised when statement text cannot be encoded for the shell's stdin."""


class StatementError(SQLitePipeError):
    """The shell reported an error for a statement.

    The message is the shell's error stream text, verbatim (trailing
    whitespace removed).
    """

    def __init__(self, message: str, statement: str | None = None) -> None:
        super().__init__(message)
        self.statement = statement


class ResultParseError(SQLitePipeError):
    """Query output could not be decoded as a list of JSON records."""

    EXCERPT_CHARS = 200

    def __init__(self, message: str, text: str) -> None:
        self.excerpt = text[: self.EXCERPT_CHARS]
        super().__init__(f"{message} (output starts with: {self.excerpt!r})")


class ProcessFatalError(SQLitePipeError):
    """The child process can no longer be used."""


class ProcessSpawnError(ProcessFatalError):
    """The child process could not be started."""


class ProcessExitedError(ProcessFatalError):
    """The child process exited while the wrapper was still open."""

    def __init__(self, returncode: int | None) -> None:
        super().__init__(f"sqlite3 process exited unexpectedly (returncode={returncode})")
        self.returncode = returncode


class ProcessTransportError(ProcessFatalError):
    """Reading from or writing to the child's streams failed."""


class RequestTimeoutError(SQLitePipeError, TimeoutError):
    """A request did not complete within its deadline."""


class BatchAbortedError(SQLitePipeError):
    """A batch item was skipped because an earlier item failed."""
