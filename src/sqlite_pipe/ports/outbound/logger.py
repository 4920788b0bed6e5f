"""Logger sink port.

Any object with these four methods can be injected as the wrapper's
logger; structlog bound loggers satisfy it as-is.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LoggerSink(Protocol):
    """Structured logging sink (event name plus key/value context)."""

    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...
