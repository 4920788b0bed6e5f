"""Domain entities for the sqlite3 pipe driver.

Exports:
    Request:
        - Request: A queued or in-flight statement with its caller future
        - RequestKind: SQL statement or raw shell command

    Buffers:
        - OutputBuffer: Size-capped accumulator for stream output
"""

from sqlite_pipe.domain.entities.output_buffer import OutputBuffer
from sqlite_pipe.domain.entities.request import Request, RequestKind

__all__ = [
    "Request",
    "RequestKind",
    "OutputBuffer",
]
