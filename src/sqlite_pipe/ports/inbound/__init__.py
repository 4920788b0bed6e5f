"""Inbound ports - API contracts offered to callers."""

from sqlite_pipe.ports.inbound.sqlite_client import SQLiteClient

__all__ = [
    "SQLiteClient",
]
