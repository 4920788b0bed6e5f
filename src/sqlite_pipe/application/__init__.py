"""Application layer - the public wrapper and the process supervisor."""

from sqlite_pipe.application.process_supervisor import ProcessSupervisor
from sqlite_pipe.application.sqlite_wrapper import SQLiteWrapper

__all__ = [
    "ProcessSupervisor",
    "SQLiteWrapper",
]
