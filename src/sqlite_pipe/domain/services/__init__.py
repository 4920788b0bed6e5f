"""Domain services for the sqlite3 pipe driver.

Services implement the protocol logic that doesn't belong to a single
entity: reassembling output into results and serializing requests.
"""

from sqlite_pipe.domain.services.line_reassembler import FinalizedResult, LineReassembler
from sqlite_pipe.domain.services.request_queue import RequestQueue

__all__ = [
    "FinalizedResult",
    "LineReassembler",
    "RequestQueue",
]
