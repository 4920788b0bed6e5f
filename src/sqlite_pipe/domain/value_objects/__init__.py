"""Value objects for the sqlite3 pipe driver.

Exports:
    Shell protocol:
        - Sentinel: End-of-output marker and its recognized forms
        - DEFAULT_SENTINEL: Sentinel used unless configured otherwise
        - normalize_statement, frame_statement: stdin framing helpers
        - JSON_MODE_COMMAND, EXIT_COMMAND: Dot-commands the driver issues

    Process lifecycle:
        - ProcessState: Supervisor state machine
        - StdoutLine, StderrText, ProcessExited, TransportFailed: Events

    Batches:
        - BatchOperation: One statement of a batch with its parameters
"""

from sqlite_pipe.domain.value_objects.batch import BatchOperation
from sqlite_pipe.domain.value_objects.process_events import (
    ProcessEvent,
    ProcessExited,
    StderrText,
    StdoutLine,
    TransportFailed,
)
from sqlite_pipe.domain.value_objects.process_state import ProcessState
from sqlite_pipe.domain.value_objects.shell_protocol import (
    DEFAULT_SENTINEL,
    DEFAULT_SENTINEL_TAG,
    EXIT_COMMAND,
    JSON_MODE_COMMAND,
    SENTINEL_TAG_PATTERN,
    STATEMENT_SEPARATOR,
    Sentinel,
    frame_statement,
    normalize_statement,
)

__all__ = [
    # Shell protocol
    "Sentinel",
    "DEFAULT_SENTINEL",
    "DEFAULT_SENTINEL_TAG",
    "SENTINEL_TAG_PATTERN",
    "STATEMENT_SEPARATOR",
    "JSON_MODE_COMMAND",
    "EXIT_COMMAND",
    "normalize_statement",
    "frame_statement",
    # Process lifecycle
    "ProcessState",
    "ProcessEvent",
    "StdoutLine",
    "StderrText",
    "ProcessExited",
    "TransportFailed",
    # Batches
    "BatchOperation",
]
