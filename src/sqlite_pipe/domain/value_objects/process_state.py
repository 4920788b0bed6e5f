"""Lifecycle states of the supervised sqlite3 process."""

from __future__ import annotations

from enum import Enum, auto


class ProcessState(Enum):
    """Process supervisor lifecycle states.

    State machine:

        STARTING ──spawn ok──> RUNNING
            │                     │
       spawn failed      exit / transport fault        close()
            │                     │                       │
            v                     v                       v
        CLOSED_FATAL <────────────┘               CLOSED_GRACEFUL

    close() is also accepted from STARTING. Both closed states are
    terminal: the wrapper never goes back to RUNNING.
    """

    STARTING = auto()
    """Constructed; the process has not been spawned (or is being spawned)."""

    RUNNING = auto()
    """The process is alive and accepting statements."""

    CLOSED_FATAL = auto()
    """The process failed to start, exited or broke its pipes."""

    CLOSED_GRACEFUL = auto()
    """close() was called."""

    def is_closed(self) -> bool:
        """Check if this is a terminal state."""
        return self in (ProcessState.CLOSED_FATAL, ProcessState.CLOSED_GRACEFUL)

    def can_transition_to(self, target: ProcessState) -> bool:
        """Check whether the state machine allows moving to target."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[ProcessState, frozenset[ProcessState]] = {
    ProcessState.STARTING: frozenset(
        {ProcessState.RUNNING, ProcessState.CLOSED_FATAL, ProcessState.CLOSED_GRACEFUL}
    ),
    ProcessState.RUNNING: frozenset({ProcessState.CLOSED_FATAL, ProcessState.CLOSED_GRACEFUL}),
    ProcessState.CLOSED_FATAL: frozenset(),
    ProcessState.CLOSED_GRACEFUL: frozenset(),
}
