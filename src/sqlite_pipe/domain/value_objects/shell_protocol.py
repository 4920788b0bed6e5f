"""Sentinel protocol and statement framing for the sqlite3 shell.

The shell's output has no framing: a statement may print zero or many
lines, and errors go to a different stream. To find where the output of a
statement ends, every statement is followed by a second statement that
prints a constant, recognizable value:

    <statement>;
    SELECT '__sqlite_pipe_end_5f3c1e__';

Depending on the active output mode the shell renders the marker either as
the bare value (list mode) or as a single JSON record (json mode), so both
forms are recognized.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

STATEMENT_SEPARATOR = ";"

DEFAULT_SENTINEL_TAG = "__sqlite_pipe_end_5f3c1e__"

JSON_MODE_COMMAND = ".mode json"
EXIT_COMMAND = ".exit"

SENTINEL_TAG_PATTERN = r"^[A-Za-z0-9_]+$"
_TAG_RE = re.compile(SENTINEL_TAG_PATTERN)


@dataclass(frozen=True, slots=True)
class Sentinel:
    """End-of-output marker.

    Attributes:
        tag: Literal selected after each statement. Restricted to
            identifier characters so it never needs quoting.

    Example:
        >>> s = Sentinel("__end__")
        >>> s.statement
        "SELECT '__end__';"
        >>> s.matches('[{"\\'__end__\\'":"__end__"}]')
        True
    """

    tag: str
    markers: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not _TAG_RE.match(self.tag):
            raise ValueError(f"sentinel tag must match {SENTINEL_TAG_PATTERN}, got {self.tag!r}")
        json_form = json.dumps([{f"'{self.tag}'": self.tag}], separators=(",", ":"))
        object.__setattr__(self, "markers", frozenset({self.tag, json_form}))

    @property
    def statement(self) -> str:
        """The statement that makes the shell print the marker."""
        return f"SELECT '{self.tag}'{STATEMENT_SEPARATOR}"

    def matches(self, line: str) -> bool:
        """Return True if an output line is the marker in any output mode."""
        return line.strip() in self.markers


DEFAULT_SENTINEL = Sentinel(DEFAULT_SENTINEL_TAG)


def normalize_statement(statement: str) -> str:
    """Strip a statement and terminate it with exactly one separator."""
    text = statement.strip()
    while text.endswith(STATEMENT_SEPARATOR):
        text = text[:-1].rstrip()
    return text + STATEMENT_SEPARATOR


def frame_statement(
    statement: str,
    raw: bool = False,
    sentinel: Sentinel = DEFAULT_SENTINEL,
) -> str:
    """Build the text written to the shell's stdin for one request.

    Raw commands (dot-commands such as ``.mode json``) take the rest of the
    line as arguments, so they are sent verbatim without a separator.
    """
    body = statement.strip() if raw else normalize_statement(statement)
    return f"{body}\n{sentinel.statement}\n"
