"""Bounded text accumulator for child process output."""

from __future__ import annotations

from collections import deque


class OutputBuffer:
    """Append-only text buffer that keeps at most ``max_chars`` characters.

    When the cap is exceeded the oldest chunks are dropped first; a single
    chunk larger than the cap keeps only its tail. ``truncated`` records
    whether anything was dropped since the last clear().
    """

    def __init__(self, max_chars: int) -> None:
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive, got {max_chars}")
        self._max_chars = max_chars
        self._chunks: deque[str] = deque()
        self._size = 0
        self._truncated = False

    @property
    def max_chars(self) -> int:
        return self._max_chars

    @property
    def truncated(self) -> bool:
        return self._truncated

    def __len__(self) -> int:
        return self._size

    def append(self, text: str) -> bool:
        """Append text, dropping the oldest content beyond the cap.

        Returns:
            True if this append caused content to be dropped.
        """
        if not text:
            return False

        if len(text) >= self._max_chars:
            dropped = self._size > 0 or len(text) > self._max_chars
            self._chunks.clear()
            self._chunks.append(text[-self._max_chars :])
            self._size = self._max_chars
            self._truncated = self._truncated or dropped
            return dropped

        self._chunks.append(text)
        self._size += len(text)

        dropped = False
        while self._size > self._max_chars:
            overflow = self._size - self._max_chars
            head = self._chunks[0]
            if len(head) <= overflow:
                self._chunks.popleft()
                self._size -= len(head)
            else:
                self._chunks[0] = head[overflow:]
                self._size -= overflow
            dropped = True

        self._truncated = self._truncated or dropped
        return dropped

    def text(self) -> str:
        """Return the retained content."""
        return "".join(self._chunks)

    def clear(self) -> None:
        """Drop all content and reset the truncation flag."""
        self._chunks.clear()
        self._size = 0
        self._truncated = False
