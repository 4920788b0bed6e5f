"""Line Reassembler - turns shell output lines into finished results.

The reassembler accumulates every stdout line it is fed until the sentinel
marker arrives, at which point the accumulated output (and whatever stderr
text arrived meanwhile) becomes one FinalizedResult. It knows nothing about
requests; the caller decides who receives the result.

Finalization rules:
    - output and error text are right-stripped
    - non-empty error text means the statement failed
    - both accumulators are cleared for the next statement
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlite_pipe.domain.entities.output_buffer import OutputBuffer
from sqlite_pipe.domain.value_objects.shell_protocol import DEFAULT_SENTINEL, Sentinel
from sqlite_pipe.ports.outbound.logger import LoggerSink

if TYPE_CHECKING:
    from sqlite_pipe.infrastructure.metrics import MetricsRegistry


@dataclass(frozen=True, slots=True)
class FinalizedResult:
    """Output of one statement, closed out by the sentinel."""

    output: str
    error: str = ""
    truncated: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.error)


class LineReassembler:
    """Accumulates stream output between sentinel markers."""

    def __init__(
        self,
        sentinel: Sentinel = DEFAULT_SENTINEL,
        max_buffer_chars: int = 33554432,
        logger: LoggerSink | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the reassembler.

        Args:
            sentinel: Marker that closes out a statement.
            max_buffer_chars: Cap on each accumulator; older content is
                dropped beyond it.
            logger: Sink for truncation warnings.
            metrics: Optional MetricsRegistry.
        """
        self._sentinel = sentinel
        self._stdout = OutputBuffer(max_buffer_chars)
        self._stderr = OutputBuffer(max_buffer_chars)
        self._logger = logger
        self._metrics = metrics

    @property
    def sentinel(self) -> Sentinel:
        return self._sentinel

    @property
    def pending_output_chars(self) -> int:
        return len(self._stdout)

    @property
    def pending_error_chars(self) -> int:
        return len(self._stderr)

    def is_boundary(self, line: str) -> bool:
        """Check if a line would finalize the current statement."""
        return self._sentinel.matches(line)

    def feed_line(self, line: str) -> FinalizedResult | None:
        """Consume one stdout line.

        Returns:
            The finished result if the line was the sentinel, else None.
        """
        if self._sentinel.matches(line):
            return self._finalize()
        self._append(self._stdout, line + "\n", "stdout")
        return None

    def feed_error(self, text: str) -> None:
        """Consume a chunk of stderr text."""
        self._append(self._stderr, text, "stderr")

    def reset(self) -> None:
        """Discard anything accumulated so far."""
        self._stdout.clear()
        self._stderr.clear()

    def _finalize(self) -> FinalizedResult:
        result = FinalizedResult(
            output=self._stdout.text().rstrip(),
            error=self._stderr.text().rstrip(),
            truncated=self._stdout.truncated or self._stderr.truncated,
        )
        self.reset()
        return result

    def _append(self, buffer: OutputBuffer, text: str, stream: str) -> None:
        already_truncated = buffer.truncated
        if buffer.append(text) and not already_truncated:
            # Reported once per statement
            self._on_truncated(stream, buffer.max_chars)

    def _on_truncated(self, stream: str, max_chars: int) -> None:
        if self._logger is not None:
            self._logger.warning("output_truncated", stream=stream, max_chars=max_chars)
        if self._metrics is not None:
            self._metrics.buffer_truncations_total.labels(stream=stream).inc()
