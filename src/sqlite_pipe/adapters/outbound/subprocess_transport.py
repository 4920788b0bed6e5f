"""asyncio child-process transport for the sqlite3 shell.

This adapter implements the ProcessTransport protocol on top of
asyncio.create_subprocess_exec with all three standard streams piped.

Stream handling:
    - stdout is consumed line by line; a line longer than the StreamReader
      limit is read in chunks, keeping at most max_line_bytes of its tail
    - stderr is consumed in chunks and decoded incrementally so multi-byte
      characters split across reads are not corrupted
    - stdin writes are buffered by the pipe transport and never block
"""

from __future__ import annotations

import asyncio
import codecs
from pathlib import Path
from typing import Sequence

from sqlite_pipe.domain.errors import ProcessSpawnError, ProcessTransportError

STDERR_CHUNK_SIZE = 4096


class SubprocessTransport:
    """ProcessTransport backed by an asyncio subprocess.

    Attributes:
        executable: Program to run (looked up on PATH if not a path).
        database_path: Database file argument; omitted for in-memory mode.
    """

    def __init__(
        self,
        executable: str = "sqlite3",
        database_path: str | Path | None = None,
        *,
        extra_args: Sequence[str] = (),
        stream_limit: int = 16777216,
        encoding: str = "utf-8",
        max_line_bytes: int | None = None,
    ) -> None:
        """Initialize the transport. Nothing is spawned until start().

        Args:
            executable: sqlite3 executable name or path.
            database_path: Database file, or None for an in-memory database.
            extra_args: Arguments placed before the database path.
            stream_limit: StreamReader buffer limit, in bytes. Longer stdout
                lines are read in chunks of this size.
            encoding: Encoding used for all three streams.
            max_line_bytes: Keep only this many trailing bytes of an
                over-long stdout line; None keeps the whole line.
        """
        self.executable = executable
        self.database_path = database_path
        self._extra_args = list(extra_args)
        self._stream_limit = stream_limit
        self._encoding = encoding
        self._max_line_bytes = max_line_bytes
        self._stderr_decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._process: asyncio.subprocess.Process | None = None

    @property
    def argv(self) -> list[str]:
        argv = [self.executable, *self._extra_args]
        if self.database_path is not None:
            argv.append(str(self.database_path))
        return argv

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def is_alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Spawn the process.

        Raises:
            ProcessSpawnError: If the executable is missing, not executable,
                or the OS refuses to start it.
            RuntimeError: If called twice.
        """
        if self._process is not None:
            raise RuntimeError("Transport already started")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=self._stream_limit,
            )
        except OSError as e:
            raise ProcessSpawnError(f"Failed to start {self.executable!r}: {e}") from e

    def write(self, data: str) -> None:
        stdin = self._process.stdin if self._process is not None else None
        if stdin is None or stdin.is_closing():
            raise ProcessTransportError("sqlite3 stdin is not writable")
        try:
            stdin.write(data.encode(self._encoding))
        except (BrokenPipeError, ConnectionResetError, RuntimeError, UnicodeEncodeError) as e:
            raise ProcessTransportError(f"Write to sqlite3 stdin failed: {e}") from e

    async def read_stdout_line(self) -> str | None:
        stdout = self._require_process().stdout
        assert stdout is not None
        try:
            raw = await stdout.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            # EOF; an unterminated last line is still a line
            raw = e.partial
        except asyncio.LimitOverrunError as e:
            raw = await self._read_long_line(stdout, e.consumed)
        if not raw:
            return None
        return raw.decode(self._encoding, errors="replace").rstrip("\r\n")

    async def _read_long_line(self, stdout: asyncio.StreamReader, available: int) -> bytes:
        """Read a line longer than the stream limit in limit-sized chunks.

        Only the last max_line_bytes of the line are kept.
        """
        line = bytearray()
        while True:
            line += await stdout.read(available)
            self._keep_tail(line)
            try:
                line += await stdout.readuntil(b"\n")
                break
            except asyncio.IncompleteReadError as e:
                line += e.partial
                break
            except asyncio.LimitOverrunError as e:
                available = e.consumed
        self._keep_tail(line)
        return bytes(line)

    def _keep_tail(self, line: bytearray) -> None:
        if self._max_line_bytes is not None and len(line) > self._max_line_bytes:
            del line[: len(line) - self._max_line_bytes]

    async def read_stderr(self) -> str | None:
        stderr = self._require_process().stderr
        assert stderr is not None
        chunk = await stderr.read(STDERR_CHUNK_SIZE)
        if not chunk:
            tail = self._stderr_decoder.decode(b"", final=True)
            return tail or None
        return self._stderr_decoder.decode(chunk)

    def close_stdin(self) -> None:
        stdin = self._process.stdin if self._process is not None else None
        if stdin is not None and not stdin.is_closing():
            stdin.close()

    async def wait(self, timeout: float | None = None) -> int | None:
        if self._process is None:
            return None
        try:
            return await asyncio.wait_for(self._process.wait(), timeout)
        except asyncio.TimeoutError:
            return None

    def kill(self) -> None:
        if not self.is_alive:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            # Exited between the returncode check and the signal
            pass

    def _require_process(self) -> asyncio.subprocess.Process:
        if self._process is None:
            raise ProcessTransportError("sqlite3 process has not been started")
        return self._process
