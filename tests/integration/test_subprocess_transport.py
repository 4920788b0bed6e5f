"""Integration tests for SubprocessTransport."""

from __future__ import annotations

import sys

import pytest

from sqlite_pipe.adapters.outbound.subprocess_transport import SubprocessTransport
from sqlite_pipe.domain.errors import ProcessSpawnError, ProcessTransportError

pytestmark = pytest.mark.integration

ECHO = (
    "import sys\n"
    "for line in sys.stdin:\n"
    "    sys.stdout.write(line); sys.stdout.flush()\n"
    "    sys.stderr.write('err:' + line); sys.stderr.flush()\n"
)

LONG_LINE = (
    "import sys\n"
    "sys.stdout.write('x' * 99990 + 'tail!\\n')\n"
    "sys.stdout.write('after\\n')\n"
    "sys.stdout.flush()\n"
)


class TestSubprocessTransport:
    """Test cases for the asyncio subprocess transport."""

    def test_argv(self) -> None:
        transport = SubprocessTransport("sqlite3", "/tmp/app.db", extra_args=["-bail"])

        assert transport.argv == ["sqlite3", "-bail", "/tmp/app.db"]
        assert SubprocessTransport().argv == ["sqlite3"]
        assert transport.pid is None
        assert not transport.is_alive

    async def test_spawn_error(self) -> None:
        transport = SubprocessTransport("/nonexistent/bin/sqlite3")

        with pytest.raises(ProcessSpawnError, match="Failed to start"):
            await transport.start()
        assert not transport.is_alive

    async def test_echo(self) -> None:
        """Lines written to stdin come back on both output streams."""
        transport = SubprocessTransport(sys.executable, extra_args=["-c", ECHO])
        await transport.start()

        transport.write("hello\n")

        assert await transport.read_stdout_line() == "hello"
        assert await transport.read_stderr() == "err:hello\n"
        assert transport.is_alive

        transport.close_stdin()
        assert await transport.read_stdout_line() is None
        assert await transport.wait(5.0) == 0
        assert transport.returncode == 0

    async def test_start_twice(self) -> None:
        transport = SubprocessTransport(sys.executable, extra_args=["-c", "pass"])
        await transport.start()

        with pytest.raises(RuntimeError, match="already started"):
            await transport.start()
        await transport.wait(5.0)

    async def test_write_after_close(self) -> None:
        transport = SubprocessTransport(sys.executable, extra_args=["-c", ECHO])
        await transport.start()
        transport.close_stdin()

        with pytest.raises(ProcessTransportError):
            transport.write("late\n")
        await transport.wait(5.0)

    async def test_write_before_start(self) -> None:
        with pytest.raises(ProcessTransportError):
            SubprocessTransport().write("SELECT 1;\n")

    async def test_kill(self) -> None:
        transport = SubprocessTransport(sys.executable, extra_args=["-c", "import time; time.sleep(60)"])
        await transport.start()

        assert await transport.wait(0.05) is None
        transport.kill()

        assert await transport.wait(5.0) is not None
        assert not transport.is_alive
        transport.kill()

    async def test_unencodable_write(self) -> None:
        """Text the stream encoding cannot carry surfaces as a transport error."""
        transport = SubprocessTransport(sys.executable, extra_args=["-c", ECHO])
        await transport.start()

        with pytest.raises(ProcessTransportError, match="Write to sqlite3 stdin failed"):
            transport.write("bad \udc80 name\n")

        transport.write("ok\n")
        assert await transport.read_stdout_line() == "ok"
        transport.close_stdin()
        await transport.wait(5.0)

    async def test_line_longer_than_limit(self) -> None:
        """A line beyond the reader limit is read in chunks, not treated as a fault."""
        transport = SubprocessTransport(
            sys.executable, extra_args=["-c", LONG_LINE], stream_limit=1024
        )
        await transport.start()

        line = await transport.read_stdout_line()

        assert line == "x" * 99990 + "tail!"
        assert await transport.read_stdout_line() == "after"
        assert await transport.read_stdout_line() is None
        await transport.wait(5.0)

    async def test_long_line_keeps_tail(self) -> None:
        transport = SubprocessTransport(
            sys.executable,
            extra_args=["-c", LONG_LINE],
            stream_limit=1024,
            max_line_bytes=100,
        )
        await transport.start()

        line = await transport.read_stdout_line()

        assert line is not None
        assert line.endswith("xxxtail!")
        assert len(line) <= 100
        assert await transport.read_stdout_line() == "after"
        await transport.wait(5.0)
