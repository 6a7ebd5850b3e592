"""Child process handle and result types shared by all executors."""

from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass
from types import TracebackType
from typing import IO

from deltainstaller.exceptions import ProcessError

READ_CHUNK_SIZE = 64 * 1024

# Per stream; earlier output is dropped
MAX_CAPTURED_OUTPUT = 1024 * 1024

# Seconds to wait for output of a killed child
DRAIN_GRACE_PERIOD = 1.0


@dataclass
class ProcessResult:
    """Result of a child process execution."""

    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        """Check if the child terminated normally with exit code 0."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Get stdout, stripping trailing whitespace."""
        return self.stdout.strip()

    @property
    def lines(self) -> list[str]:
        """Get stdout as a list of non-empty lines."""
        return [line for line in self.stdout.strip().split("\n") if line]


def _decode(data: bytes | None) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


class _OutputDrain:
    """Reads one child output pipe to EOF on a background thread.

    Only the last ``limit`` bytes are kept.
    """

    def __init__(self, stream: IO[bytes] | None, limit: int = MAX_CAPTURED_OUTPUT):
        self._stream = stream
        self._limit = limit
        self._buffer = bytearray()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        if self._stream is None:
            return
        while chunk := self._stream.read1(READ_CHUNK_SIZE):
            self._buffer += chunk
            if len(self._buffer) > self._limit:
                del self._buffer[: -self._limit]

    @property
    def finished(self) -> bool:
        return not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bytes:
        self._thread.join(timeout)
        return bytes(self._buffer)


class ChildProcess:
    """A started child process with piped standard streams.

    The caller writes to ``stdin``, then calls :meth:`wait` to signal
    end-of-input and reap the child. The child's stdout and stderr are read
    in the background from the start, so a chatty child never blocks on a
    full pipe while the caller is still writing. Used as a context manager,
    the child is reaped and every pipe closed on all exit paths.
    """

    def __init__(self, popen: subprocess.Popen[bytes], command: list[str]):
        self._popen = popen
        self.command = command
        self._result: ProcessResult | None = None
        self._stdout = _OutputDrain(popen.stdout)
        self._stderr = _OutputDrain(popen.stderr)

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def stdin(self) -> IO[bytes] | None:
        return self._popen.stdin

    def close_stdin(self) -> None:
        """Close the write end of the child's stdin (end-of-input)."""
        stdin, self._popen.stdin = self._popen.stdin, None
        if stdin is None:
            return
        try:
            stdin.close()
        except BrokenPipeError:
            # Child already exited; its status is collected by wait().
            pass

    def wait(self, timeout: float | None = None) -> ProcessResult:
        """Close stdin, reap the child and collect its output.

        Args:
            timeout: Optional timeout in seconds.

        Returns:
            ProcessResult with the child's exit status and output.

        Raises:
            ProcessError: If the child does not exit within ``timeout``. The
                child is killed and later calls return its result.
        """
        if self._result is not None:
            return self._result

        self.close_stdin()
        try:
            self._popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            self._popen.kill()
            self._popen.wait()
            stdout, stderr = self._close_output(DRAIN_GRACE_PERIOD)
            self._result = ProcessResult(
                command=self.command,
                returncode=self._popen.returncode,
                stdout=_decode(stdout),
                stderr=_decode(stderr),
            )
            raise ProcessError(
                self.command, -1, f"Command timed out after {timeout}s"
            ) from e

        stdout, stderr = self._close_output()
        self._result = ProcessResult(
            command=self.command,
            returncode=self._popen.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )
        return self._result

    def _close_output(self, timeout: float | None = None) -> tuple[bytes, bytes]:
        stdout = self._stdout.join(timeout)
        stderr = self._stderr.join(timeout)
        # A pipe still held open by a grandchild is left to its reader thread
        for drain, stream in (
            (self._stdout, self._popen.stdout),
            (self._stderr, self._popen.stderr),
        ):
            if stream is not None and drain.finished:
                stream.close()
        return stdout, stderr

    def __enter__(self) -> ChildProcess:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.wait()
