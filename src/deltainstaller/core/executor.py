"""Executors: the only place child processes are started."""

import subprocess
from abc import ABC, abstractmethod

from deltainstaller.exceptions import ProcessError
from deltainstaller.utils.process import ChildProcess, ProcessResult


class Executor(ABC):
    """Starts child processes with piped standard streams."""

    @abstractmethod
    def fork_and_exec(self, program: str, args: list[str]) -> ChildProcess:
        """Start ``program`` with ``args`` and return immediately.

        The caller owns the returned handle: it must close stdin to signal
        end-of-input and reap the child with ``wait()`` (or use the handle
        as a context manager).

        Raises:
            ProcessError: If the child cannot be started. No process is
                left behind in that case.
        """

    def run(
        self, program: str, args: list[str], input: bytes | None = None
    ) -> ProcessResult:
        """Run a child to completion and capture its output.

        Args:
            program: Executable to run.
            args: Arguments passed after the executable.
            input: Optional bytes written to the child's stdin.

        Returns:
            ProcessResult with exit status and decoded output.
        """
        with self.fork_and_exec(program, args) as child:
            if input and child.stdin is not None:
                try:
                    child.stdin.write(input)
                except BrokenPipeError:
                    pass
            return child.wait()


class SubprocessExecutor(Executor):
    """Executor backed by :class:`subprocess.Popen`."""

    def fork_and_exec(self, program: str, args: list[str]) -> ChildProcess:
        command = [program, *args]
        try:
            popen = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ProcessError(command, -1, f"Unable to start {program}: {e}") from e

        return ChildProcess(popen, command)


class RedirectExecutor(Executor):
    """Runs every command through a shell-like program.

    ``program args...`` becomes ``shell shell_arg program args...`` on the
    wrapped executor, for hosts where the device binaries cannot be started
    directly (tests, emulated shells).
    """

    def __init__(self, shell: str, shell_arg: str, executor: Executor):
        self.shell = shell
        self.shell_arg = shell_arg
        self.executor = executor

    def fork_and_exec(self, program: str, args: list[str]) -> ChildProcess:
        return self.executor.fork_and_exec(self.shell, [self.shell_arg, program, *args])
