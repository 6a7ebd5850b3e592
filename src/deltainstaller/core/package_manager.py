"""Package manager front-ends driven through the workspace executor."""

from __future__ import annotations

import re

from deltainstaller.core.workspace import Workspace
from deltainstaller.exceptions import ProcessError, SessionError
from deltainstaller.utils.output import console
from deltainstaller.utils.process import ChildProcess

# e.g. "Success: created install session [1234]"
SESSION_ID_PATTERN = re.compile(r"\[(\d+)\]")

PACKAGE_PATH_PREFIX = "package:"


def _parse_package_paths(lines: list[str]) -> list[str]:
    return [
        line[len(PACKAGE_PATH_PREFIX) :].strip()
        for line in lines
        if line.startswith(PACKAGE_PATH_PREFIX)
    ]


class CmdCommand:
    """Wrapper for ``cmd package`` invocations."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def _package(self, *args: str) -> list[str]:
        return ["package", *args]

    def create_install_session(self, options: list[str]) -> str:
        """Open an install session.

        Args:
            options: Flags passed to ``install-create``.

        Returns:
            The session identifier.

        Raises:
            SessionError: If the package manager does not return a session.
        """
        try:
            result = self.workspace.executor.run(
                self.workspace.cmd_path, self._package("install-create", *options)
            )
        except ProcessError as e:
            raise SessionError(f"Unable to create install session: {e}") from e

        if not result.success:
            raise SessionError(
                f"install-create failed (exit {result.returncode}): "
                f"{result.output or result.stderr.strip()}"
            )

        match = SESSION_ID_PATTERN.search(result.output)
        if match is None:
            raise SessionError(f"Unexpected install-create output: {result.output}")

        return match.group(1)

    def open_session_writer(self, session_id: str, name: str, size: int) -> ChildProcess:
        """Start an ``install-write`` child that reads the file from stdin.

        Raises:
            ProcessError: If the child cannot be started.
        """
        return self.workspace.executor.fork_and_exec(
            self.workspace.cmd_path,
            self._package("install-write", "-S", str(size), session_id, name),
        )

    def get_apks(self, package_name: str) -> list[str]:
        """List installed APK paths via ``cmd package path``."""
        result = self.workspace.executor.run(
            self.workspace.cmd_path, self._package("path", package_name)
        )
        if not result.success:
            return []
        return _parse_package_paths(result.lines)


class PackageManager:
    """Wrapper for the legacy ``pm`` binary."""

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def get_apks(self, package_name: str) -> list[str]:
        """List installed APK paths via ``pm path``."""
        result = self.workspace.executor.run(
            self.workspace.pm_path, ["path", package_name]
        )
        if not result.success:
            return []
        return _parse_package_paths(result.lines)


class ApkRetriever:
    """Finds the installed APKs of a package.

    ``cmd package`` is tried first and ``pm`` second, since older devices
    only ship the latter.
    """

    def __init__(self, workspace: Workspace, package_name: str):
        self.workspace = workspace
        self.package_name = package_name
        self._apks: list[str] | None = None

    def get(self) -> list[str]:
        if self._apks is None:
            self._apks = self._retrieve()
        return self._apks

    def _retrieve(self) -> list[str]:
        for front_end in (CmdCommand(self.workspace), PackageManager(self.workspace)):
            try:
                apks = front_end.get_apks(self.package_name)
            except ProcessError as e:
                self.workspace.events.log(str(e))
                console.print_warning(f"{e}; trying the next package manager")
                continue
            if apks:
                return apks
        return []
