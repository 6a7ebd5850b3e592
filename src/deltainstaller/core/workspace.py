"""Per-invocation context shared by the dispatcher and commands."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import BinaryIO

from deltainstaller.core.executor import Executor
from deltainstaller.exceptions import WorkspaceError
from deltainstaller.models.response import InstallerResponse
from deltainstaller.utils.events import EventLog
from deltainstaller.utils.framing import write_frame
from deltainstaller.utils.tools import DEFAULT_TOOL_PATHS


class Workspace:
    """Root path, executor and response of one installer run."""

    def __init__(
        self,
        executor: Executor,
        root: Path | None = None,
        input: BinaryIO | None = None,
        output: BinaryIO | None = None,
    ):
        """Initialize workspace.

        Args:
            executor: Executor used to start child processes.
            root: Filesystem root device paths are resolved against.
                Defaults to "/".
            input: Stream the request is read from. Defaults to stdin.
            output: Stream the response is written to. Defaults to stdout.
        """
        self._executor = executor
        self.root = root or Path("/")
        self.input = input if input is not None else sys.stdin.buffer
        self.output = output if output is not None else sys.stdout.buffer
        self.response = InstallerResponse()
        self.events = EventLog()
        self.cmd_path = DEFAULT_TOOL_PATHS["cmd"]
        self.pm_path = DEFAULT_TOOL_PATHS["pm"]
        self._running = False
        self._response_sent = False

    @property
    def executor(self) -> Executor:
        return self._executor

    def set_executor(self, executor: Executor) -> None:
        """Swap the executor. Only allowed before a command starts running."""
        if self._running:
            raise WorkspaceError("Executor cannot be replaced once a command runs")
        self._executor = executor

    def set_root(self, root: str | Path) -> None:
        self.root = Path(root)

    def resolve(self, device_path: str) -> Path:
        """Map an absolute device path under the workspace root."""
        return self.root / device_path.lstrip("/")

    def valid(self) -> bool:
        """Check that the root exists and is a usable directory."""
        return self.root.is_dir() and os.access(self.root, os.R_OK | os.X_OK)

    def mark_running(self) -> None:
        self._running = True

    def send_response(self) -> None:
        """Write the response, with all recorded events, as one frame.

        Raises:
            WorkspaceError: If a response was already sent for this run.
        """
        if self._response_sent:
            raise WorkspaceError("Response already sent")
        self._response_sent = True

        self.response.events.extend(self.events.consume())
        payload = self.response.model_dump_json(exclude_none=True).encode("utf-8")
        write_frame(self.output, payload)
