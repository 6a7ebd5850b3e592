"""Delta install: stream patched APKs straight into an install session."""

from pydantic import ValidationError

from deltainstaller.core.command import Command
from deltainstaller.core.package_manager import CmdCommand
from deltainstaller.core.patch_applier import PatchApplier
from deltainstaller.core.workspace import Workspace
from deltainstaller.exceptions import (
    PatchError,
    ProcessError,
    ProtocolError,
    SessionError,
    WriteError,
)
from deltainstaller.models.request import DeltaInstallRequest, PatchInstruction
from deltainstaller.models.response import (
    DeltaInstallResponse,
    DeltaInstallStatus,
    FileWriteResult,
    WriteOutcome,
)
from deltainstaller.utils.framing import read_frame

# install-create flags: test package, replace existing, keep the app alive
SESSION_OPTIONS = ["-t", "-r", "--dont-kill"]


class DeltaPreinstallCommand(Command):
    """Applies a DeltaInstallRequest into a fresh install session.

    The session is left open: the caller commits it (or abandons it) using
    the session id from the response.
    """

    def __init__(self, workspace: Workspace):
        super().__init__(workspace)
        self.request: DeltaInstallRequest | None = None

    def parse_parameters(self, args: list[str]) -> None:
        events = self.workspace.events

        with events.phase("DELTAPREINSTALL_UPLOAD"):
            try:
                data = read_frame(self.workspace.input)
            except ProtocolError as e:
                events.error(f"Unable to read data on stdin: {e}")
                return

        with events.phase("Parsing input"):
            try:
                self.request = DeltaInstallRequest.model_validate_json(data)
            except ValidationError as e:
                events.error(f"Unable to parse request object: {e}")
                return

        self.ready_to_run = True

    def session_options(self) -> list[str]:
        options = list(SESSION_OPTIONS)
        if self.request.inherit:
            options.extend(["-p", self.request.package_name])
        return options

    def run(self) -> None:
        """Open a session and write every changed APK into it.

        Raises:
            SessionError: If the session cannot be opened. No file is written.
        """
        events = self.workspace.events
        response = DeltaInstallResponse()
        self.workspace.response.delta_install_response = response

        with events.phase("DELTAPREINSTALL_WRITE"):
            cmd = CmdCommand(self.workspace)
            try:
                session_id = cmd.create_install_session(self.session_options())
            except SessionError:
                response.status = DeltaInstallStatus.ERROR
                raise

            # Reported before streaming so an orphaned session can be cleaned up
            response.session_id = session_id
            events.log(f"Opened install session {session_id}")

            applier = PatchApplier(self.workspace.root)
            write_attempt_failed = False

            for instruction in self.request.patch_instructions:
                # Unchanged APKs are inherited from the installed package
                if self.request.inherit and not instruction.patches:
                    response.files.append(
                        FileWriteResult(
                            name=instruction.name,
                            src_absolute_path=instruction.src_absolute_path,
                            outcome=WriteOutcome.SKIPPED,
                        )
                    )
                    continue

                try:
                    result = self._send_apk_to_package_manager(
                        cmd, applier, instruction, session_id
                    )
                except WriteError as e:
                    events.error(str(e))
                    write_attempt_failed = True
                    result = FileWriteResult(
                        name=instruction.name,
                        src_absolute_path=instruction.src_absolute_path,
                        outcome=WriteOutcome.FAILED,
                        error=e.reason,
                    )
                response.files.append(result)

        if write_attempt_failed:
            response.status = DeltaInstallStatus.ERROR
        else:
            response.status = DeltaInstallStatus.OK

    def _send_apk_to_package_manager(
        self,
        cmd: CmdCommand,
        applier: PatchApplier,
        instruction: PatchInstruction,
        session_id: str,
    ) -> FileWriteResult:
        """Stream one patched APK into the session.

        The instruction is checked and its source opened before the write
        process starts, so a bad instruction never reaches the session.

        Raises:
            WriteError: If the write process cannot be started.
        """
        events = self.workspace.events
        name = instruction.name

        with events.phase("Write to PM"):
            try:
                src = applier.open_source(instruction)
            except PatchError as e:
                events.error(f"Not writing {name} to session {session_id}: {e}")
                return FileWriteResult(
                    name=name,
                    src_absolute_path=instruction.src_absolute_path,
                    outcome=WriteOutcome.FAILED,
                    error=str(e),
                )

            with src:
                try:
                    child = cmd.open_session_writer(
                        session_id, name, instruction.dst_filesize
                    )
                except ProcessError as e:
                    raise WriteError(name, str(e)) from e

                error = None
                with child:
                    try:
                        applier.stream(instruction, src, child.stdin)
                    except (PatchError, BrokenPipeError) as e:
                        error = str(e) or "write process closed its input early"
                    result = child.wait()

        if result.success and error is None:
            outcome = WriteOutcome.WRITTEN
        else:
            outcome = WriteOutcome.FAILED
            error = error or result.output or result.stderr.strip() or None
            events.error(
                f"Write of {name} to session {session_id} failed "
                f"(exit {result.returncode}): {error}"
            )

        return FileWriteResult(
            name=name,
            src_absolute_path=instruction.src_absolute_path,
            outcome=outcome,
            exit_code=result.returncode,
            error=error,
        )
