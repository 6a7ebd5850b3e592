"""Installer entry: environment flags, command dispatch and the response."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from deltainstaller import __version__
from deltainstaller.core.command import Command, Verb
from deltainstaller.core.delta_install import DeltaPreinstallCommand
from deltainstaller.core.dump import DumpCommand
from deltainstaller.core.executor import Executor, RedirectExecutor, SubprocessExecutor
from deltainstaller.core.workspace import Workspace
from deltainstaller.exceptions import (
    InstallerError,
    ParameterError,
    VersionMismatchError,
)
from deltainstaller.models.response import ResponseStatus
from deltainstaller.utils.tools import resolve_shell, resolve_tool


@dataclass
class Parameters:
    """Environment flags preceding the verb."""

    binary_name: str
    command_name: str | None = None
    cmd_path: str | None = None
    pm_path: str | None = None
    version: str | None = None
    shell: str | None = None
    shell_arg: str | None = None
    root_directory: str | None = None
    consumed: int = 1


def get_usage(invoked_path: str) -> str:
    """Build the usage text."""
    return (
        "Usage:\n"
        f"{invoked_path} [env parameters] command [command_parameters]\n"
        "\n"
        "Environment parameters available:\n"
        "  -cmd=X : Define path to cmd executable (to mock android).\n"
        "  -pm=X : Define path to package manager executable (to mock android).\n"
        "  -shell=X : Define path to a shell-like executable (to mock android).\n"
        "  -shell-arg=X : An argument to the custom shell before the command "
        "(to mock android).\n"
        "  -root=X : The root directory to use (to mock android).\n"
        "  -version=X : Program will fail if version != X.\n"
        "Commands available:\n"
        "   deltapreinstall : Stream APK deltas (request on stdin) into a new "
        "install session.\n"
        "   dump <package>... : Extract CDs and Signatures for the given "
        "applicationIDs.\n"
    )


def get_version() -> str:
    """Version embedded in this installer."""
    return __version__


def parse_parameters(argv: list[str]) -> Parameters:
    """Parse environment flags up to the verb.

    Args:
        argv: Full argument vector, including the binary name.

    Returns:
        Parsed Parameters; ``consumed`` counts the binary, flags and verb.

    Raises:
        ParameterError: On an unknown flag.
    """
    parameters = Parameters(binary_name=argv[0])

    index = 1
    while index < len(argv) and argv[index].startswith("-"):
        flag, _, value = argv[index].partition("=")
        match flag:
            case "-cmd":
                parameters.cmd_path = value
            case "-pm":
                parameters.pm_path = value
            case "-shell-arg":
                parameters.shell_arg = value
            case "-shell":
                parameters.shell = value
            case "-version":
                parameters.version = value
            case "-root":
                parameters.root_directory = value
            case _:
                raise ParameterError(f"environment parameter unknown: {argv[index]}")
        parameters.consumed += 1
        index += 1

    if index < len(argv):
        parameters.command_name = argv[index]
        parameters.consumed += 1

    return parameters


def get_command(name: str | None, workspace: Workspace) -> Command | None:
    """Map a verb to its command, or None if the verb is unknown."""
    match name:
        case Verb.DELTA_PREINSTALL:
            return DeltaPreinstallCommand(workspace)
        case Verb.DUMP:
            return DumpCommand(workspace)
        case _:
            return None


def fail(status: ResponseStatus, workspace: Workspace, message: str) -> int:
    """Report a failure in the response and return the exit code."""
    workspace.response.status = status
    workspace.response.message = message
    workspace.events.error(message)
    workspace.send_response()
    return 1


def run_installer(
    argv: list[str],
    executor: Executor | None = None,
    input: BinaryIO | None = None,
    output: BinaryIO | None = None,
) -> int:
    """Run one installer invocation.

    A response is written to ``output`` on every path.

    Args:
        argv: Full argument vector, including the binary name.
        executor: Executor to start children with. Defaults to subprocesses.
        input: Request stream. Defaults to stdin.
        output: Response stream. Defaults to stdout.

    Returns:
        Process exit code: 0 on success, 1 on any failure.
    """
    workspace = Workspace(executor or SubprocessExecutor(), input=input, output=output)
    workspace.events.begin_phase("installer")

    # Check and parse parameters
    binary_name = argv[0] if argv else "deltainstaller"
    if len(argv) < 2:
        return fail(ResponseStatus.ERROR_PARAMETER, workspace, get_usage(binary_name))

    try:
        parameters = parse_parameters(argv)
    except ParameterError as e:
        return fail(
            ResponseStatus.ERROR_PARAMETER,
            workspace,
            f"{e}\n{get_usage(binary_name)}",
        )

    workspace.cmd_path = resolve_tool("cmd", parameters.cmd_path)
    workspace.pm_path = resolve_tool("pm", parameters.pm_path)

    redirect = resolve_shell(parameters.shell, parameters.shell_arg)
    if redirect is not None:
        shell, shell_arg = redirect
        workspace.set_executor(RedirectExecutor(shell, shell_arg, workspace.executor))

    if parameters.root_directory:
        workspace.set_root(parameters.root_directory)

    # Verify that this program is the version the caller expected
    if parameters.version is not None and parameters.version != get_version():
        error = VersionMismatchError(parameters.version, get_version())
        return fail(ResponseStatus.ERROR_WRONG_VERSION, workspace, str(error))

    if parameters.command_name is None:
        return fail(
            ResponseStatus.ERROR_PARAMETER,
            workspace,
            f"Missing command\n{get_usage(binary_name)}",
        )

    command = get_command(parameters.command_name, workspace)
    if command is None:
        return fail(
            ResponseStatus.ERROR_CMD,
            workspace,
            f"Unknown command: {parameters.command_name}",
        )

    # Allow the command to parse its parameters before touching the filesystem
    command.parse_parameters(argv[parameters.consumed :])
    if not command.ready_to_run:
        return fail(
            ResponseStatus.ERROR_PARAMETER,
            workspace,
            f"Command {parameters.command_name}: wrong parameters",
        )

    if not workspace.valid():
        return fail(
            ResponseStatus.ERROR_CMD, workspace, f"Bad workspace: {workspace.root}"
        )

    workspace.mark_running()
    try:
        command.run()
    except InstallerError as e:
        return fail(ResponseStatus.ERROR, workspace, str(e))

    workspace.response.status = ResponseStatus.OK
    workspace.events.end_phase()
    workspace.send_response()
    return 0
