"""Typed exception hierarchy for deltainstaller."""


class InstallerError(Exception):
    """Base exception for all deltainstaller errors."""

    pass


class ParameterError(InstallerError):
    """Raised for bad environment flags, a missing verb or bad command parameters."""

    pass


class ProtocolError(InstallerError):
    """Raised when framed or serialized input is malformed or truncated."""

    pass


class VersionMismatchError(InstallerError):
    """Raised when the caller expects a different installer version."""

    def __init__(self, requested: str, actual: str):
        self.requested = requested
        self.actual = actual
        super().__init__(f"Version mismatch. Requested: {requested} but have {actual}")


class WorkspaceError(InstallerError):
    """Raised when the workspace is misused or unusable."""

    pass


class ProcessError(InstallerError):
    """Raised when a child process cannot be started or does not finish."""

    def __init__(self, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        cmd_str = " ".join(command)
        super().__init__(f"Command failed (exit {returncode}): {cmd_str}\n{stderr}")


class SessionError(InstallerError):
    """Raised when the package manager refuses to open an install session."""

    pass


class WriteError(InstallerError):
    """Raised when a file cannot be written into an install session."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Unable to write {name}: {reason}")


class PatchError(InstallerError):
    """Raised when a patch instruction cannot be applied to its source APK."""

    pass


class ApkFormatError(InstallerError):
    """Raised when an APK's ZIP structure cannot be read."""

    pass
