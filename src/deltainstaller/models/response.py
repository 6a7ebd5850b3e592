"""Pydantic models for installer responses and events."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ResponseStatus(StrEnum):
    """Overall outcome of one installer invocation."""

    OK = "OK"
    ERROR = "ERROR"
    ERROR_PARAMETER = "ERROR_PARAMETER"
    ERROR_CMD = "ERROR_CMD"
    ERROR_WRONG_VERSION = "ERROR_WRONG_VERSION"


class EventType(StrEnum):
    """Kind of a recorded event."""

    LOG_OUT = "LOG_OUT"
    LOG_ERR = "LOG_ERR"
    BEGIN_PHASE = "BEGIN_PHASE"
    END_PHASE = "END_PHASE"


class Event(BaseModel):
    """A log line or phase boundary recorded during a run."""

    type: EventType
    text: str = ""
    pid: int
    tid: int
    timestamp_ns: int


class DeltaInstallStatus(StrEnum):
    """Outcome of a ``deltapreinstall`` run."""

    OK = "OK"
    ERROR = "ERROR"


class WriteOutcome(StrEnum):
    """Outcome of streaming one file into the install session."""

    WRITTEN = "written"
    FAILED = "failed"
    SKIPPED = "skipped"


class FileWriteResult(BaseModel):
    """Per-file outcome inside a delta install."""

    name: str
    """Entry name in the install session (last path segment)."""

    src_absolute_path: str
    """Installed APK the instruction was applied against."""

    outcome: WriteOutcome

    exit_code: int | None = None
    """Exit code of the write process, if one ran."""

    error: str | None = None
    """Human-readable failure reason."""


class DeltaInstallResponse(BaseModel):
    """Response payload of the ``deltapreinstall`` command."""

    status: DeltaInstallStatus | None = None

    session_id: str | None = None
    """Install session opened for this request, set as soon as it is known."""

    files: list[FileWriteResult] = Field(default_factory=list)
    """Outcome of each patch instruction, in request order."""

    @property
    def failed_files(self) -> list[FileWriteResult]:
        """Files whose write did not succeed."""
        return [f for f in self.files if f.outcome == WriteOutcome.FAILED]


class DumpStatus(StrEnum):
    """Outcome of a ``dump`` run."""

    OK = "OK"
    ERROR_PACKAGE_NOT_FOUND = "ERROR_PACKAGE_NOT_FOUND"


class ApkDump(BaseModel):
    """ZIP metadata extracted from one installed APK."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    name: str
    absolute_path: str
    cd: bytes
    """Raw central directory records."""

    signature: bytes | None = None
    """Raw APK Signing Block, if the APK has one."""


class PackageDump(BaseModel):
    """Dumped APKs of one package."""

    name: str
    apks: list[ApkDump] = Field(default_factory=list)


class DumpResponse(BaseModel):
    """Response payload of the ``dump`` command."""

    status: DumpStatus | None = None
    packages: list[PackageDump] = Field(default_factory=list)


class InstallerResponse(BaseModel):
    """Response written to stdout on every exit path."""

    status: ResponseStatus | None = None

    message: str | None = None
    """Human-readable description of a failure."""

    events: list[Event] = Field(default_factory=list)

    delta_install_response: DeltaInstallResponse | None = None
    dump_response: DumpResponse | None = None
