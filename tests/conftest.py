from __future__ import annotations

import io
import itertools
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from deltainstaller.core.executor import Executor
from deltainstaller.exceptions import ProcessError
from deltainstaller.models.request import DeltaInstallRequest
from deltainstaller.models.response import InstallerResponse
from deltainstaller.utils.config import CONFIG_ENV_VAR, reload_config
from deltainstaller.utils.framing import read_frame, write_frame
from deltainstaller.utils.process import ProcessResult

Responder = Callable[[list[str], bytes], tuple[int, str]]

_pids = itertools.count(1000)


class _Sink(io.BytesIO):
    """BytesIO that keeps its contents readable after close()."""

    captured = b""

    def close(self) -> None:
        if not self.closed:
            self.captured = self.getvalue()
        super().close()


class FakeChild:
    """In-memory stand-in for ChildProcess."""

    def __init__(self, command: list[str], responder: Responder):
        self.command = command
        self.pid = next(_pids)
        self._responder = responder
        self._sink = _Sink()
        self.stdin: _Sink | None = self._sink
        self._result: ProcessResult | None = None

    @property
    def data(self) -> bytes:
        return self._sink.captured if self._sink.closed else self._sink.getvalue()

    def close_stdin(self) -> None:
        if self.stdin is not None:
            self.stdin.close()
            self.stdin = None

    def wait(self, timeout: float | None = None) -> ProcessResult:
        if self._result is None:
            self.close_stdin()
            returncode, stdout = self._responder(self.command, self.data)
            self._result = ProcessResult(self.command, returncode, stdout, "")
        return self._result

    def __enter__(self) -> FakeChild:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.wait()


def default_responder(command: list[str], data: bytes) -> tuple[int, str]:
    if "install-create" in command:
        return 0, "Success: created install session [1234]\n"
    if "install-write" in command:
        return 0, f"Success: streamed {len(data)} bytes\n"
    return 1, ""


class FakeExecutor(Executor):
    """Records every launch; answers through a responder."""

    def __init__(
        self,
        responder: Responder = default_responder,
        fail_launch: Callable[[list[str]], bool] | None = None,
    ):
        self.responder = responder
        self.fail_launch = fail_launch
        self.children: list[FakeChild] = []

    @property
    def calls(self) -> list[list[str]]:
        return [child.command for child in self.children]

    def calls_with(self, verb: str) -> list[list[str]]:
        return [call for call in self.calls if verb in call]

    def fork_and_exec(self, program: str, args: list[str]) -> FakeChild:
        command = [program, *args]
        if self.fail_launch is not None and self.fail_launch(command):
            raise ProcessError(command, -1, f"Unable to start {program}")
        child = FakeChild(command, self.responder)
        self.children.append(child)
        return child


@pytest.fixture(autouse=True)
def _isolated_config(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    config_dir = tmp_path_factory.mktemp("config")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_dir / "config.json"))
    monkeypatch.delenv("DELTAINSTALLER_CMD", raising=False)
    monkeypatch.delenv("DELTAINSTALLER_PM", raising=False)
    reload_config()
    yield
    reload_config()


@pytest.fixture
def fake_executor() -> Callable[..., FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def request_stream() -> Callable[[DeltaInstallRequest], io.BytesIO]:
    def _make(request: DeltaInstallRequest) -> io.BytesIO:
        stream = io.BytesIO()
        write_frame(stream, request.model_dump_json().encode("utf-8"))
        stream.seek(0)
        return stream

    return _make


@pytest.fixture
def read_response() -> Callable[[io.BytesIO], InstallerResponse]:
    def _read(stream: io.BytesIO) -> InstallerResponse:
        stream.seek(0)
        response = InstallerResponse.model_validate_json(read_frame(stream))
        assert stream.read() == b"", "exactly one response frame expected"
        return response

    return _read


@pytest.fixture
def device_root(tmp_path: Path) -> Path:
    root = tmp_path / "device"
    root.mkdir()
    return root
