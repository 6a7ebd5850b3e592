from __future__ import annotations

import io
import json

import pytest

from deltainstaller.core.installer import run_installer
from deltainstaller.utils.config import (
    CONFIG_ENV_VAR,
    get_config_path,
    get_config_value,
    load_config,
    reload_config,
)
from deltainstaller.utils.tools import resolve_shell, resolve_tool


def _write_config(data: object) -> None:
    get_config_path().write_text(json.dumps(data))
    reload_config()


def test_missing_config_is_empty() -> None:
    assert load_config() == {}
    assert get_config_value("cmd_path", "fallback") == "fallback"


def test_config_path_honours_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path
) -> None:
    target = tmp_path / "elsewhere.json"
    monkeypatch.setenv(CONFIG_ENV_VAR, str(target))

    assert get_config_path() == target


def test_malformed_config_is_ignored() -> None:
    get_config_path().write_text("{not json")
    reload_config()

    assert load_config() == {}


def test_non_object_config_is_ignored() -> None:
    _write_config(["cmd_path", "/x"])

    assert load_config() == {}


def test_defaults_without_overrides() -> None:
    assert resolve_tool("cmd") == "/system/bin/cmd"
    assert resolve_tool("pm") == "/system/bin/pm"


def test_config_beats_default() -> None:
    _write_config({"cmd_path": "/vendor/bin/cmd"})

    assert resolve_tool("cmd") == "/vendor/bin/cmd"
    assert resolve_tool("pm") == "/system/bin/pm"


def test_environment_beats_config(monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config({"pm_path": "/vendor/bin/pm"})
    monkeypatch.setenv("DELTAINSTALLER_PM", "/data/local/tmp/pm")

    assert resolve_tool("pm") == "/data/local/tmp/pm"


def test_flag_beats_everything(monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config({"cmd_path": "/vendor/bin/cmd"})
    monkeypatch.setenv("DELTAINSTALLER_CMD", "/data/local/tmp/cmd")

    assert resolve_tool("cmd", "/tmp/cmd") == "/tmp/cmd"


def test_unknown_tool() -> None:
    with pytest.raises(KeyError):
        resolve_tool("am")


def test_shell_requires_both_values() -> None:
    assert resolve_shell() is None
    assert resolve_shell("/system/bin/sh") is None
    assert resolve_shell("/system/bin/sh", "-c") == ("/system/bin/sh", "-c")


def test_shell_from_config() -> None:
    _write_config({"shell": "/system/bin/run-as", "shell_arg": "com.example"})

    assert resolve_shell() == ("/system/bin/run-as", "com.example")


def test_shell_flags_ignore_config() -> None:
    _write_config({"shell": "/system/bin/run-as", "shell_arg": "com.example"})

    assert resolve_shell("/bin/sh", None) is None


def test_installer_uses_configured_cmd(fake_executor, read_response) -> None:
    _write_config({"cmd_path": "/vendor/bin/cmd"})
    executor = fake_executor()
    output = io.BytesIO()

    code = run_installer(
        ["installer", "dump", "com.example.app"],
        executor=executor,
        input=io.BytesIO(),
        output=output,
    )

    assert code == 0
    assert executor.calls[0][:3] == ["/vendor/bin/cmd", "package", "path"]
    read_response(output)
