from __future__ import annotations

import io
from pathlib import Path

import pytest

from deltainstaller.core.patch_applier import (
    CHUNK_SIZE,
    PatchApplier,
    required_source_size,
)
from deltainstaller.exceptions import PatchError
from deltainstaller.models.request import PatchEdit, PatchInstruction


def _source(root: Path, content: bytes) -> str:
    path = root / "data" / "app" / "base.apk"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return "/data/app/base.apk"


def test_edits_replace_bytes_and_the_rest_is_copied(device_root: Path) -> None:
    src = _source(device_root, b"0123456789")
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=12,
        patches=[
            PatchEdit(offset=0, data=b"AB"),
            PatchEdit(offset=5, data=b"X"),
            PatchEdit(offset=9, data=b"xyz"),
        ],
    )
    out = io.BytesIO()

    written = PatchApplier(device_root).apply(instruction, out)

    assert out.getvalue() == b"AB234X678xyz"
    assert written == 12


def test_large_files_are_copied_in_chunks(device_root: Path) -> None:
    content = bytes(range(256)) * (CHUNK_SIZE // 128)
    src = _source(device_root, content)
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=len(content),
        patches=[PatchEdit(offset=CHUNK_SIZE + 1, data=b"\xff\xff")],
    )
    out = io.BytesIO()

    PatchApplier(device_root).apply(instruction, out)

    expected = bytearray(content)
    expected[CHUNK_SIZE + 1 : CHUNK_SIZE + 3] = b"\xff\xff"
    assert out.getvalue() == bytes(expected)


def test_unordered_edits_are_rejected(device_root: Path) -> None:
    src = _source(device_root, b"0123456789")
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=10,
        patches=[PatchEdit(offset=5, data=b"a"), PatchEdit(offset=2, data=b"b")],
    )

    with pytest.raises(PatchError, match="overlap or are unordered"):
        PatchApplier(device_root).apply(instruction, io.BytesIO())


def test_edit_past_declared_size_is_rejected(device_root: Path) -> None:
    src = _source(device_root, b"0123456789")
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=4,
        patches=[PatchEdit(offset=3, data=b"abc")],
    )

    with pytest.raises(PatchError, match="past the declared size"):
        PatchApplier(device_root).apply(instruction, io.BytesIO())


def test_short_source_is_rejected(device_root: Path) -> None:
    src = _source(device_root, b"0123")
    instruction = PatchInstruction(src_absolute_path=src, dst_filesize=8)

    with pytest.raises(PatchError, match="too short"):
        PatchApplier(device_root).apply(instruction, io.BytesIO())


def test_growth_fully_covered_by_edit_needs_no_source_bytes(device_root: Path) -> None:
    src = _source(device_root, b"0123")
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=8,
        patches=[PatchEdit(offset=4, data=b"4567")],
    )
    out = io.BytesIO()

    PatchApplier(device_root).apply(instruction, out)

    assert out.getvalue() == b"01234567"


def test_required_source_size_skips_covered_tail() -> None:
    grown = PatchInstruction(
        src_absolute_path="/a.apk",
        dst_filesize=200,
        patches=[PatchEdit(offset=150, data=b"z" * 50)],
    )
    covered = PatchInstruction(
        src_absolute_path="/a.apk",
        dst_filesize=10,
        patches=[PatchEdit(offset=4, data=b"z" * 6)],
    )
    whole = PatchInstruction(src_absolute_path="/a.apk", dst_filesize=10)

    assert required_source_size(grown) == 150
    assert required_source_size(covered) == 4
    assert required_source_size(whole) == 10


def test_short_source_is_rejected_before_any_output(device_root: Path) -> None:
    src = _source(device_root, b"0" * 100)
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=200,
        patches=[PatchEdit(offset=150, data=b"z" * 50)],
    )
    out = io.BytesIO()

    with pytest.raises(PatchError, match="needed 150 bytes, has 100"):
        PatchApplier(device_root).apply(instruction, out)

    assert out.getvalue() == b""


def test_open_source_then_stream(device_root: Path) -> None:
    src = _source(device_root, b"0123456789")
    instruction = PatchInstruction(
        src_absolute_path=src,
        dst_filesize=10,
        patches=[PatchEdit(offset=3, data=b"abc")],
    )
    applier = PatchApplier(device_root)
    out = io.BytesIO()

    with applier.open_source(instruction) as handle:
        written = applier.stream(instruction, handle, out)

    assert written == 10
    assert out.getvalue() == b"012abc6789"


def test_missing_source_is_rejected(device_root: Path) -> None:
    instruction = PatchInstruction(src_absolute_path="/data/app/none.apk", dst_filesize=1)

    with pytest.raises(PatchError, match="Unable to open"):
        PatchApplier(device_root).open_source(instruction)
