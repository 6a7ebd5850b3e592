from __future__ import annotations

import io
import socket

import pytest

from deltainstaller.exceptions import ProtocolError
from deltainstaller.utils.framing import (
    read_exact,
    read_frame,
    recv_exit_code,
    recv_length,
    send_exit,
    send_frame,
    write_frame,
)


def test_read_exact_retries_short_reads() -> None:
    chunks = [b"ab", b"c", b"defg"]

    def trickle(size: int) -> bytes:
        return chunks.pop(0)[:size] if chunks else b""

    assert read_exact(trickle, 7) == b"abcdefg"


def test_read_exact_reports_truncation() -> None:
    with pytest.raises(ProtocolError, match="expected 10 bytes, got 4"):
        read_exact(io.BytesIO(b"abcd").read, 10)


def test_frame_layout_is_big_endian_length_prefix() -> None:
    stream = io.BytesIO()
    write_frame(stream, b"hello")

    assert stream.getvalue() == b"\x00\x00\x00\x05hello"

    stream.seek(0)
    assert read_frame(stream) == b"hello"


def test_read_frame_leaves_following_bytes() -> None:
    stream = io.BytesIO(b"\x00\x00\x00\x02hiNEXT")

    assert read_frame(stream) == b"hi"
    assert stream.read() == b"NEXT"


def test_socket_helpers() -> None:
    left, right = socket.socketpair()
    with left, right:
        send_frame(left, b"cmd arg")
        send_exit(left, -2)

        assert recv_length(right) == 7
        assert read_exact(right.recv, 7) == b"cmd arg"
        assert recv_length(right) == 0
        assert recv_exit_code(right) == -2
