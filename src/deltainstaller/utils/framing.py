"""Length-prefixed framing shared by the installer pipes and the bridge.

A frame is a 4-byte big-endian unsigned length followed by exactly that many
payload bytes. Readers never scan for delimiters; they consume exactly the
declared byte count, retrying short reads until it is satisfied.
"""

from __future__ import annotations

import os
import socket
import struct
from collections.abc import Callable
from typing import BinaryIO

from deltainstaller.exceptions import ProtocolError

LENGTH = struct.Struct(">I")
EXIT_CODE = struct.Struct(">i")


def read_exact(read: Callable[[int], bytes], size: int) -> bytes:
    """Read exactly ``size`` bytes using ``read``.

    Args:
        read: A read-like callable (``stream.read``, ``sock.recv``, ...).
        size: Number of bytes to read.

    Returns:
        The bytes read.

    Raises:
        ProtocolError: If the source ends before ``size`` bytes arrive.
    """
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = read(remaining)
        if not chunk:
            raise ProtocolError(
                f"Unexpected end of stream: expected {size} bytes, "
                f"got {size - remaining}"
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def write_all(fd: int, data: bytes) -> None:
    """Write all of ``data`` to a raw file descriptor."""
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def read_frame(stream: BinaryIO) -> bytes:
    """Read one length-prefixed frame from a binary stream."""
    (length,) = LENGTH.unpack(read_exact(stream.read, LENGTH.size))
    return read_exact(stream.read, length)


def write_frame(stream: BinaryIO, payload: bytes) -> None:
    """Write one length-prefixed frame to a binary stream and flush it."""
    stream.write(LENGTH.pack(len(payload)))
    stream.write(payload)
    stream.flush()


def recv_length(sock: socket.socket) -> int:
    """Receive a frame length from a socket."""
    (length,) = LENGTH.unpack(read_exact(sock.recv, LENGTH.size))
    return length


def recv_exit_code(sock: socket.socket) -> int:
    """Receive a signed exit code from a socket."""
    (code,) = EXIT_CODE.unpack(read_exact(sock.recv, EXIT_CODE.size))
    return code


def send_frame(sock: socket.socket, payload: bytes) -> None:
    """Send one length-prefixed frame over a socket."""
    sock.sendall(LENGTH.pack(len(payload)) + payload)


def send_exit(sock: socket.socket, code: int) -> None:
    """Send the end-of-output marker followed by an exit code."""
    sock.sendall(LENGTH.pack(0) + EXIT_CODE.pack(code))
