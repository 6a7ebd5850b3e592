"""Bridge between local stdio and a remote command over a loopback socket.

Protocol:
    - Outbound, once: the command line as one frame (4-byte big-endian
      length, then the arguments joined by single spaces).
    - Outbound, afterwards: raw stdin bytes, unframed.
    - Inbound: frames of command output. A zero length ends the output and
      is followed by the command's exit code (4-byte big-endian signed).
"""

from __future__ import annotations

import os
import selectors
import signal
import socket

from deltainstaller.exceptions import ProtocolError
from deltainstaller.utils.framing import (
    recv_exit_code,
    recv_length,
    send_frame,
    write_all,
)
from deltainstaller.utils.output import console

BUFFER_SIZE = 8192
CONNECT_FAILED_EXIT_CODE = 1
DISCONNECTED_EXIT_CODE = 255

_STDIN = "stdin"
_SOCKET = "socket"


def _make_selector() -> selectors.BaseSelector:
    # poll/select accept regular files as stdin, epoll does not
    if hasattr(selectors, "PollSelector"):
        return selectors.PollSelector()
    return selectors.SelectSelector()


class BridgeRelay:
    """Relays stdin to a socket and framed socket output to stdout."""

    def __init__(
        self,
        sock: socket.socket,
        stdin_fd: int = 0,
        stdout_fd: int = 1,
        buffer_size: int = BUFFER_SIZE,
    ):
        self.sock = sock
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self.buffer_size = buffer_size

    def send_command(self, argv: list[str]) -> None:
        """Send the remote command line as the opening frame."""
        send_frame(self.sock, " ".join(argv).encode("utf-8"))

    def run(self) -> int:
        """Relay until the remote reports an exit code.

        Returns:
            The remote command's exit code, or 255 if the socket closes
            before the end-of-output marker.
        """
        selector = _make_selector()
        selector.register(self.stdin_fd, selectors.EVENT_READ, _STDIN)
        selector.register(self.sock, selectors.EVENT_READ, _SOCKET)

        # Bytes left in the current inbound chunk
        remaining = 0

        try:
            while True:
                for key, _ in selector.select():
                    if key.data == _STDIN:
                        self._forward_stdin(selector)
                        continue

                    try:
                        if remaining == 0:
                            remaining = recv_length(self.sock)
                            if remaining == 0:
                                return recv_exit_code(self.sock)
                            continue

                        data = self.sock.recv(min(remaining, self.buffer_size))
                    except (ProtocolError, ConnectionError) as e:
                        console.print_error(f"Bridge: {e}")
                        return DISCONNECTED_EXIT_CODE

                    if not data:
                        console.print_error("Bridge: remote closed mid-chunk")
                        return DISCONNECTED_EXIT_CODE
                    try:
                        write_all(self.stdout_fd, data)
                    except BrokenPipeError:
                        # Keep draining so the exit code still arrives
                        pass
                    remaining -= len(data)
        finally:
            selector.close()

    def _forward_stdin(self, selector: selectors.BaseSelector) -> None:
        data = os.read(self.stdin_fd, self.buffer_size)
        if data:
            try:
                self.sock.sendall(data)
                return
            except BrokenPipeError:
                pass

        # End of local input: stop polling it and let the remote see EOF
        selector.unregister(self.stdin_fd)
        try:
            self.sock.shutdown(socket.SHUT_WR)
        except OSError:
            pass


def run_bridge(
    port: int, argv: list[str], stdin_fd: int = 0, stdout_fd: int = 1
) -> int:
    """Connect to ``127.0.0.1:port``, run ``argv`` remotely and relay stdio.

    Returns:
        The remote exit code; 1 if the connection fails.
    """
    # Writing to a closed pipe/socket must not kill the relay
    if hasattr(signal, "SIGPIPE"):
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)

    try:
        sock = socket.create_connection(("127.0.0.1", port))
    except OSError as e:
        console.print_error(f"Unable to connect to port {port}: {e}")
        return CONNECT_FAILED_EXIT_CODE

    with sock:
        relay = BridgeRelay(sock, stdin_fd=stdin_fd, stdout_fd=stdout_fd)
        relay.send_command(argv)
        return relay.run()
