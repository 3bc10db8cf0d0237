"""
Socket-backed byte and datagram sources.

Thin adapters from sockets to the source interfaces the reassembler and
the datagram adapter pull from. Socket timeouts propagate as
socket.timeout so the caller decides whether to keep waiting.
"""

import socket
from typing import Optional

from gazestream.config import settings


class SocketByteSource:
    """ByteSource over a connected TCP socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock

    def read(self, max_bytes: int) -> bytes:
        # recv() may return fewer bytes than asked; b"" means the peer closed
        return self.sock.recv(max_bytes)


class SocketDatagramSource:
    """DatagramSource over a bound UDP socket."""

    def __init__(self, sock: socket.socket, max_datagram_size: Optional[int] = None):
        self.sock = sock
        self.max_datagram_size = max_datagram_size or settings.network.max_datagram_size
        self.last_sender = None

    def recv(self) -> Optional[bytes]:
        try:
            datagram, self.last_sender = self.sock.recvfrom(self.max_datagram_size)
        except OSError:
            # recvfrom on a socket closed by stop() from another thread
            if self.sock.fileno() == -1:
                return None
            raise
        return datagram
