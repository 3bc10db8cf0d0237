"""
UDP Frame Receiver

Binds the tracking output port and decodes each datagram on its own with a
DatagramAdapter. A bad datagram is counted and dropped without affecting
the ones after it; lost or reordered datagrams are passed on as they come.
"""

import logging
import queue
import socket
from typing import Optional

from gazestream.config import settings
from gazestream.ingestion.datagram_adapter import DatagramAdapter
from gazestream.ingestion.receiver import FrameReceiver
from gazestream.ingestion.sources import SocketDatagramSource
from gazestream.protocol.frame_decoder import FrameDecoder
from gazestream.protocol.models import FrameRecord

logger = logging.getLogger(__name__)


class UDPReceiver(FrameReceiver):
    """Receives FrameRecords sent to a local UDP port."""

    transport = "UDP"

    def __init__(
        self,
        output_queue: queue.Queue,
        port: Optional[int] = None,
        bind_host: str = "0.0.0.0",
        decoder: Optional[FrameDecoder] = None,
    ):
        super().__init__(output_queue)
        self.port = settings.network.udp_port if port is None else port
        self.bind_host = bind_host

        self.adapter = DatagramAdapter(decoder=decoder)
        self._sock: Optional[socket.socket] = None
        self._source: Optional[SocketDatagramSource] = None

        self.datagrams_received = 0

    @property
    def endpoint(self) -> str:
        return f"{self.bind_host}:{self.port}"

    @property
    def address(self) -> tuple:
        """Bound (host, port); differs from port when constructed with port 0."""
        return self._sock.getsockname() if self._sock else (self.bind_host, self.port)

    def start(self) -> None:
        # Bind before the worker starts so address is valid when start() returns
        if not self.is_running() and not self._is_open():
            self._open()
        super().start()

    def decode_errors(self):
        return self.adapter.stats

    def _is_open(self) -> bool:
        return self._sock is not None

    def _open(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.bind_host, self.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.recv_timeout)

        self._sock = sock
        self._source = SocketDatagramSource(sock)
        logger.info("Listening for UDP frames on %s:%d", *self.address)

    def _poll(self) -> list[FrameRecord]:
        datagram = self._source.recv()
        if datagram is None:
            raise ConnectionError("UDP socket closed")

        self.datagrams_received += 1
        record = self.adapter.process(datagram)
        return [] if record is None else [record]

    def _close(self) -> None:
        sock, self._sock, self._source = self._sock, None, None
        if sock is not None:
            sock.close()
