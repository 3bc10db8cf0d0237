"""
TCP Frame Receiver

Connects to the tracking device's TCP output port and feeds whatever bytes
each recv() returns into a StreamReassembler. Packet boundaries, partial
reads and resynchronization are handled by the reassembler; this class
only deals with the connection.
"""

import logging
import queue
import socket
from typing import Optional

from gazestream.config import settings
from gazestream.ingestion.receiver import FrameReceiver
from gazestream.ingestion.sources import SocketByteSource
from gazestream.ingestion.stream_reassembler import StreamReassembler
from gazestream.protocol.frame_decoder import FrameDecoder
from gazestream.protocol.models import FrameRecord

logger = logging.getLogger(__name__)


class TCPReceiver(FrameReceiver):
    """
    Receives FrameRecords from one device over TCP.

    The device is the server side; the receiver connects and reconnects
    after the peer closes or a socket error. Bytes of a packet cut off by
    a disconnect are dropped, never joined with the next connection.
    """

    transport = "TCP"

    def __init__(
        self,
        output_queue: queue.Queue,
        host: Optional[str] = None,
        port: Optional[int] = None,
        decoder: Optional[FrameDecoder] = None,
    ):
        super().__init__(output_queue)
        self.host = host or settings.network.host
        self.port = port or settings.network.tcp_port
        self.read_size = settings.network.read_size

        self.reassembler = StreamReassembler(decoder=decoder)
        self._sock: Optional[socket.socket] = None
        self._source: Optional[SocketByteSource] = None

        self.bytes_received = 0

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    def is_connected(self) -> bool:
        return self._sock is not None

    def decode_errors(self):
        return self.reassembler.stats

    def _is_open(self) -> bool:
        return self._sock is not None

    def _open(self) -> None:
        logger.info("Connecting to %s", self.endpoint)
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.recv_timeout)
        except socket.timeout as e:
            raise ConnectionError(f"Connect to {self.endpoint} timed out") from e
        self._source = SocketByteSource(self._sock)
        logger.info("Connected to %s", self.endpoint)

    def _poll(self) -> list[FrameRecord]:
        chunk = self._source.read(self.read_size)
        if not chunk:
            raise ConnectionError("Connection closed by device")

        self.bytes_received += len(chunk)
        records = self.reassembler.feed(chunk)
        for record in records:
            logger.debug("%s: frame %s", self.endpoint, record.frame_number)
        return records

    def _close(self) -> None:
        # A packet cut off by the disconnect can never complete
        self.reassembler.finish()

        sock, self._sock, self._source = self._sock, None, None
        if sock is not None:
            sock.close()
