"""
Datagram Adapter

Decodes UDP datagrams, each one an independent packet.

UDP keeps message boundaries, so there is nothing to reassemble, but
datagrams may be lost, duplicated or reordered. The adapter does not
buffer across datagrams and does not reorder: a bad datagram is reported
for that datagram only, and ordering is left to the caller through the
record's FrameNumber.
"""

import logging
from collections import Counter
from typing import Callable, Iterator, Optional, Protocol

from gazestream.protocol.errors import DecodeError, MalformedHeader
from gazestream.protocol.frame_decoder import FrameDecoder
from gazestream.protocol.models import FrameRecord

logger = logging.getLogger(__name__)


class DatagramSource(Protocol):
    """Datagram transport: one complete datagram per call, None once closed."""

    def recv(self) -> Optional[bytes]:
        ...


class DatagramAdapter:
    """
    Decodes one datagram at a time.

    Statistics:
        frames_decoded: Datagrams decoded successfully
        stats: Decode errors by error class name, plus "reordered" for
               frames whose FrameNumber went backwards (diagnostic only)
    """

    def __init__(
        self,
        decoder: Optional[FrameDecoder] = None,
        on_error: Optional[Callable[[DecodeError], None]] = None,
    ):
        self.decoder = decoder or FrameDecoder()
        self.on_error = on_error

        self.frames_decoded = 0
        self.stats: Counter = Counter()
        self._last_frame_number: Optional[int] = None

    def decode(self, datagram: bytes) -> FrameRecord:
        """
        Decode a datagram holding exactly one packet.

        Raises:
            DecodeError: If the datagram is not a valid packet, including
                bytes trailing the declared packet
        """
        record, packet_size = self.decoder.decode_packet(datagram)
        if packet_size != len(datagram):
            raise MalformedHeader(
                f"Datagram carries {len(datagram) - packet_size} bytes "
                f"after the {packet_size}-byte packet"
            )
        return record

    def process(self, datagram: bytes) -> Optional[FrameRecord]:
        """Decode a datagram, returning None (and reporting the error) if it is invalid."""
        try:
            record = self.decode(datagram)
        except DecodeError as e:
            self.stats[type(e).__name__] += 1
            logger.warning(
                "Dropping %d-byte datagram (%s): %s", len(datagram), type(e).__name__, e
            )
            if self.on_error:
                try:
                    self.on_error(e)
                except Exception as callback_error:
                    logger.error("Error callback failed: %s", callback_error)
            return None

        self.frames_decoded += 1
        self._track_order(record)
        return record

    def iter_frames(self, source: DatagramSource) -> Iterator[FrameRecord]:
        """Pull datagrams until the source returns None, yielding decoded frames."""
        while True:
            datagram = source.recv()
            if datagram is None:
                break
            record = self.process(datagram)
            if record is not None:
                yield record

    def _track_order(self, record: FrameRecord) -> None:
        frame_number = record.frame_number
        if frame_number is None:
            return
        if self._last_frame_number is not None and frame_number < self._last_frame_number:
            self.stats["reordered"] += 1
            logger.debug(
                "Frame %d arrived after frame %d", frame_number, self._last_frame_number
            )
        self._last_frame_number = frame_number
