"""
Stream Reassembler

Turns an arbitrary sequence of TCP byte chunks into decoded FrameRecords.

Problem:
- TCP has no message boundaries: a packet may arrive split across many
  reads, and one read may hold several packets
- A corrupt byte anywhere would otherwise desynchronize the stream forever
- The sync bytes can also occur by chance inside payload data

Solution:
- Buffer unconsumed bytes and frame packets with the header (magic + length)
- Explicit state machine: SEEKING → ACCUMULATING → (decode) → SEEKING,
  with CORRUPT as the resync state after any failure
- Every failure discards exactly one byte and rescans, so a false magic
  match or a bad packet never swallows the genuine packet behind it

The reassembler performs no I/O and never blocks; blocking only happens in
the byte source passed to iter_frames().
"""

import logging
from collections import Counter
from enum import Enum
from typing import Callable, Iterator, Optional, Protocol

from gazestream.config import settings
from gazestream.protocol.errors import DecodeError, OversizedPacket
from gazestream.protocol.field_table import HEADER_SIZE, MAGIC
from gazestream.protocol.frame_decoder import FrameDecoder, parse_header, validate_header
from gazestream.protocol.models import FrameRecord

logger = logging.getLogger(__name__)


class ByteSource(Protocol):
    """Stream transport: returns up to max_bytes, b"" at end of stream."""

    def read(self, max_bytes: int) -> bytes:
        ...


class ReassemblerState(Enum):
    SEEKING = "seeking"  # Looking for the sync bytes
    ACCUMULATING = "accumulating"  # Header found, waiting for the full packet
    CORRUPT = "corrupt"  # Framing failed, resynchronizing


class StreamReassembler:
    """
    Reassembles and decodes packets from a byte stream.

    One instance per connection. It owns its accumulation buffer, which is
    capped at HEADER_SIZE + max_payload_size bytes.

    Decode errors are not raised: each one is logged, counted in `stats`
    by error class name and passed to `on_error`, then the stream is
    resynchronized one byte past the failed packet start.
    """

    def __init__(
        self,
        decoder: Optional[FrameDecoder] = None,
        max_payload_size: Optional[int] = None,
        on_error: Optional[Callable[[DecodeError], None]] = None,
    ):
        self.decoder = decoder or FrameDecoder()
        self.max_payload_size = (
            settings.protocol.max_payload_size if max_payload_size is None else max_payload_size
        )
        self.capacity = HEADER_SIZE + self.max_payload_size
        self.on_error = on_error

        self._buffer = bytearray()
        self._state = ReassemblerState.SEEKING
        self._expected_size = 0

        self._handlers = {
            ReassemblerState.SEEKING: self._seek,
            ReassemblerState.ACCUMULATING: self._accumulate,
            ReassemblerState.CORRUPT: self._resync,
        }

        # Statistics
        self.frames_decoded = 0
        self.bytes_received = 0
        self.bytes_discarded = 0
        self.stats: Counter = Counter()

    @property
    def state(self) -> ReassemblerState:
        return self._state

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[FrameRecord]:
        """
        Append bytes from the stream and return every packet they complete.

        The chunk is appended in slices so the buffer never exceeds its
        capacity.
        """
        self.bytes_received += len(chunk)
        records: list[FrameRecord] = []
        view = memoryview(chunk)
        pos = 0

        while pos < len(view):
            # _drain always leaves fewer than capacity bytes buffered: a packet
            # is at most capacity bytes and is decoded as soon as it is complete
            take = self.capacity - len(self._buffer)
            self._buffer += view[pos : pos + take]
            pos += take
            self._drain(records)

        return records

    def finish(self) -> None:
        """End of stream: drop any partial packet, it can never complete."""
        if self._buffer:
            logger.debug(
                "End of stream with %d buffered bytes (%s), discarding",
                len(self._buffer),
                self._state.value,
            )
            self.bytes_discarded += len(self._buffer)
        self._buffer.clear()
        self._state = ReassemblerState.SEEKING
        self._expected_size = 0

    def iter_frames(self, source: ByteSource, read_size: Optional[int] = None) -> Iterator[FrameRecord]:
        """Pull from a byte source until it returns b"", yielding decoded frames."""
        read_size = read_size or settings.network.read_size
        while True:
            chunk = source.read(read_size)
            if not chunk:
                break
            yield from self.feed(chunk)
        self.finish()

    def _drain(self, records: list[FrameRecord]) -> None:
        # Each handler returns False when it needs more bytes
        while self._handlers[self._state](records):
            pass

    def _seek(self, records: list[FrameRecord]) -> bool:
        pos = self._buffer.find(MAGIC)
        if pos == -1:
            # Keep a possible partial magic straddling the chunk boundary
            keep = len(MAGIC) - 1
            if len(self._buffer) > keep:
                self._discard(len(self._buffer) - keep)
            return False

        if pos > 0:
            self._discard(pos)

        if len(self._buffer) < HEADER_SIZE:
            return False

        header = parse_header(self._buffer)
        if header.payload_length > self.max_payload_size:
            # Sync bytes inside payload data, not a real header
            self._fail(
                OversizedPacket(
                    f"Declared payload {header.payload_length} exceeds "
                    f"maximum {self.max_payload_size}"
                )
            )
            return True

        try:
            validate_header(header, self.decoder.registry.load(header.version))
        except DecodeError as e:
            # Unknown version or impossible length: reject without waiting for the payload
            self._fail(e)
            return True

        self._expected_size = header.packet_size
        self._state = ReassemblerState.ACCUMULATING
        return True

    def _accumulate(self, records: list[FrameRecord]) -> bool:
        if len(self._buffer) < self._expected_size:
            return False

        packet = bytes(self._buffer[: self._expected_size])
        try:
            record = self.decoder.decode(packet)
        except DecodeError as e:
            self._fail(e)
            return True

        del self._buffer[: self._expected_size]
        self._state = ReassemblerState.SEEKING
        self._expected_size = 0

        self.frames_decoded += 1
        records.append(record)
        return True

    def _resync(self, records: list[FrameRecord]) -> bool:
        # Skip the first magic byte only, the next packet may start inside this one
        self._discard(1)
        self._state = ReassemblerState.SEEKING
        self._expected_size = 0
        return True

    def _fail(self, error: DecodeError) -> None:
        self.stats[type(error).__name__] += 1
        logger.warning("Stream corrupt (%s): %s, resynchronizing", type(error).__name__, error)
        if self.on_error:
            try:
                self.on_error(error)
            except Exception as e:
                logger.error("Error callback failed: %s", e)
        self._state = ReassemblerState.CORRUPT

    def _discard(self, num_bytes: int) -> None:
        del self._buffer[:num_bytes]
        self.bytes_discarded += num_bytes
