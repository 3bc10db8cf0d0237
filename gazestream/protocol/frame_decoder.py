"""
Binary Protocol Decoder

Parses one tracking packet into a FrameRecord.

Packet Structure:
============================================================

┌─────────────────────────────────────────────────────────────┐
│ HEADER (6 bytes)                                            │
├─────────────────────────────────────────────────────────────┤
│ magic          │ 2 bytes │ 0xAA 0x55     │ Sync bytes        │
│ version        │ 2 bytes │ uint16 LE     │ Field table key   │
│ payload_length │ 2 bytes │ uint16 LE     │ Bytes after header│
├─────────────────────────────────────────────────────────────┤
│ PRESENT MASK (ceil(mask_bits / 8) bytes)                    │
├─────────────────────────────────────────────────────────────┤
│ bit i set → field with mask_bit i follows, LSB first        │
├─────────────────────────────────────────────────────────────┤
│ FIELD VALUES (variable)                                     │
├─────────────────────────────────────────────────────────────┤
│ present fields in table order, byte_width bytes each;       │
│ absent fields occupy no bytes                               │
└─────────────────────────────────────────────────────────────┘

payload_length = mask bytes + bytes of all present field values.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from gazestream.protocol.errors import (
    DecodeFailure,
    InvalidMagic,
    MalformedHeader,
    TruncatedPacket,
)
from gazestream.protocol.field_table import (
    HEADER_FORMAT,
    HEADER_SIZE,
    MAGIC,
    FieldTable,
    FieldTableRegistry,
    field_tables,
)
from gazestream.protocol.models import ABSENT, FrameRecord, Present
from gazestream.protocol.present_mask import decode_mask
from gazestream.protocol.values import DecodeCursor, decode_value

logger = logging.getLogger(__name__)


@dataclass
class PacketHeader:
    """
    Parsed header of a packet.

    Holds header fields before the rest of the packet is interpreted.
    Useful for validation and for framing a byte stream.
    """

    magic: bytes
    version: int
    payload_length: int  # Bytes following the header

    @property
    def packet_size(self) -> int:
        return HEADER_SIZE + self.payload_length


def parse_header(buffer: bytes, offset: int = 0) -> PacketHeader:
    """
    Parse the header at buffer[offset:].

    Raises:
        InvalidMagic: If the bytes present do not match the sync bytes
        TruncatedPacket: If the header is incomplete
    """
    available = bytes(buffer[offset : offset + len(MAGIC)])
    if available != MAGIC[: len(available)]:
        raise InvalidMagic(f"Expected magic {MAGIC.hex()}, got {available.hex()}")
    if len(buffer) - offset < HEADER_SIZE:
        raise TruncatedPacket(
            f"Header needs {HEADER_SIZE} bytes, got {max(len(buffer) - offset, 0)}"
        )

    magic, version, payload_length = struct.unpack_from(HEADER_FORMAT, buffer, offset)
    return PacketHeader(magic=magic, version=version, payload_length=payload_length)


def validate_header(header: PacketHeader, table: FieldTable) -> None:
    if header.payload_length < table.mask_size:
        raise MalformedHeader(
            f"Payload length {header.payload_length} is smaller than "
            f"the {table.mask_size}-byte present mask"
        )
    if header.payload_length > table.max_payload_size:
        raise MalformedHeader(
            f"Payload length {header.payload_length} exceeds the v{table.version} "
            f"maximum of {table.max_payload_size} bytes"
        )


class FrameDecoder:
    """
    Decodes binary packets into FrameRecord objects.

    Decoding pipeline:
    1. Parse and validate the header (magic, version, payload length)
    2. Decode the present mask
    3. Check that the present fields exactly fill the declared payload
    4. Decode each present field in table order
    5. Assemble the FrameRecord

    Any failure raises a DecodeError subclass; no partial record is ever
    returned.

    Thread Safety:
        The decoder holds no per-packet state. It only reads its field
        table registry, so instances can be shared between connections.
    """

    def __init__(self, registry: Optional[FieldTableRegistry] = None):
        self.registry = field_tables if registry is None else registry

    def decode(self, buffer: bytes) -> FrameRecord:
        record, _ = self.decode_packet(buffer)
        return record

    def decode_packet(self, buffer: bytes) -> Tuple[FrameRecord, int]:
        """
        Decode the packet at the start of buffer.

        Returns:
            Tuple of (record, packet_size); bytes after packet_size are not
            part of the packet.
        """
        # Step 1: Header
        header = parse_header(buffer)
        table = self.registry.load(header.version)
        validate_header(header, table)

        available = len(buffer) - HEADER_SIZE
        if header.payload_length > available:
            raise TruncatedPacket(
                f"Payload length {header.payload_length} exceeds the "
                f"{available} bytes available"
            )

        # Step 2: Present mask
        mask = decode_mask(buffer, table.mask_bits, offset=HEADER_SIZE)

        # Step 3: Present fields must exactly fill the payload
        unknown_bits = sorted(bit for bit in mask if table.field_for_bit(bit) is None)
        if unknown_bits:
            raise DecodeFailure(
                f"Mask bits {unknown_bits} have no field in the v{table.version} table"
            )

        values_size = header.payload_length - table.mask_size
        required = sum(f.byte_width for f in table.fields if f.mask_bit in mask)
        if required != values_size:
            raise DecodeFailure(
                f"Present fields need {required} bytes, payload declares {values_size}"
            )

        # Step 4: Field values, bounded by the declared payload
        cursor = DecodeCursor(
            buffer,
            offset=HEADER_SIZE + table.mask_size,
            end=header.packet_size,
        )
        fields = {}
        for field in table.fields:
            if field.mask_bit in mask:
                fields[field.name] = Present(decode_value(cursor, field))
            else:
                fields[field.name] = ABSENT

        # Step 5: Record
        record = FrameRecord(
            version=header.version,
            payload_length=header.payload_length,
            fields=fields,
        )

        logger.debug(
            "Decoded v%d packet (%d bytes, %d/%d fields present)",
            header.version,
            header.packet_size,
            len(mask),
            len(table),
        )
        return record, header.packet_size


_default_decoder = FrameDecoder()


def decode_frame(buffer: bytes, registry: Optional[FieldTableRegistry] = None) -> FrameRecord:
    """Decode one packet with the given registry (bundled tables by default)."""
    if registry is None:
        return _default_decoder.decode(buffer)
    return FrameDecoder(registry).decode(buffer)
