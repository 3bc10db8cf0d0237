"""
Binary Protocol Encoder

Encodes field values into packets in the device wire format. This is the
inverse of FrameDecoder and is used by the mock device streamer and by
tests.

Functions:
    encode_frame(values, version, registry)
        - Encode a {field name: value} mapping (or a FrameRecord) into a packet

    get_packet_info(packet)
        - Get header metadata without full decoding
"""

import struct
from typing import Any, Mapping, Optional

from gazestream.protocol.field_table import (
    HEADER_FORMAT,
    HEADER_SIZE,
    MAGIC,
    FieldTableRegistry,
    field_tables,
)
from gazestream.protocol.models import ABSENT, FrameRecord, Present
from gazestream.protocol.present_mask import encode_mask
from gazestream.protocol.values import encode_value


def _plain_values(values: Mapping[str, Any]) -> dict[str, Any]:
    plain = {}
    for name, value in values.items():
        if value is ABSENT:
            continue
        plain[name] = value.value if isinstance(value, Present) else value
    return plain


def encode_frame(
    values: Mapping[str, Any],
    version: Optional[int] = None,
    registry: Optional[FieldTableRegistry] = None,
) -> bytes:
    """
    Pack field values into a single binary packet.

    Args:
        values: Field name to value. Present(...) and ABSENT entries are
            accepted, so a decoded FrameRecord can be re-encoded directly.
            Fields not listed are sent absent.
        version: Protocol version (defaults to the record's version for a
            FrameRecord, otherwise 1)
        registry: Field tables to encode against (bundled tables by default)

    Returns:
        bytes: Packet ready for transmission

    Raises:
        ValueError: If a name is not in the table or a value does not fit
        UnknownVersion: If the version has no field table
    """
    if registry is None:
        registry = field_tables
    if version is None:
        version = values.version if isinstance(values, FrameRecord) else 1

    table = registry.load(version)
    plain = _plain_values(values)

    unknown = sorted(name for name in plain if name not in table)
    if unknown:
        raise ValueError(f"Fields {unknown} are not in the v{version} table")

    # Values in table order; the mask announces exactly these fields
    body = b"".join(
        encode_value(field, plain[field.name]) for field in table.fields if field.name in plain
    )
    mask = encode_mask((table.field(name).mask_bit for name in plain), table.mask_bits)

    payload_length = len(mask) + len(body)
    header = struct.pack(HEADER_FORMAT, MAGIC, version, payload_length)

    return header + mask + body


def get_packet_info(packet: bytes) -> Optional[dict]:
    """
    Get packet header information without decoding fields (for debugging).

    Returns:
        dict: magic, version, payload_length, total_size, expected_size,
              or None if the packet is shorter than a header
    """
    if len(packet) < HEADER_SIZE:
        return None

    magic, version, payload_length = struct.unpack_from(HEADER_FORMAT, packet)

    return {
        "magic": magic.hex(),
        "version": version,
        "payload_length": payload_length,
        "total_size": len(packet),
        "expected_size": HEADER_SIZE + payload_length,
    }
