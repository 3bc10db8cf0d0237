"""
Protocol Stage

Turns packet bytes into typed frame records.

Components:
- errors: Decode error taxonomy
- models: Composite value types, Present/ABSENT, FrameRecord
- field_table: Per-version field layouts and the table registry
- present_mask: Present-mask codec
- values: Value decoder and decode cursor
- frame_decoder: Packet header parsing and full-packet decoding
- encoder: Packet encoding (inverse of the decoder)

Usage:
    from gazestream.protocol import FrameDecoder, decode_frame
    from gazestream.protocol import FrameRecord, Present, ABSENT
"""

from gazestream.protocol.errors import (
    DecodeError,
    DecodeFailure,
    InvalidMagic,
    MalformedHeader,
    OversizedPacket,
    TruncatedPacket,
    UnknownVersion,
)

from gazestream.protocol.models import (
    ABSENT,
    FrameRecord,
    Point2D,
    Point3D,
    Present,
    Quaternion,
    UserMarker,
    Vect2D,
    Vect3D,
)

from gazestream.protocol.field_table import (
    HEADER_SIZE,
    MAGIC,
    FieldDescriptor,
    FieldTable,
    FieldTableRegistry,
    WireType,
    field_table_from_dict,
    field_tables,
    load,
    load_field_table_file,
)

from gazestream.protocol.present_mask import decode_mask, encode_mask, is_set

from gazestream.protocol.values import DecodeCursor, decode_value, encode_value

from gazestream.protocol.frame_decoder import (
    FrameDecoder,
    PacketHeader,
    decode_frame,
    parse_header,
)

from gazestream.protocol.encoder import encode_frame, get_packet_info

__all__ = [
    # Errors
    "DecodeError",
    "DecodeFailure",
    "InvalidMagic",
    "MalformedHeader",
    "OversizedPacket",
    "TruncatedPacket",
    "UnknownVersion",
    # Models
    "ABSENT",
    "FrameRecord",
    "Point2D",
    "Point3D",
    "Present",
    "Quaternion",
    "UserMarker",
    "Vect2D",
    "Vect3D",
    # Field tables
    "HEADER_SIZE",
    "MAGIC",
    "FieldDescriptor",
    "FieldTable",
    "FieldTableRegistry",
    "WireType",
    "field_table_from_dict",
    "field_tables",
    "load",
    "load_field_table_file",
    # Codecs
    "decode_mask",
    "encode_mask",
    "is_set",
    "DecodeCursor",
    "decode_value",
    "encode_value",
    # Decoder / encoder
    "FrameDecoder",
    "PacketHeader",
    "decode_frame",
    "parse_header",
    "encode_frame",
    "get_packet_info",
]
