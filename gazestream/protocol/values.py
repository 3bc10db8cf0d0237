"""
Value Decoder

Decodes single field values from a packet buffer. All values are
little-endian; composite values (points, vectors, quaternions and their
arrays) are packed float64 components. A user marker is a packed record
of integers.

Value Layouts:
============================================================

┌──────────────────────────────────────────────────────────┐
│ uint8 / uint16 / uint32 / uint64 │ B / H / I / Q         │
│ int32                            │ i                     │
│ float32 / float64                │ f / d (IEEE754)       │
├──────────────────────────────────────────────────────────┤
│ point2d, vect2d   │ 16 bytes │ x, y                      │
│ point3d, vect3d   │ 24 bytes │ x, y, z                   │
│ quaternion        │ 32 bytes │ w, x, y, z                │
│ point3d_array(N)  │ 24N bytes│ N × point3d               │
│ vect3d_array(N)   │ 24N bytes│ N × vect3d                │
│ user_marker       │ 29 bytes │ i32 error, u64 time_stamp,│
│                   │          │ u64 camera_clock,         │
│                   │          │ u8 camera_idx, u64 data   │
└──────────────────────────────────────────────────────────┘

Float values keep their exact bit pattern: NaN and infinities are passed
through, since the device reports them for invalid tracking.
"""

import struct
from typing import Any, Optional

import numpy as np

from gazestream.protocol.errors import TruncatedPacket
from gazestream.protocol.field_table import FieldDescriptor, WireType
from gazestream.protocol.models import (
    Point2D,
    Point3D,
    Quaternion,
    UserMarker,
    Vect2D,
    Vect3D,
)

# Scalar formats for struct.unpack(), all little-endian
SCALAR_FORMATS = {
    WireType.UINT8: "<B",
    WireType.UINT16: "<H",
    WireType.UINT32: "<I",
    WireType.INT32: "<i",
    WireType.UINT64: "<Q",
    WireType.FLOAT32: "<f",
    WireType.FLOAT64: "<d",
}

# Composite types: NamedTuple built from consecutive float64 components
COMPOSITE_TYPES = {
    WireType.POINT2D: Point2D,
    WireType.VECT2D: Vect2D,
    WireType.POINT3D: Point3D,
    WireType.VECT3D: Vect3D,
    WireType.QUATERNION: Quaternion,
}

FLOAT64_LE = np.dtype("<f8")

# Array types: element type of each entry
ARRAY_ELEMENTS = {
    WireType.POINT3D_ARRAY: Point3D,
    WireType.VECT3D_ARRAY: Vect3D,
}

# error s32, time_stamp u64, camera_clock u64, camera_idx u8, data u64
USER_MARKER_FORMAT = "<iQQBQ"


class DecodeCursor:
    """
    Read position inside one packet buffer.

    A cursor is bounded by `end` (defaults to the buffer length) and is
    only valid for the packet it was created for. After a TruncatedPacket
    its position is indeterminate and it must be discarded.
    """

    __slots__ = ("buffer", "offset", "end")

    def __init__(self, buffer: bytes, offset: int = 0, end: Optional[int] = None):
        self.buffer = memoryview(buffer)
        self.offset = offset
        self.end = len(buffer) if end is None else min(end, len(buffer))

    @property
    def remaining(self) -> int:
        return self.end - self.offset

    def read(self, num_bytes: int) -> memoryview:
        if num_bytes > self.remaining:
            raise TruncatedPacket(
                f"Need {num_bytes} bytes at offset {self.offset}, "
                f"only {max(self.remaining, 0)} remaining"
            )
        start = self.offset
        self.offset += num_bytes
        return self.buffer[start : self.offset]


def _decode_scalar(data: memoryview, wire_type: WireType) -> Any:
    (value,) = struct.unpack(SCALAR_FORMATS[wire_type], data)
    return value


def _decode_components(data: memoryview) -> list[float]:
    # frombuffer views the bytes without copying; tolist() yields Python floats
    return np.frombuffer(data, dtype=FLOAT64_LE).tolist()


def decode_value(cursor: DecodeCursor, field: FieldDescriptor) -> Any:
    """
    Read exactly field.byte_width bytes at the cursor and decode them.

    Raises:
        TruncatedPacket: If fewer than field.byte_width bytes remain
    """
    wire_type = field.wire_type

    if wire_type in SCALAR_FORMATS:
        return _decode_scalar(cursor.read(field.byte_width), wire_type)

    if wire_type in COMPOSITE_TYPES:
        return COMPOSITE_TYPES[wire_type](*_decode_components(cursor.read(field.byte_width)))

    if wire_type in ARRAY_ELEMENTS:
        # Element by element, so a short buffer fails before any partial value escapes
        element_type = ARRAY_ELEMENTS[wire_type]
        return tuple(
            element_type(*_decode_components(cursor.read(wire_type.element_width)))
            for _ in range(field.count)
        )

    if wire_type is WireType.USER_MARKER:
        return UserMarker(*struct.unpack(USER_MARKER_FORMAT, cursor.read(field.byte_width)))

    raise ValueError(f"{field.name}: unsupported wire type {wire_type}")


def encode_value(field: FieldDescriptor, value: Any) -> bytes:
    """
    Encode one value with the field's wire type.

    Raises:
        ValueError: If the value does not fit the wire type
    """
    wire_type = field.wire_type

    try:
        if wire_type in SCALAR_FORMATS:
            data = struct.pack(SCALAR_FORMATS[wire_type], value)

        elif wire_type in COMPOSITE_TYPES:
            components = np.asarray(value, dtype=FLOAT64_LE)
            expected = wire_type.element_width // FLOAT64_LE.itemsize
            if components.shape != (expected,):
                raise ValueError(f"expected {expected} components, got shape {components.shape}")
            data = components.tobytes()

        elif wire_type in ARRAY_ELEMENTS:
            elements = np.asarray(value, dtype=FLOAT64_LE)
            if elements.shape != (field.count, 3):
                raise ValueError(f"expected shape ({field.count}, 3), got {elements.shape}")
            data = elements.tobytes()

        elif wire_type is WireType.USER_MARKER:
            data = struct.pack(USER_MARKER_FORMAT, *value)

        else:
            raise ValueError(f"unsupported wire type {wire_type}")

    except struct.error as e:
        raise ValueError(f"{field.name}: cannot encode {value!r} as {wire_type.schema_name}: {e}") from e
    except (TypeError, ValueError) as e:
        raise ValueError(f"{field.name}: cannot encode {value!r}: {e}") from e

    return data
