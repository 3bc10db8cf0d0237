import math
import struct

import pytest

from gazestream.protocol.errors import TruncatedPacket
from gazestream.protocol.field_table import FieldDescriptor, WireType
from gazestream.protocol.models import Point3D, Quaternion, UserMarker, Vect2D, Vect3D
from gazestream.protocol.values import DecodeCursor, decode_value, encode_value


def decode(wire_type, data, count=1):
    field = FieldDescriptor.of("F", wire_type, mask_bit=0, count=count)
    cursor = DecodeCursor(data)
    value = decode_value(cursor, field)
    assert cursor.offset == field.byte_width
    return value


@pytest.mark.parametrize(
    "wire_type, data, expected",
    [
        (WireType.UINT8, b"\xff", 255),
        (WireType.UINT16, b"\x34\x12", 0x1234),
        (WireType.UINT32, b"\x78\x56\x34\x12", 0x12345678),
        (WireType.INT32, b"\xfe\xff\xff\xff", -2),
        (WireType.UINT64, b"\x01\x00\x00\x00\x00\x00\x00\x80", 0x8000000000000001),
        (WireType.FLOAT32, struct.pack("<f", 1.5), 1.5),
        (WireType.FLOAT64, struct.pack("<d", -0.125), -0.125),
    ],
)
def test_scalars_are_little_endian(wire_type, data, expected):
    assert decode(wire_type, data) == expected


def test_composites():
    point = decode(WireType.POINT3D, struct.pack("<3d", 1.0, 2.0, 3.0))
    assert point == Point3D(1.0, 2.0, 3.0)
    assert isinstance(point, Point3D)

    assert decode(WireType.VECT3D, struct.pack("<3d", 0.0, 0.0, -1.0)) == Vect3D(0.0, 0.0, -1.0)
    assert decode(WireType.VECT2D, struct.pack("<2d", 0.5, 0.25)) == Vect2D(0.5, 0.25)

    q = decode(WireType.QUATERNION, struct.pack("<4d", 0.9, 0.1, 0.2, 0.3))
    assert (q.w, q.x, q.y, q.z) == (0.9, 0.1, 0.2, 0.3)
    assert isinstance(q, Quaternion)


def test_point_array():
    data = struct.pack("<6d", -0.2, 0.0, 0.1, 0.2, 0.0, 0.1)
    cameras = decode(WireType.POINT3D_ARRAY, data, count=2)

    assert cameras == (Point3D(-0.2, 0.0, 0.1), Point3D(0.2, 0.0, 0.1))


def test_vector_array():
    data = struct.pack("<6d", 0.0, 0.1, 0.0, 0.0, -0.1, 0.0)
    rotations = decode(WireType.VECT3D_ARRAY, data, count=2)

    assert rotations == (Vect3D(0.0, 0.1, 0.0), Vect3D(0.0, -0.1, 0.0))
    assert all(isinstance(r, Vect3D) for r in rotations)


def test_user_marker():
    data = struct.pack("<i", -1) + struct.pack("<QQ", 1_700_000_000_000, 2**63 + 5)
    data += b"\x03" + struct.pack("<Q", 0xDEADBEEF)

    marker = decode(WireType.USER_MARKER, data)

    assert marker == UserMarker(
        error=-1,
        time_stamp=1_700_000_000_000,
        camera_clock=2**63 + 5,
        camera_idx=3,
        data=0xDEADBEEF,
    )
    assert encode_value(FieldDescriptor.of("F", WireType.USER_MARKER, mask_bit=0), marker) == data


def test_nan_bit_pattern_passes_through():
    # Quiet NaN with a payload, as sent for lost tracking
    raw = b"\x01\x00\x00\x00\x00\x00\xf8\x7f"

    value = decode(WireType.FLOAT64, raw)

    assert math.isnan(value)
    assert struct.pack("<d", value) == raw


def test_nan_and_infinity_inside_composites():
    vector = decode(WireType.VECT3D, struct.pack("<3d", math.nan, math.inf, -math.inf))

    assert math.isnan(vector.x)
    assert vector.y == math.inf
    assert vector.z == -math.inf


def test_cursor_reads_consecutive_fields():
    data = struct.pack("<IQ", 7, 99)
    cursor = DecodeCursor(data)

    assert decode_value(cursor, FieldDescriptor.of("A", WireType.UINT32, 0)) == 7
    assert decode_value(cursor, FieldDescriptor.of("B", WireType.UINT64, 1)) == 99
    assert cursor.remaining == 0


@pytest.mark.parametrize(
    "wire_type, count, data",
    [
        (WireType.UINT32, 1, b"\x01\x02\x03"),
        (WireType.FLOAT64, 1, b""),
        (WireType.QUATERNION, 1, bytes(31)),
        (WireType.POINT3D_ARRAY, 2, bytes(30)),
        (WireType.VECT3D_ARRAY, 2, bytes(47)),
        (WireType.USER_MARKER, 1, bytes(28)),
    ],
)
def test_short_buffer_is_truncated(wire_type, count, data):
    field = FieldDescriptor.of("F", wire_type, mask_bit=0, count=count)

    with pytest.raises(TruncatedPacket):
        decode_value(DecodeCursor(data), field)


def test_cursor_end_bounds_reads():
    cursor = DecodeCursor(bytes(16), offset=0, end=2)

    with pytest.raises(TruncatedPacket):
        decode_value(cursor, FieldDescriptor.of("F", WireType.UINT32, 0))


@pytest.mark.parametrize(
    "wire_type, count, value",
    [
        (WireType.UINT8, 1, 256),
        (WireType.UINT32, 1, -1),
        (WireType.FLOAT64, 1, "fast"),
        (WireType.POINT3D, 1, (1.0, 2.0)),
        (WireType.POINT3D_ARRAY, 2, [(0.0, 0.0, 0.0)]),
        (WireType.VECT3D_ARRAY, 2, [(0.0, 0.0), (0.0, 0.0)]),
        (WireType.USER_MARKER, 1, (0, 1, 2, 3)),
        (WireType.USER_MARKER, 1, (0, 1, 2, 256, 4)),
        (WireType.USER_MARKER, 1, 7),
    ],
)
def test_encode_rejects_values_that_do_not_fit(wire_type, count, value):
    field = FieldDescriptor.of("F", wire_type, mask_bit=0, count=count)

    with pytest.raises(ValueError):
        encode_value(field, value)


def test_encode_value_width():
    field = FieldDescriptor.of("F", WireType.POINT3D_ARRAY, mask_bit=0, count=2)
    assert len(encode_value(field, [(1, 2, 3), (4, 5, 6)])) == 48
