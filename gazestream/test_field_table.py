import pytest

from gazestream.protocol.errors import UnknownVersion
from gazestream.protocol.field_table import (
    HEADER_SIZE,
    FieldDescriptor,
    FieldTable,
    FieldTableRegistry,
    WireType,
    field_tables,
    load,
    load_field_table_file,
    field_table_from_dict,
    load_schema_dir,
)


SCHEMA_V7 = """\
version: 7
mask_bits: 8
fields:
  - {name: FrameNumber, type: uint32, mask_bit: 0}
  - {name: HeadPosition, type: point3d, mask_bit: 3}
  - {name: CameraPositions, type: point3d_array, count: 3, mask_bit: 1}
"""


def test_bundled_v1_table():
    table = load(1)

    assert 1 in field_tables
    assert len(table) == 127
    assert table.mask_bits == 128
    assert table.mask_size == 16
    assert table.field_names[0] == "FrameNumber"
    assert table.field("CameraPositions").byte_width == 48
    assert table.field("CameraRotations").wire_type is WireType.VECT3D_ARRAY
    assert table.field("UserMarker").byte_width == 29
    assert table.field_for_bit(31).name == "TrackingError"
    assert table.field_for_bit(126).name == "FilteredEstimatedRightGazePitch"
    assert table.field_for_bit(127) is None


def test_max_sizes(small_table):
    assert small_table.mask_size == 2
    assert small_table.max_payload_size == 2 + 4 + 48
    assert small_table.max_packet_size == HEADER_SIZE + 54


@pytest.mark.parametrize(
    "wire_type, width",
    [
        (WireType.UINT8, 1),
        (WireType.UINT16, 2),
        (WireType.INT32, 4),
        (WireType.UINT64, 8),
        (WireType.FLOAT32, 4),
        (WireType.VECT2D, 16),
        (WireType.POINT3D, 24),
        (WireType.QUATERNION, 32),
        (WireType.USER_MARKER, 29),
    ],
)
def test_descriptor_width_from_wire_type(wire_type, width):
    assert FieldDescriptor.of("F", wire_type, mask_bit=0).byte_width == width


def test_descriptor_rejects_inconsistent_width():
    with pytest.raises(ValueError):
        FieldDescriptor("F", WireType.UINT32, byte_width=8, mask_bit=0)


def test_descriptor_count_only_for_arrays():
    with pytest.raises(ValueError):
        FieldDescriptor.of("F", WireType.FLOAT64, mask_bit=0, count=2)
    with pytest.raises(ValueError):
        FieldDescriptor.of("F", WireType.USER_MARKER, mask_bit=0, count=2)
    assert FieldDescriptor.of("F", WireType.VECT3D_ARRAY, mask_bit=0, count=4).byte_width == 96
    with pytest.raises(ValueError):
        FieldDescriptor.of("F", WireType.POINT3D_ARRAY, mask_bit=0, count=0)


def test_table_rejects_duplicate_names():
    with pytest.raises(ValueError, match="duplicate field names"):
        FieldTable(
            1,
            8,
            [
                FieldDescriptor.of("A", WireType.UINT8, 0),
                FieldDescriptor.of("A", WireType.UINT8, 1),
            ],
        )


def test_table_rejects_duplicate_bits():
    with pytest.raises(ValueError, match="duplicate mask bits"):
        FieldTable(
            1,
            8,
            [
                FieldDescriptor.of("A", WireType.UINT8, 2),
                FieldDescriptor.of("B", WireType.UINT8, 2),
            ],
        )


def test_table_rejects_bit_outside_mask():
    with pytest.raises(ValueError):
        FieldTable(1, 8, [FieldDescriptor.of("A", WireType.UINT8, 8)])


def test_registry_lookup(small_table):
    registry = FieldTableRegistry([small_table])

    assert registry.load(1) is small_table
    assert registry.versions == [1]

    with pytest.raises(UnknownVersion) as exc_info:
        registry.load(2)
    assert exc_info.value.version == 2


def test_registry_rejects_duplicate_version(small_table):
    registry = FieldTableRegistry([small_table])
    replacement = FieldTable(1, 8, [FieldDescriptor.of("Blink", WireType.UINT32, 0)])

    with pytest.raises(ValueError):
        registry.register(replacement)

    registry.register(replacement, replace=True)
    assert registry.load(1) is replacement


def test_load_schema_file_keeps_declared_order(tmp_path):
    path = tmp_path / "v7.yaml"
    path.write_text(SCHEMA_V7)

    table = load_field_table_file(path)

    assert table.version == 7
    assert table.mask_size == 1
    # Wire order follows the file, not the bit numbers
    assert table.field_names == ["FrameNumber", "HeadPosition", "CameraPositions"]
    assert table.field("CameraPositions").count == 3
    assert table.field("CameraPositions").byte_width == 72


def test_load_schema_dir(tmp_path):
    (tmp_path / "v7.yaml").write_text(SCHEMA_V7)
    (tmp_path / "v8.yaml").write_text(SCHEMA_V7.replace("version: 7", "version: 8"))
    (tmp_path / "notes.txt").write_text("ignored")

    registry = load_schema_dir(tmp_path)

    assert registry.versions == [7, 8]


@pytest.mark.parametrize(
    "schema",
    [
        "mask_bits: 8\nfields: []\n",
        "version: 1\nmask_bits: 8\nfields:\n  - {name: A, type: complex128, mask_bit: 0}\n",
        "version: 1\nmask_bits: 8\nfields:\n  - {name: A, type: uint8}\n",
    ],
)
def test_invalid_schema_raises_value_error(tmp_path, schema):
    path = tmp_path / "bad.yaml"
    path.write_text(schema)

    with pytest.raises(ValueError):
        load_field_table_file(path)


@pytest.mark.parametrize(
    "data",
    [
        None,
        ["version", 1],
        {"version": None, "mask_bits": 8, "fields": []},
        {"version": 9, "mask_bits": 8, "fields": {"FrameNumber": "uint32"}},
        {"version": 9, "mask_bits": 8, "fields": ["FrameNumber"]},
        {"version": 9, "mask_bits": 8, "fields": [{"name": "A", "type": 4, "mask_bit": 0}]},
        {"version": 9, "mask_bits": 8, "fields": [{"name": "A", "type": "uint8", "mask_bit": None}]},
        {"version": 9, "mask_bits": 8, "fields": [{"name": 5, "type": "uint8", "mask_bit": 0}]},
        {"version": 9, "mask_bits": 8, "fields": [{"name": "", "type": "uint8", "mask_bit": 0}]},
        {"version": 9, "mask_bits": 8, "fields": [{"name": "A", "type": "uint8", "mask_bit": 0, "count": 2}]},
    ],
)
def test_malformed_schema_data_raises_value_error(data):
    with pytest.raises(ValueError):
        field_table_from_dict(data)
