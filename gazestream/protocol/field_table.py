"""
Field Tables

A field table describes the fixed wire layout of one protocol version:
which fields exist, in which order they appear in the payload, how wide
each one is, and which present-mask bit announces it.

The wire format is not self-describing beyond the present mask, so the
table is treated as configuration data. Tables are loaded from the YAML
schema files in protocol/schemas/ into a registry once at import; the
registry is read-only once decoding starts.

Schema file structure:
    version: 1
    mask_bits: 32
    fields:
      - {name: FrameNumber, type: uint32, mask_bit: 0}
      - {name: CameraPositions, type: point3d_array, count: 2, mask_bit: 5}
"""

import logging
import math
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Union

import yaml

from gazestream.config import settings
from gazestream.protocol.errors import UnknownVersion

logger = logging.getLogger(__name__)

# Packet header format string for struct.unpack()
# < = little-endian, no padding
# 2s = magic sync bytes
# H  = unsigned short (2 bytes) → version
# H  = unsigned short (2 bytes) → payload_length
MAGIC = settings.protocol.magic
HEADER_FORMAT = f"<{len(MAGIC)}sHH"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # = 6 bytes


class WireType(Enum):
    """
    Wire encodings used by the device.

    Each member's value is (schema name, element width in bytes). Every
    multi-byte value is little-endian; geometric types are sequences of
    float64 components, and user_marker is a packed integer record.
    """

    UINT8 = ("uint8", 1)
    UINT16 = ("uint16", 2)
    UINT32 = ("uint32", 4)
    INT32 = ("int32", 4)
    UINT64 = ("uint64", 8)
    FLOAT32 = ("float32", 4)
    FLOAT64 = ("float64", 8)
    POINT2D = ("point2d", 16)
    VECT2D = ("vect2d", 16)
    POINT3D = ("point3d", 24)
    VECT3D = ("vect3d", 24)
    QUATERNION = ("quaternion", 32)
    POINT3D_ARRAY = ("point3d_array", 24)
    VECT3D_ARRAY = ("vect3d_array", 24)
    USER_MARKER = ("user_marker", 29)

    @property
    def schema_name(self) -> str:
        return self.value[0]

    @property
    def element_width(self) -> int:
        return self.value[1]

    @property
    def is_array(self) -> bool:
        return self in (WireType.POINT3D_ARRAY, WireType.VECT3D_ARRAY)

    @classmethod
    def from_schema_name(cls, name: str) -> "WireType":
        if not isinstance(name, str):
            raise ValueError(f"Wire type must be a string, got {name!r}")
        for wire_type in cls:
            if wire_type.schema_name == name.lower():
                return wire_type
        raise ValueError(f"Unknown wire type: {name!r}")


@dataclass(frozen=True)
class FieldDescriptor:
    """
    Layout of one optional field.

    Attributes:
        name: Field name exposed in FrameRecord
        wire_type: Encoding of the value
        byte_width: Bytes the value occupies when present
        mask_bit: Present-mask bit announcing the field
        count: Element count for array types (camera count), 1 otherwise
    """

    name: str
    wire_type: WireType
    byte_width: int
    mask_bit: int
    count: int = 1

    def __post_init__(self):
        if self.count < 1:
            raise ValueError(f"{self.name}: count must be >= 1, got {self.count}")
        if not self.wire_type.is_array and self.count != 1:
            raise ValueError(f"{self.name}: only array fields take a count")
        expected = self.wire_type.element_width * self.count
        if self.byte_width != expected:
            raise ValueError(
                f"{self.name}: byte_width {self.byte_width} does not match "
                f"{self.wire_type.schema_name} x {self.count} ({expected} bytes)"
            )
        if self.mask_bit < 0:
            raise ValueError(f"{self.name}: mask_bit must be >= 0, got {self.mask_bit}")

    @classmethod
    def of(cls, name: str, wire_type: WireType, mask_bit: int, count: int = 1) -> "FieldDescriptor":
        """Build a descriptor with the width implied by its wire type."""
        return cls(
            name=name,
            wire_type=wire_type,
            byte_width=wire_type.element_width * count,
            mask_bit=mask_bit,
            count=count,
        )


class FieldTable:
    """
    Ordered field layout for one protocol version.

    Fields keep their declared (wire) order. Construction validates that
    names and mask bits are unique and that every mask bit fits in the
    mask width.
    """

    def __init__(self, version: int, mask_bits: int, fields: Iterable[FieldDescriptor]):
        self.version = version
        self.mask_bits = mask_bits
        self.fields: tuple[FieldDescriptor, ...] = tuple(fields)

        if mask_bits <= 0:
            raise ValueError(f"mask_bits must be positive, got {mask_bits}")

        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Version {version}: duplicate field names")

        bits = [f.mask_bit for f in self.fields]
        if len(set(bits)) != len(bits):
            raise ValueError(f"Version {version}: duplicate mask bits")
        out_of_range = [f.name for f in self.fields if f.mask_bit >= mask_bits]
        if out_of_range:
            raise ValueError(
                f"Version {version}: mask bits outside [0, {mask_bits}) for {out_of_range}"
            )

        self._by_name = {f.name: f for f in self.fields}
        self._by_bit = {f.mask_bit: f for f in self.fields}

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"FieldTable(version={self.version}, mask_bits={self.mask_bits}, fields={len(self.fields)})"

    @property
    def mask_size(self) -> int:
        """Bytes occupied by the present mask."""
        return math.ceil(self.mask_bits / 8)

    @property
    def max_payload_size(self) -> int:
        """Payload length with every field present."""
        return self.mask_size + sum(f.byte_width for f in self.fields)

    @property
    def max_packet_size(self) -> int:
        return HEADER_SIZE + self.max_payload_size

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldDescriptor:
        return self._by_name[name]

    def field_for_bit(self, bit: int) -> Optional[FieldDescriptor]:
        return self._by_bit.get(bit)


class FieldTableRegistry:
    """Field tables by protocol version."""

    def __init__(self, tables: Iterable[FieldTable] = ()):
        self._tables: dict[int, FieldTable] = {}
        for table in tables:
            self.register(table)

    def __contains__(self, version: int) -> bool:
        return version in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    @property
    def versions(self) -> list[int]:
        return sorted(self._tables)

    def register(self, table: FieldTable, replace: bool = False) -> None:
        if table.version in self._tables and not replace:
            raise ValueError(f"Field table for version {table.version} already registered")
        self._tables[table.version] = table
        logger.debug(
            "Registered field table v%d (%d fields, max packet %d bytes)",
            table.version,
            len(table),
            table.max_packet_size,
        )

    def load(self, version: int) -> FieldTable:
        try:
            return self._tables[version]
        except KeyError:
            raise UnknownVersion(version) from None

    @property
    def max_packet_size(self) -> int:
        """Largest packet any registered version can produce."""
        return max((t.max_packet_size for t in self._tables.values()), default=HEADER_SIZE)


def _field_from_entry(entry: dict, version: int) -> FieldDescriptor:
    if not isinstance(entry, dict):
        raise ValueError(f"Version {version}: field entry {entry!r} is not a mapping")

    try:
        name = entry["name"]
        wire_type = WireType.from_schema_name(entry["type"])
        mask_bit = int(entry["mask_bit"])
        count = int(entry.get("count", 1))
    except KeyError as e:
        raise ValueError(f"Version {version}: field entry {entry!r} missing {e}") from e
    except TypeError as e:
        raise ValueError(f"Version {version}: field entry {entry!r} is invalid: {e}") from e

    if not isinstance(name, str) or not name:
        raise ValueError(f"Version {version}: field name must be a non-empty string, got {name!r}")

    return FieldDescriptor.of(name=name, wire_type=wire_type, mask_bit=mask_bit, count=count)


def field_table_from_dict(data: dict) -> FieldTable:
    """
    Build a FieldTable from parsed schema data.

    Raises:
        ValueError: If the data does not describe a valid table
    """
    if not isinstance(data, dict):
        raise ValueError(f"Schema must be a mapping, got {type(data).__name__}")

    try:
        version = int(data["version"])
        mask_bits = int(data["mask_bits"])
        entries = data["fields"]
    except KeyError as e:
        raise ValueError(f"Schema is missing a required key: {e}") from e
    except TypeError as e:
        raise ValueError(f"Schema header is invalid: {e}") from e

    if not isinstance(entries, list):
        raise ValueError(f"Version {version}: 'fields' must be a list")

    fields = [_field_from_entry(entry, version) for entry in entries]
    return FieldTable(version=version, mask_bits=mask_bits, fields=fields)


def load_field_table_file(path: Union[str, Path]) -> FieldTable:
    """Load one FieldTable from a YAML schema file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return field_table_from_dict(data)


def load_schema_dir(schema_dir: Union[str, Path]) -> FieldTableRegistry:
    """Load every *.yaml schema in a directory into a new registry."""
    registry = FieldTableRegistry()
    for path in sorted(Path(schema_dir).glob("*.yaml")):
        registry.register(load_field_table_file(path))
    return registry


# Process-wide registry, populated once at import
field_tables = load_schema_dir(settings.protocol.schema_dir)


def load(version: int) -> FieldTable:
    """Return the bundled field table for a protocol version."""
    return field_tables.load(version)
