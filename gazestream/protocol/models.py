"""
Protocol Data Models

Defines the value types produced by the decoder.

Key Types:
- Point2D, Vect2D, Point3D, Vect3D, Quaternion: fixed-size composite values
- UserMarker: marker event record
- Present / ABSENT: explicit presence of a field in one packet
- FrameRecord: one decoded packet, a read-only mapping of field name to presence
"""

import math
import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple, Optional, Union

import numpy as np


class Point2D(NamedTuple):
    x: float
    y: float


class Vect2D(NamedTuple):
    x: float
    y: float


class Point3D(NamedTuple):
    x: float
    y: float
    z: float


class Vect3D(NamedTuple):
    x: float
    y: float
    z: float


class Quaternion(NamedTuple):
    w: float
    x: float
    y: float
    z: float


class UserMarker(NamedTuple):
    """Marker event raised by the device user (key press or API call)."""

    error: int
    time_stamp: int
    camera_clock: int
    camera_idx: int
    data: int


def _bit_key(value: Any) -> Any:
    # NaN compares by its float64 bits so a NaN reading equals itself
    if isinstance(value, float) and math.isnan(value):
        return ("nan", struct.pack("<d", value))
    if isinstance(value, tuple):
        return tuple(_bit_key(v) for v in value)
    return value


@dataclass(frozen=True, eq=False)
class Present:
    """
    A field that was sent in the packet, with its decoded value.

    NaN values compare by bit pattern, so two decodes of the same bytes
    are equal even when the device reported NaN.
    """

    value: Any

    def __bool__(self) -> bool:
        # A field sent as zero is still present
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Present):
            return NotImplemented
        return _bit_key(self.value) == _bit_key(other.value)

    def __hash__(self) -> int:
        return hash(_bit_key(self.value))


class _Absent:
    """A field whose present-mask bit was clear."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()

FieldValue = Union[Present, _Absent]


class FrameRecord(Mapping[str, FieldValue]):
    """
    A single decoded tracking frame.

    Maps every field name of the packet's field table to either
    Present(value) or ABSENT. Records are built once by the decoder and
    never change afterwards; each record owns its own storage.

    Attributes:
        version: Protocol version from the packet header
        payload_length: Bytes after the header covered by this record
    """

    __slots__ = ("version", "payload_length", "_fields")

    def __init__(self, version: int, payload_length: int, fields: Mapping[str, FieldValue]):
        self.version = version
        self.payload_length = payload_length
        self._fields = MappingProxyType(dict(fields))

    def __getitem__(self, name: str) -> FieldValue:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FrameRecord):
            return NotImplemented
        return (
            self.version == other.version
            and self.payload_length == other.payload_length
            and dict(self._fields) == dict(other._fields)
        )

    def __hash__(self):
        return hash((self.version, self.payload_length, tuple(self._fields.items())))

    def __repr__(self) -> str:
        present = ", ".join(f"{name}={self.value(name)!r}" for name in self.present_fields())
        return f"FrameRecord(version={self.version}, {present})"

    def is_present(self, name: str) -> bool:
        return isinstance(self._fields[name], Present)

    def value(self, name: str, default: Any = None) -> Any:
        """Return the decoded value of a field, or default when it is absent."""
        entry = self._fields[name]
        if isinstance(entry, Present):
            return entry.value
        return default

    def present_fields(self) -> list[str]:
        return [name for name, entry in self._fields.items() if isinstance(entry, Present)]

    def as_array(self, name: str) -> Optional[np.ndarray]:
        """
        Return a present numeric field as a float64 numpy array.

        Scalars become shape (), points, vectors and user markers shape (k,), point
        and vector arrays shape (N, 3). Absent fields return None.
        """
        entry = self._fields[name]
        if not isinstance(entry, Present):
            return None
        return np.asarray(entry.value, dtype=np.float64)

    @property
    def frame_number(self) -> Optional[int]:
        """Device frame sequence number, when the packet carries one."""
        if "FrameNumber" not in self._fields:
            return None
        return self.value("FrameNumber")
