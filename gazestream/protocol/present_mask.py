"""
Present-mask codec.

The present mask is a fixed-width bit group following the packet header.
Bit i is stored in byte i // 8 at position i % 8, least-significant bit
first, so bit 0 is the low bit of the first mask byte.
"""

import math
from typing import Iterable

from gazestream.protocol.errors import TruncatedPacket


def mask_size(bit_width: int) -> int:
    return math.ceil(bit_width / 8)


def decode_mask(data: bytes, bit_width: int, offset: int = 0) -> frozenset[int]:
    """
    Return the indices of the set bits in the mask at data[offset:].

    Padding bits past bit_width in the last byte are ignored.

    Raises:
        TruncatedPacket: If fewer than ceil(bit_width / 8) bytes remain
    """
    size = mask_size(bit_width)
    end = offset + size
    if end > len(data):
        raise TruncatedPacket(
            f"Present mask needs {size} bytes at offset {offset}, "
            f"only {max(len(data) - offset, 0)} available"
        )

    value = int.from_bytes(data[offset:end], "little")
    return frozenset(bit for bit in range(bit_width) if value >> bit & 1)


def is_set(mask: frozenset[int], bit: int) -> bool:
    return bit in mask


def encode_mask(bits: Iterable[int], bit_width: int) -> bytes:
    value = 0
    for bit in bits:
        if not 0 <= bit < bit_width:
            raise ValueError(f"Mask bit {bit} outside [0, {bit_width})")
        value |= 1 << bit
    return value.to_bytes(mask_size(bit_width), "little")
