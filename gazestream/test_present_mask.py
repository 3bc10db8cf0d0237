import pytest

from gazestream.protocol.errors import TruncatedPacket
from gazestream.protocol.present_mask import decode_mask, encode_mask, is_set, mask_size


@pytest.mark.parametrize("bits, size", [(1, 1), (8, 1), (9, 2), (16, 2), (32, 4), (33, 5)])
def test_mask_size(bits, size):
    assert mask_size(bits) == size


def test_bit_zero_is_low_bit_of_first_byte():
    assert decode_mask(b"\x01\x00", 16) == {0}
    assert decode_mask(b"\x00\x01", 16) == {8}
    assert decode_mask(b"\x05\x80", 16) == {0, 2, 15}


def test_decode_at_offset():
    data = b"\xaa\x55\x01\x00\x06\x00" + b"\x02\x00"
    assert decode_mask(data, 16, offset=6) == {1}


def test_padding_bits_ignored():
    assert decode_mask(b"\xff", 3) == {0, 1, 2}


def test_is_set():
    mask = decode_mask(b"\x03\x00", 16)
    assert is_set(mask, 0)
    assert is_set(mask, 1)
    assert not is_set(mask, 2)


@pytest.mark.parametrize("data, offset", [(b"", 0), (b"\x01", 0), (b"\x00\x00\x01", 2)])
def test_short_mask_is_truncated(data, offset):
    with pytest.raises(TruncatedPacket):
        decode_mask(data, 16, offset=offset)


def test_encode_mask():
    assert encode_mask([], 16) == b"\x00\x00"
    assert encode_mask([0, 9], 16) == b"\x01\x02"
    assert decode_mask(encode_mask({3, 17, 31}, 32), 32) == {3, 17, 31}


@pytest.mark.parametrize("bit", [-1, 16])
def test_encode_mask_rejects_bit_outside_width(bit):
    with pytest.raises(ValueError):
        encode_mask([bit], 16)
