import random
import struct
import zlib

import pytest

from pcpatch import codecs
from pcpatch.schema import PointCloudError

CODES = {1: "B", 2: "H", 4: "I", 8: "Q"}


def pack(values, size):
    return struct.pack(f"<{len(values)}{CODES[size]}", *values)


def unpack(data, size):
    return [v for (v,) in struct.iter_unpack("<" + CODES[size], data)]


def random_values(size, count, spread, seed=7):
    rng = random.Random(seed)
    base = rng.randrange(0, 1 << (size * 8 - 1))
    top = (1 << (size * 8)) - 1
    return [min(base + rng.randrange(spread), top) for _ in range(count)]


def test_rle_encode_wire_format():
    assert codecs.rle_encode(b"\x01\x01\x02", 1) == b"\x02\x01\x01\x02"


def test_rle_splits_runs_longer_than_255():
    encoded = codecs.rle_encode(bytes(300), 1)
    assert encoded[0] == 255
    assert len(encoded) == 4
    assert codecs.rle_decode(encoded, 1, 300) == bytes(300)


@pytest.mark.parametrize("size", [1, 2, 4, 8])
def test_rle_round_trip(size):
    values = [3, 3, 3, 9, 9, 1, 3, 3]
    data = pack(values, size)
    encoded = codecs.rle_encode(data, size)
    assert codecs.rle_decode(encoded, size, len(values)) == data
    assert len(encoded) == codecs.run_count(data, size) * (size + 1)


def test_run_count_counts_value_changes():
    assert codecs.run_count(pack([5, 5, 6, 6, 5], 2), 2) == 3
    assert codecs.run_count(pack([4], 4), 4) == 1


def test_rle_decode_rejects_wrong_point_count():
    encoded = codecs.rle_encode(pack([1, 1, 2], 2), 2)
    with pytest.raises(PointCloudError):
        codecs.rle_decode(encoded, 2, 4)


def test_rle_flip_endian_matches_swapped_input():
    values = [0x0102, 0x0102, 0x0304]
    le = pack(values, 2)
    be = struct.pack(">3H", *values)
    flipped = codecs.rle_flip_endian(codecs.rle_encode(le, 2), 2)
    assert flipped == codecs.rle_encode(be, 2)
    assert codecs.rle_flip_endian(flipped, 2) == codecs.rle_encode(le, 2)


def test_rle_flip_endian_single_byte_unchanged():
    encoded = codecs.rle_encode(b"\x07\x07\x09", 1)
    assert codecs.rle_flip_endian(encoded, 1) == encoded


def test_sigbits_common_shared_prefix():
    assert codecs.sigbits_common([0b10100000, 0b10101111], 8) == (0b10100000, 4)


def test_sigbits_common_identical_values_share_all_bits():
    assert codecs.sigbits_common([42, 42, 42], 16) == (42, 16)


def test_sigbits_common_empty_raises():
    with pytest.raises(PointCloudError):
        codecs.sigbits_common([], 8)


@pytest.mark.parametrize("size", [1, 2, 4, 8])
@pytest.mark.parametrize("spread", [1, 3, 200, 70000])
def test_sigbits_round_trip(size, spread):
    spread = min(spread, 1 << (size * 8 - 1))
    values = random_values(size, 37, spread)
    data = pack(values, size)
    encoded = codecs.sigbits_encode(data, size)
    assert codecs.sigbits_decode(encoded, size, len(values)) == data
    header = unpack(encoded[: 2 * size], size)
    common, commonbits = codecs.sigbits_common(values, size * 8)
    assert header == [size * 8 - commonbits, common]
    assert commonbits == codecs.sigbits_count(data, size)


@pytest.mark.parametrize("size", [1, 2, 4, 8])
def test_sigbits_value_at_matches_decode(size):
    values = random_values(size, 25, 1000 if size > 1 else 100, seed=3)
    data = pack(values, size)
    encoded = codecs.sigbits_encode(data, size)
    for n, value in enumerate(values):
        assert codecs.sigbits_value_at(encoded, size, n) == pack([value], size)


def test_sigbits_value_at_out_of_range():
    encoded = codecs.sigbits_encode(pack([1, 200, 7], 1), 1)
    with pytest.raises(IndexError):
        codecs.sigbits_value_at(encoded, 1, 10)


def test_sigbits_flip_endian_swaps_header_only():
    data = pack([1000, 1001, 1500], 4)
    encoded = codecs.sigbits_encode(data, 4)
    flipped = codecs.sigbits_flip_endian(encoded, 4)
    assert struct.unpack(">2I", flipped[:8]) == struct.unpack("<2I", encoded[:8])
    assert flipped[8:] == encoded[8:]
    assert codecs.sigbits_flip_endian(flipped, 4) == encoded


def test_sigbits_unsupported_size():
    with pytest.raises(PointCloudError):
        codecs.sigbits_encode(bytes(6), 3)
    with pytest.raises(PointCloudError):
        codecs.sigbits_count(bytes(6), 3)


def test_zlib_round_trip_and_format():
    data = pack(list(range(100)), 4)
    encoded = codecs.zlib_encode(data)
    assert zlib.decompress(encoded) == data
    assert codecs.zlib_decode(encoded, len(data)) == data


def test_zlib_decode_truncates_and_pads():
    data = bytes(range(50))
    encoded = codecs.zlib_encode(data)
    assert codecs.zlib_decode(encoded, 10) == data[:10]
    assert codecs.zlib_decode(encoded, 60) == data + bytes(10)


def test_zlib_decode_rejects_garbage():
    with pytest.raises(PointCloudError):
        codecs.zlib_decode(b"not deflate data", 8)