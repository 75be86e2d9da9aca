import struct

import pytest

from pcpatch import codecs
from pcpatch.bitmap import Bitmap, FilterType
from pcpatch.dimbytes import DimBytes, DimCompression, DoubleStat
from pcpatch.schema import Dimension, Interpretation, PointCloudError

ALL = list(DimCompression)


def pcb_of(values, interp=Interpretation.UINT16):
    data = b"".join(interp.write(v) for v in values)
    return DimBytes(data, len(values), interp)


def test_make_is_zero_filled():
    dim = Dimension("X", Interpretation.INT32)
    pcb = DimBytes.make(dim, 2)
    assert pcb.data == bytes(8)
    assert pcb.compression is DimCompression.NONE
    assert pcb.npoints == 2


def test_is_empty():
    assert DimBytes(b"", 0, Interpretation.UINT8).is_empty()
    assert not pcb_of([1, 2]).is_empty()


@pytest.mark.parametrize("compression", ALL)
def test_encode_decode_round_trip(compression):
    pcb = pcb_of([100, 100, 101, 107, 107, 107, 120])
    encoded = pcb.encode(compression)
    assert encoded.compression is compression
    decoded = encoded.decode()
    assert decoded.data == pcb.data
    assert decoded.compression is DimCompression.NONE


def test_rle_wire_format():
    pcb = pcb_of([1, 1, 1, 2, 2], Interpretation.UINT8)
    assert pcb.encode(DimCompression.RLE).data == b"\x03\x01\x02\x02"


def test_serialize_header_and_round_trip():
    pcb = pcb_of([5, 6, 7]).encode(DimCompression.RLE)
    blob = pcb.serialize()
    assert blob[0] == DimCompression.RLE
    assert blob[1:5] == struct.pack("<i", len(pcb.data))
    assert len(blob) == pcb.serialized_size()
    dim = Dimension("Z", Interpretation.UINT16)
    back = DimBytes.deserialize(blob, dim, 3)
    assert back == pcb


def test_deserialize_flipped_input():
    pcb = pcb_of([300, 300, 301]).encode(DimCompression.RLE)
    swapped = codecs.rle_flip_endian(pcb.data, 2)
    blob = bytes([DimCompression.RLE]) + struct.pack(">i", len(swapped)) + swapped
    dim = Dimension("Z", Interpretation.UINT16)
    back = DimBytes.deserialize(blob, dim, 3, flip_endian=True)
    assert back.decode().data == pcb_of([300, 300, 301]).data


def test_deserialize_unknown_compression():
    dim = Dimension("Z", Interpretation.UINT8)
    with pytest.raises(PointCloudError):
        DimBytes.deserialize(b"\x09\x00\x00\x00\x00", dim, 0)


@pytest.mark.parametrize("compression", ALL)
def test_minmax_all_compressions(compression):
    values = [3, 1, 4, 1, 5, 9, 2, 6]
    mn, mx, avg = pcb_of(values).encode(compression).minmax()
    assert mn == min(values)
    assert mx == max(values)
    assert avg == pytest.approx(sum(values) / len(values))


@pytest.mark.parametrize("compression", ALL)
def test_filter_keeps_selected(compression):
    values = [10, 10, 11, 12, 12, 15]
    bm = Bitmap(len(values))
    for i in (1, 3, 5):
        bm.set(i, 1)
    stats = DoubleStat()
    out = pcb_of(values).encode(compression).filter(bm, stats)
    assert out.compression is compression
    assert out.npoints == 3
    assert out.decode().data == pcb_of([10, 12, 15]).data
    assert stats.min == 10
    assert stats.max == 15


@pytest.mark.parametrize("compression", ALL)
def test_bitmap_matches_values(compression):
    values = [1, 1, 3, 5, 5, 2]
    bm = pcb_of(values).encode(compression).bitmap(FilterType.GT, 2)
    assert list(bm) == [v > 2 for v in values]
    assert bm.nset == sum(v > 2 for v in values)


def test_bitmap_between():
    values = [1, 2, 3, 4, 5]
    bm = pcb_of(values).bitmap(FilterType.BETWEEN, 1, 4)
    assert list(bm) == [1 < v < 4 for v in values]


@pytest.mark.parametrize("compression", ALL)
def test_value_bytes(compression):
    values = [7, 7, 8, 1000, 1000, 3]
    pcb = pcb_of(values)
    enc = pcb.encode(compression)
    for n in range(len(values)):
        assert enc.value_bytes(n) == pcb.data[n * 2 : (n + 1) * 2]


def test_value_bytes_out_of_range():
    enc = pcb_of([1, 2]).encode(DimCompression.RLE)
    with pytest.raises(IndexError):
        enc.value_bytes(2)


def test_run_and_sigbits_count():
    assert pcb_of([1, 1, 2, 2, 2, 3], Interpretation.UINT8).run_count() == 3
    assert pcb_of([0x10, 0x11, 0x12], Interpretation.UINT8).sigbits_count() == 6


def test_flip_endian_twice_is_identity():
    enc = pcb_of([400, 401, 402]).encode(DimCompression.SIGBITS)
    assert enc.flip_endian().flip_endian() == enc
    plain = pcb_of([400, 401])
    assert plain.flip_endian() == plain


def test_sigbits_empty_raises():
    with pytest.raises(PointCloudError):
        DimBytes(b"", 0, Interpretation.UINT8).encode(DimCompression.SIGBITS)