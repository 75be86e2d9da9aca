"""Per-dimension byte codecs: run-length, significant bits and deflate.

Every function works on packed little-endian arrays of fixed-width
elements, ``size`` bytes each.
"""

from __future__ import annotations

import itertools
import struct
import zlib
from functools import reduce
from typing import Iterator

from .schema import PointCloudError

_MAX_RUN = 255
_CODES = {1: "B", 2: "H", 4: "I", 8: "Q"}


def _width(size: int) -> int:
    if size not in _CODES:
        raise PointCloudError(f"cannot handle elements of {size} bytes")
    return size * 8


def _chunks(data, size: int) -> list[bytes]:
    if size <= 0 or len(data) % size:
        raise PointCloudError(f"data length {len(data)} is not a multiple of element size {size}")
    view = bytes(data)
    return [view[start : start + size] for start in range(0, len(view), size)]


def _unpack(data, size: int) -> list[int]:
    _width(size)
    if len(data) % size:
        raise PointCloudError(f"data length {len(data)} is not a multiple of element size {size}")
    return [value for (value,) in struct.iter_unpack("<" + _CODES[size], bytes(data))]


def _pack(values: list[int], size: int) -> bytes:
    return struct.pack(f"<{len(values)}{_CODES[size]}", *values)


def run_count(data, size: int) -> int:
    """Number of runs of identical consecutive elements (at least 1)."""
    chunks = _chunks(data, size)
    return 1 + sum(a != b for a, b in zip(chunks, chunks[1:]))


def rle_encode(data, size: int) -> bytes:
    """Run-length encode: repeated ``<uint8 count><element>`` entries.

    Runs longer than 255 elements are split into several entries.
    """
    out = bytearray()
    for value, group in itertools.groupby(_chunks(data, size)):
        remaining = sum(1 for _ in group)
        while remaining > 0:
            count = min(remaining, _MAX_RUN)
            out.append(count)
            out += value
            remaining -= count
    return bytes(out)


def _rle_entries(data, size: int) -> Iterator[tuple[int, bytes]]:
    view = bytes(data)
    pos = 0
    while pos < len(view):
        if pos + 1 + size > len(view):
            raise PointCloudError("truncated run-length data")
        yield view[pos], view[pos + 1 : pos + 1 + size]
        pos += 1 + size


def rle_decode(data, size: int, npoints: int) -> bytes:
    """Expand run-length encoded data back to ``npoints`` elements."""
    entries = list(_rle_entries(data, size))
    total = sum(count for count, _ in entries)
    if total != npoints:
        raise PointCloudError(f"run-length data holds {total} points, expected {npoints}")
    return b"".join(value * count for count, value in entries)


def rle_flip_endian(data, size: int) -> bytes:
    """Reverse the byte order of each element value, keeping the counts."""
    if size < 2:
        return bytes(data)
    out = bytearray()
    for count, value in _rle_entries(data, size):
        out.append(count)
        out += value[::-1]
    return bytes(out)


def sigbits_common(values, width: int) -> tuple[int, int]:
    """Return ``(common_value, common_bits)`` for integers of ``width`` bits.

    ``common_bits`` is the number of leading bits shared by every value and
    ``common_value`` holds those bits with the rest cleared.
    """
    values = list(values)
    if not values:
        raise PointCloudError("cannot count significant bits of an empty array")
    elem_and = reduce(lambda a, b: a & b, values)
    elem_or = reduce(lambda a, b: a | b, values)
    common = width
    while elem_and != elem_or:
        elem_and >>= 1
        elem_or >>= 1
        common -= 1
    mask = (1 << width) - 1
    return (elem_and << (width - common)) & mask, common


def sigbits_count(data, size: int) -> int:
    """Number of leading bits shared by all elements."""
    return sigbits_common(_unpack(data, size), _width(size))[1]


def _sigbits_out_size(nbits: int, npoints: int, size: int) -> int:
    raw = nbits * npoints // 8 + 1 + 2 * size
    if size == 1:
        return raw
    if size == 2:
        return raw + raw % 2
    return raw + (size - raw % size)


def _pack_bits(values: list[int], nbits: int, width: int, size: int) -> bytes:
    word_mask = (1 << width) - 1
    acc = 0
    accbits = 0
    out = bytearray()
    for value in values:
        acc = (acc << nbits) | value
        accbits += nbits
        while accbits >= width:
            accbits -= width
            out += ((acc >> accbits) & word_mask).to_bytes(size, "little")
            acc &= (1 << accbits) - 1
    if accbits:
        out += ((acc << (width - accbits)) & word_mask).to_bytes(size, "little")
    return bytes(out)


def sigbits_encode(data, size: int) -> bytes:
    """Strip the leading bits shared by all elements and pack the rest.

    Layout: ``<word nbits><word common_value>`` followed by the unique
    ``nbits`` of each element packed most-significant first into words.
    """
    width = _width(size)
    values = _unpack(data, size)
    commonvalue, commonbits = sigbits_common(values, width)
    nbits = width - commonbits
    header = nbits.to_bytes(size, "little") + commonvalue.to_bytes(size, "little")
    body = b""
    if nbits:
        mask = (1 << width) - 1 >> commonbits
        body = _pack_bits([value & mask for value in values], nbits, width, size)
    out = header + body
    return out.ljust(_sigbits_out_size(nbits, len(values), size), b"\0")


def _sigbits_header(data, size: int) -> tuple[int, int, int]:
    width = _width(size)
    if len(data) < 2 * size:
        raise PointCloudError("truncated significant-bits header")
    view = bytes(data)
    nbits = int.from_bytes(view[:size], "little")
    commonvalue = int.from_bytes(view[size : 2 * size], "little")
    if nbits > width:
        raise PointCloudError(f"invalid significant-bits width {nbits}")
    return width, nbits, commonvalue


def sigbits_decode(data, size: int, npoints: int) -> bytes:
    """Rebuild ``npoints`` elements from significant-bits encoded data."""
    width, nbits, commonvalue = _sigbits_header(data, size)
    if nbits == 0:
        return commonvalue.to_bytes(size, "little") * npoints
    body = bytes(data[2 * size :])
    body = body[: len(body) // size * size]
    words = (word for (word,) in struct.iter_unpack("<" + _CODES[size], body))
    acc = 0
    accbits = 0
    values = []
    for _ in range(npoints):
        while accbits < nbits:
            word = next(words, None)
            if word is None:
                raise PointCloudError("truncated significant-bits data")
            acc = (acc << width) | word
            accbits += width
        accbits -= nbits
        values.append((acc >> accbits) | commonvalue)
        acc &= (1 << accbits) - 1
    return _pack(values, size)


def sigbits_flip_endian(data, size: int) -> bytes:
    """Reverse the byte order of the two header words only."""
    if size < 2:
        return bytes(data)
    if len(data) < 2 * size:
        raise PointCloudError("truncated significant-bits header")
    view = bytes(data)
    return view[:size][::-1] + view[size : 2 * size][::-1] + view[2 * size :]


def sigbits_value_at(data, size: int, n: int) -> bytes:
    """Bytes of element ``n`` (0-based) read directly from encoded data."""
    width, nbits, commonvalue = _sigbits_header(data, size)
    if n < 0:
        raise IndexError(f"element index {n} out of range")
    if nbits == 0:
        return commonvalue.to_bytes(size, "little")
    view = bytes(data)
    mask = (1 << nbits) - 1
    bitoffset = n * nbits

    def word(index: int) -> int:
        start = 2 * size + index * size
        if start + size > len(view):
            raise IndexError(f"element index {n} out of range")
        return int.from_bytes(view[start : start + size], "little")

    index = bitoffset // width
    shift = width - bitoffset % width - nbits
    first = word(index)
    if shift >= 0:
        unique = (first >> shift) & mask
    else:
        second = word(index + 1)
        unique = ((first << -shift) | (second >> (width + shift))) & mask
    return (unique | commonvalue).to_bytes(size, "little")


def zlib_encode(data) -> bytes:
    """Deflate ``data`` at the highest compression level."""
    return zlib.compress(bytes(data), 9)


def zlib_decode(data, expected_size: int) -> bytes:
    """Inflate ``data`` into exactly ``expected_size`` bytes.

    Output beyond ``expected_size`` is dropped; a shorter result is
    padded with zero bytes.
    """
    if expected_size <= 0:
        return b""
    try:
        out = zlib.decompressobj().decompress(bytes(data), expected_size)
    except zlib.error as exc:
        raise PointCloudError(f"zlib decompression failed: {exc}") from exc
    return out.ljust(expected_size, b"\0")