"""One dimension's values for a whole patch, optionally compressed."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass, replace
from typing import Iterator

from . import codecs
from .bitmap import Bitmap, FilterType
from .schema import Dimension, Interpretation, PointCloudError

FLT_MAX = 3.4028234663852886e38


class DimCompression(enum.IntEnum):
    """Compression applied to a single dimension's byte array."""

    NONE = 0
    RLE = 1
    SIGBITS = 2
    ZLIB = 3


@dataclass
class DoubleStat:
    """Running minimum, maximum and sum of raw (unscaled) values."""

    min: float = FLT_MAX
    max: float = -FLT_MAX
    sum: float = 0.0

    def add(self, value: float) -> None:
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value
        self.sum += value


@dataclass
class DimBytes:
    """Packed little-endian values of one dimension across ``npoints`` points."""

    data: bytes
    npoints: int
    interpretation: Interpretation
    compression: DimCompression = DimCompression.NONE

    def __post_init__(self) -> None:
        self.data = bytes(self.data)
        self.interpretation = Interpretation(self.interpretation)
        self.compression = DimCompression(self.compression)

    @property
    def element_size(self) -> int:
        return self.interpretation.size

    @classmethod
    def make(cls, dimension: Dimension, npoints: int) -> "DimBytes":
        """Zero-filled uncompressed storage for ``npoints`` values."""
        return cls(bytes(dimension.size * npoints), npoints, dimension.interpretation)

    @classmethod
    def deserialize(cls, buf, dimension: Dimension, npoints: int, flip_endian: bool = False) -> "DimBytes":
        """Read ``<uint8 compression><int32 size><data>`` from ``buf``."""
        view = bytes(buf)
        if len(view) < 5:
            raise PointCloudError("truncated dimension bytes header")
        try:
            compression = DimCompression(view[0])
        except ValueError:
            raise PointCloudError(f"unknown dimension compression {view[0]}") from None
        (size,) = struct.unpack_from(">i" if flip_endian else "<i", view, 1)
        if size < 0 or 5 + size > len(view):
            raise PointCloudError("dimension bytes size exceeds buffer")
        pcb = cls(view[5 : 5 + size], npoints, dimension.interpretation, compression)
        if flip_endian:
            pcb = pcb.flip_endian()
        return pcb

    def is_empty(self) -> bool:
        return self.npoints == 0 or not self.data

    def encode(self, compression: DimCompression) -> "DimBytes":
        """Return a copy compressed with ``compression``."""
        compression = DimCompression(compression)
        source = self if self.compression is DimCompression.NONE else self.decode()
        size = self.element_size
        if compression is DimCompression.NONE:
            data = source.data
        elif compression is DimCompression.RLE:
            data = codecs.rle_encode(source.data, size)
        elif compression is DimCompression.SIGBITS:
            data = codecs.sigbits_encode(source.data, size)
        else:
            data = codecs.zlib_encode(source.data)
        return replace(source, data=data, compression=compression)

    def decode(self) -> "DimBytes":
        """Return an uncompressed copy."""
        size = self.element_size
        if self.compression is DimCompression.NONE:
            data = self.data
        elif self.compression is DimCompression.RLE:
            data = codecs.rle_decode(self.data, size, self.npoints)
        elif self.compression is DimCompression.SIGBITS:
            data = codecs.sigbits_decode(self.data, size, self.npoints)
        else:
            data = codecs.zlib_decode(self.data, size * self.npoints)
        return replace(self, data=data, compression=DimCompression.NONE)

    def _raw(self) -> bytes:
        return self.data if self.compression is DimCompression.NONE else self.decode().data

    def run_count(self) -> int:
        """Number of runs of identical consecutive values."""
        return codecs.run_count(self._raw(), self.element_size)

    def sigbits_count(self) -> int:
        """Number of leading bits shared by all values."""
        return codecs.sigbits_count(self._raw(), self.element_size)

    def flip_endian(self) -> "DimBytes":
        """Return a copy with multi-byte words byte-swapped as stored."""
        size = self.element_size
        if self.compression is DimCompression.RLE:
            data = codecs.rle_flip_endian(self.data, size)
        elif self.compression is DimCompression.SIGBITS:
            data = codecs.sigbits_flip_endian(self.data, size)
        else:
            data = self.data
        return replace(self, data=data)

    def serialized_size(self) -> int:
        return 1 + 4 + len(self.data)

    def serialize(self) -> bytes:
        return bytes([self.compression]) + struct.pack("<i", len(self.data)) + self.data

    def _values(self, data: bytes) -> Iterator[float]:
        size = self.element_size
        read = self.interpretation.read
        return (read(data, offset) for offset in range(0, len(data) - size + 1, size))

    def _rle_entries(self) -> Iterator[tuple[int, float, bytes]]:
        size = self.element_size
        view = self.data
        for pos in range(0, len(view), size + 1):
            value = view[pos + 1 : pos + 1 + size]
            if len(value) < size:
                raise PointCloudError("truncated run-length data")
            yield view[pos], self.interpretation.read(value), value

    def minmax(self) -> tuple[float, float, float]:
        """Return ``(min, max, average)`` of the raw values."""
        stat = DoubleStat()
        if self.compression is DimCompression.RLE:
            for count, value, _ in self._rle_entries():
                if value < stat.min:
                    stat.min = value
                if value > stat.max:
                    stat.max = value
                stat.sum += count * value
        else:
            for value in self._values(self._raw()):
                stat.add(value)
        avg = stat.sum / self.npoints if self.npoints else math.nan
        return stat.min, stat.max, avg

    def _filter_uncompressed(self, bitmap: Bitmap, stats: DoubleStat | None) -> "DimBytes":
        size = self.element_size
        kept = bytearray()
        count = 0
        for i in range(self.npoints):
            if bitmap.get(i):
                chunk = self.data[i * size : (i + 1) * size]
                if stats is not None:
                    stats.add(self.interpretation.read(chunk))
                kept += chunk
                count += 1
        return replace(self, data=bytes(kept), npoints=count)

    def _filter_rle(self, bitmap: Bitmap, stats: DoubleStat | None) -> "DimBytes":
        out = bytearray()
        start = 0
        total = 0
        for count, value, raw in self._rle_entries():
            kept = sum(1 for j in range(start, start + count) if bitmap.get(j))
            if kept:
                out.append(kept)
                out += raw
                total += kept
                if stats is not None:
                    stats.add(value)
            start += count
        return replace(self, data=bytes(out), npoints=total)

    def filter(self, bitmap: Bitmap, stats: DoubleStat | None = None) -> "DimBytes":
        """Keep only values whose bitmap flag is set, in the same compression.

        ``stats``, if given, is updated with the raw values kept.
        """
        if self.compression is DimCompression.NONE:
            return self._filter_uncompressed(bitmap, stats)
        if self.compression is DimCompression.RLE:
            return self._filter_rle(bitmap, stats)
        filtered = self.decode()._filter_uncompressed(bitmap, stats)
        return filtered.encode(self.compression)

    def bitmap(self, filter: FilterType, val1: float, val2: float | None = None) -> Bitmap:
        """Flag each point whose raw value passes ``filter``."""
        if val2 is None:
            val2 = val1
        result = Bitmap(self.npoints)
        if self.compression is DimCompression.RLE:
            i = 0
            for count, value, _ in self._rle_entries():
                for index in range(i, i + count):
                    result.apply(filter, index, value, val1, val2)
                i += count
        else:
            for index, value in enumerate(self._values(self._raw())):
                result.apply(filter, index, value, val1, val2)
        return result

    def value_bytes(self, n: int) -> bytes:
        """Bytes of value ``n`` (0-based)."""
        size = self.element_size
        if n < 0 or n >= self.npoints:
            raise IndexError(f"value index {n} out of range")
        if self.compression is DimCompression.RLE:
            for count, _, raw in self._rle_entries():
                if n < count:
                    return raw
                n -= count
            raise IndexError("value index out of range")
        if self.compression is DimCompression.SIGBITS:
            return codecs.sigbits_value_at(self.data, size, n)
        data = self._raw()
        chunk = data[n * size : (n + 1) * size]
        if len(chunk) < size:
            raise IndexError(f"value index {n} out of range")
        return chunk