"""Point cloud schemas: dimensions, value interpretations and errors."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass, field

# Endianness flags used in serialized forms.
XDR = 0
NDR = 1


class PointCloudError(Exception):
    """Raised when point cloud data is inconsistent or unsupported."""


class Interpretation(enum.IntEnum):
    """Storage type of a single dimension value."""

    UNKNOWN = 0
    INT8 = 1
    UINT8 = 2
    INT16 = 3
    UINT16 = 4
    INT32 = 5
    UINT32 = 6
    INT64 = 7
    UINT64 = 8
    DOUBLE = 9
    FLOAT = 10

    @property
    def code(self) -> str:
        """The struct format character, or an empty string for UNKNOWN."""
        return _CODES.get(self, "")

    @property
    def size(self) -> int:
        """Width of one value in bytes (0 for UNKNOWN)."""
        return struct.calcsize(self.code) if self.code else 0

    @property
    def fmt(self) -> str:
        """Little-endian struct format for one value."""
        return "<" + self.code

    @property
    def is_integer(self) -> bool:
        return self not in (Interpretation.UNKNOWN, Interpretation.DOUBLE, Interpretation.FLOAT)

    @property
    def is_signed(self) -> bool:
        return self.code.islower() or not self.is_integer

    def read(self, data, offset: int = 0) -> float:
        """Read one little-endian value at ``offset`` and return it as a float."""
        if not self.code:
            raise PointCloudError(f"cannot read values of interpretation {self.name}")
        return float(struct.unpack_from(self.fmt, data, offset)[0])

    def write(self, value: float) -> bytes:
        """Encode ``value`` as little-endian bytes of this type.

        Integer types round half away from zero and clamp to their range.
        """
        if not self.code:
            raise PointCloudError(f"cannot write values of interpretation {self.name}")
        if not self.is_integer:
            return struct.pack(self.fmt, value)
        if not math.isfinite(value):
            raise PointCloudError(f"cannot store {value!r} in {self.name}")
        rounded = math.floor(abs(value) + 0.5)
        if value < 0:
            rounded = -rounded
        bits = self.size * 8
        if self.is_signed:
            low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        else:
            low, high = 0, (1 << bits) - 1
        return struct.pack(self.fmt, min(max(rounded, low), high))


_CODES = {
    Interpretation.INT8: "b",
    Interpretation.UINT8: "B",
    Interpretation.INT16: "h",
    Interpretation.UINT16: "H",
    Interpretation.INT32: "i",
    Interpretation.UINT32: "I",
    Interpretation.INT64: "q",
    Interpretation.UINT64: "Q",
    Interpretation.DOUBLE: "d",
    Interpretation.FLOAT: "f",
}


class PatchCompression(enum.IntEnum):
    """Patch storage schemes, as written in serialized patches."""

    NONE = 0
    DIMENSIONAL = 1
    GHT = 2
    LAZPERF = 3


@dataclass
class Dimension:
    """One named, typed, scaled attribute of a point."""

    name: str
    interpretation: Interpretation
    scale: float = 1.0
    offset: float = 0.0
    description: str = ""
    active: bool = True
    position: int = 0
    byteoffset: int = 0

    @property
    def size(self) -> int:
        return self.interpretation.size

    def scale_offset(self, value: float) -> float:
        """Convert a stored value to its real-world value."""
        if self.scale != 1:
            value *= self.scale
        if self.offset != 0:
            value += self.offset
        return value

    def unscale_unoffset(self, value: float) -> float:
        """Convert a real-world value to its stored value."""
        if self.offset != 0:
            value -= self.offset
        if self.scale != 1:
            value /= self.scale
        return value


@dataclass
class Schema:
    """Ordered dimensions making up a point, with their byte layout."""

    dims: list[Dimension]
    pcid: int = 0
    srid: int = 0
    compression: PatchCompression = PatchCompression.NONE
    x_position: int = field(init=False, default=-1)
    y_position: int = field(init=False, default=-1)
    size: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self.dims = list(self.dims)
        self._by_name: dict[str, Dimension] = {}
        offset = 0
        for position, dim in enumerate(self.dims):
            dim.position = position
            dim.byteoffset = offset
            offset += dim.size
            key = dim.name.casefold()
            self._by_name.setdefault(key, dim)
            if key == "x" and self.x_position < 0:
                self.x_position = position
            elif key == "y" and self.y_position < 0:
                self.y_position = position
        self.size = offset

    @property
    def ndims(self) -> int:
        return len(self.dims)

    def dimension(self, index: int) -> Dimension:
        """Return the dimension at ``index``."""
        if not 0 <= index < len(self.dims):
            raise IndexError(f"dimension index {index} out of range")
        return self.dims[index]

    def dimension_by_name(self, name: str) -> Dimension:
        """Return the dimension called ``name`` (case-insensitive)."""
        try:
            return self._by_name[name.casefold()]
        except KeyError:
            raise KeyError(f"no dimension named {name!r}") from None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._by_name


def _byteswap_points(schema: Schema, data, npoints: int) -> bytearray:
    """Return a copy of packed point data with each value's bytes reversed."""
    out = bytearray(data[: schema.size * npoints])
    for base in range(0, schema.size * npoints, schema.size):
        for dim in schema.dims:
            start = base + dim.byteoffset
            out[start : start + dim.size] = out[start : start + dim.size][::-1]
    return out