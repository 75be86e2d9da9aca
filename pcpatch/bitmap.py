"""Per-point selection bitmaps used by patch filters."""

from __future__ import annotations

import enum
from typing import Iterator


class FilterType(enum.IntEnum):
    """Comparison applied to a dimension value."""

    GT = 0
    LT = 1
    EQUAL = 2
    BETWEEN = 3


def _matches(filter: FilterType, d: float, val1: float, val2: float) -> bool:
    if filter is FilterType.GT:
        return d > val1
    if filter is FilterType.LT:
        return d < val1
    if filter is FilterType.EQUAL:
        return d == val1
    if filter is FilterType.BETWEEN:
        return val1 < d < val2
    raise ValueError(f"unknown filter type {filter!r}")


class Bitmap:
    """A flag per point, with a running count of set flags."""

    def __init__(self, npoints: int):
        self.npoints = npoints
        self.nset = 0
        self._map = bytearray(npoints)

    def set(self, i: int, val) -> None:
        flag = bool(val)
        current = bool(self._map[i])
        if flag and not current:
            self.nset += 1
        elif current and not flag:
            self.nset -= 1
        self._map[i] = flag

    def get(self, i: int) -> bool:
        return bool(self._map[i])

    def apply(self, filter: FilterType, i: int, d: float, val1: float, val2: float | None = None) -> None:
        """Set flag ``i`` to whether ``d`` passes the filter."""
        if val2 is None:
            val2 = val1
        self.set(i, _matches(FilterType(filter), d, val1, val2))

    def __len__(self) -> int:
        return self.npoints

    def __iter__(self) -> Iterator[bool]:
        return (bool(flag) for flag in self._map)