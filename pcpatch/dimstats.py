"""Running statistics that pick a compression for each dimension."""

from __future__ import annotations

from dataclasses import dataclass, field

from .dimbytes import DimCompression
from .schema import Interpretation, Schema


@dataclass
class DimStat:
    """Accumulated figures for one dimension."""

    total_runs: int = 0
    total_commonbits: int = 0
    recommended_compression: DimCompression = DimCompression.NONE


@dataclass(init=False)
class DimStats:
    """Per-dimension statistics gathered over a sample of patches."""

    ndims: int
    total_points: int
    total_patches: int
    stats: list[DimStat] = field(default_factory=list)

    def __init__(self, schema: Schema):
        self.schema = schema
        self.ndims = schema.ndims
        self.total_points = 0
        self.total_patches = 0
        self.stats = [DimStat() for _ in range(self.ndims)]

    def update(self, patch) -> None:
        """Fold a dimensional patch into the totals and refresh recommendations.

        ``patch`` needs ``schema``, ``npoints`` and ``bytes``, a list holding
        one uncompressed or compressed byte array per dimension.
        """
        schema = patch.schema
        self.total_points += patch.npoints
        self.total_patches += 1

        for stat, pcb in zip(self.stats, patch.bytes):
            stat.total_runs += pcb.run_count()
            stat.total_commonbits += pcb.sigbits_count()

        for stat, dim in zip(self.stats, schema.dims):
            size = dim.size
            raw_size = self.total_points * size
            rle_size = stat.total_runs * (size + 1)
            avg_commonbits = stat.total_commonbits // self.total_patches
            avg_uniquebits = 8 * size - avg_commonbits
            sigbits_size = (
                self.total_patches * 2 * size
                + self.total_points * avg_uniquebits / 8
            )
            stat.recommended_compression = DimCompression.ZLIB
            if dim.interpretation is not Interpretation.DOUBLE:
                if sigbits_size and raw_size / sigbits_size > 1.6:
                    stat.recommended_compression = DimCompression.SIGBITS
                if rle_size and raw_size / rle_size > 4.0:
                    stat.recommended_compression = DimCompression.RLE

    def to_string(self) -> str:
        """JSON text describing the totals and each dimension's figures."""
        dims = ",".join(
            '{"total_runs":%d,"total_commonbits":%d,"recommended_compression":%d}'
            % (s.total_runs, s.total_commonbits, int(s.recommended_compression))
            for s in self.stats
        )
        return '{"ndims":%d,"total_points":%d,"total_patches":%d,"dims":[%s]}' % (
            self.ndims,
            self.total_points,
            self.total_patches,
            dims,
        )