# pcpatch

A pure-Python library, using only the standard library, for compressing point
cloud values one dimension at a time. The library describes points with a
schema of typed, scaled dimensions. It gathers all the values of one dimension
into a packed byte array and compresses that array with one of three codecs:

- run-length encoding,
- significant-bit removal, which drops the leading bits that every value shares,
- zlib deflate.

It also filters values with a per-point bitmap and computes min, max and
average. Statistics gathered over sampled data recommend a compression for each
dimension.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `pcpatch.schema` | `Schema`, `Dimension`, `Interpretation`, `PatchCompression`, `PointCloudError` |
| `pcpatch.bitmap` | `Bitmap` and `FilterType` (`GT`, `LT`, `EQUAL`, `BETWEEN`) |
| `pcpatch.codecs` | Byte-level codecs on packed little-endian arrays |
| `pcpatch.dimbytes` | `DimBytes`, `DimCompression`, `DoubleStat` |
| `pcpatch.dimstats` | `DimStats` and `DimStat` |

### `pcpatch.schema`

`Interpretation` is the storage type of a value: `INT8` through `UINT64`,
`FLOAT`, `DOUBLE`, or `UNKNOWN`. Each member has these members:

- `size`: its width in bytes.
- `read(data, offset)`: returns the little-endian value at `offset` as a float.
- `write(value)`: returns the encoded bytes. Integer types round half away from
  zero and clamp to their range.

Reading or writing `UNKNOWN` raises `PointCloudError`.

`Dimension` holds a name, an interpretation, a `scale` and an `offset`. Its
`scale_offset(value)` turns a stored value into a real-world value, and
`unscale_unoffset(value)` turns a real-world value back into a stored value.

`Schema(dims, pcid=0, srid=0, compression=PatchCompression.NONE)` lays the
dimensions out one after another. It sets each dimension's `position` and
`byteoffset` and the point `size`. It also finds `x_position` and `y_position`
from dimensions named X and Y. `dimension(index)` raises `IndexError` for an
index out of range. `dimension_by_name(name)` looks the name up without regard
to case and raises `KeyError` for an unknown name.

### `pcpatch.codecs`

Each function takes packed little-endian elements of `size` bytes. The size
must be 1, 2, 4 or 8 for the significant-bits codec.

- `rle_encode(data, size)` writes `<uint8 count><element>` entries and splits
  runs longer than 255. `rle_decode(data, size, npoints)` reverses it and
  checks the point count. `run_count` counts the runs. `rle_flip_endian`
  byte-swaps the stored values.
- `sigbits_encode(data, size)` writes a header of two words, the number of
  unique bits and the common value, then packs the unique bits of each value.
  `sigbits_decode(data, size, npoints)` reverses it. `sigbits_value_at(data,
  size, n)` reads one element straight from the encoded form. The related
  functions are `sigbits_count`, `sigbits_common(values, width)` and
  `sigbits_flip_endian`.
- `zlib_encode(data)` deflates at level 9. `zlib_decode(data, expected_size)`
  inflates to exactly `expected_size` bytes.

Malformed input raises `PointCloudError`.

### `pcpatch.dimbytes`

`DimBytes(data, npoints, interpretation, compression=DimCompression.NONE)`
holds one dimension's values for `npoints` points. Its methods return new
objects:

- `encode(compression)` and `decode()` change the compression.
- `minmax()` returns `(min, max, average)` of the raw, unscaled values.
- `bitmap(filter, val1, val2=None)` flags each value that passes the filter.
- `filter(bitmap, stats=None)` keeps the flagged values in the same
  compression. It updates a `DoubleStat` with the kept raw values if one is
  given.
- `value_bytes(n)` returns the bytes of value `n`.
- `serialize()` writes `<uint8 compression><int32 size><data>`.
  `DimBytes.deserialize(buf, dimension, npoints, flip_endian)` reads that form
  back and can byte-swap big-endian input.

`run_count()` and `sigbits_count()` report the figures that `DimStats` uses.

### `pcpatch.dimstats`

`DimStats(schema)` gathers totals over samples. `update(patch)` accepts any
object with `schema`, `npoints` and `bytes` attributes, where `bytes` holds one
`DimBytes` per dimension. After each update, every dimension's
`recommended_compression` is refreshed:

- `DOUBLE` dimensions get `ZLIB`.
- Other dimensions get `SIGBITS` when that beats 1.6:1, and `RLE` when that
  beats 4:1.

`to_string()` returns the totals as JSON text.

## Example

```python
import struct
from types import SimpleNamespace

from pcpatch.bitmap import FilterType
from pcpatch.dimbytes import DimBytes, DimCompression, DoubleStat
from pcpatch.dimstats import DimStats
from pcpatch.schema import Dimension, Interpretation, Schema

schema = Schema(
    [
        Dimension("X", Interpretation.INT32, scale=0.01),
        Dimension("Y", Interpretation.INT32, scale=0.01),
        Dimension("Intensity", Interpretation.UINT16),
    ],
    pcid=1,
)

intensity = DimBytes(struct.pack("<5H", 7, 7, 7, 9, 9), 5, Interpretation.UINT16)

rle = intensity.encode(DimCompression.RLE)
assert rle.data == bytes([3, 7, 0, 2, 9, 0])
assert rle.decode().data == intensity.data
assert rle.minmax() == (7.0, 9.0, 7.8)

flags = rle.bitmap(FilterType.GT, 8)
stats = DoubleStat()
kept = rle.filter(flags, stats)
assert kept.npoints == 2 and stats.min == 9.0

wire = rle.serialize()
back = DimBytes.deserialize(wire, schema.dimension_by_name("intensity"), 5)
assert back == rle

xs = DimBytes(struct.pack("<5i", 100, 101, 102, 103, 104), 5, Interpretation.INT32)
ys = DimBytes(struct.pack("<5i", 200, 200, 200, 200, 200), 5, Interpretation.INT32)
sample = SimpleNamespace(schema=schema, npoints=5, bytes=[xs, ys, intensity])

dimstats = DimStats(schema)
dimstats.update(sample)
print(dimstats.to_string())
```

## What this package does not do

The package works on single dimensions' byte arrays and has no patch or point
objects. It does not assemble values into patches and does not serialise whole
patches or points as WKB. It does not filter patches or read individual points
out of them. Callers must pack the values of each dimension themselves, for
example with `struct` or `Interpretation.write`, and keep a schema alongside
them.