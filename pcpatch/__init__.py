"""Point cloud schemas, per-dimension byte codecs, filter bitmaps and compression statistics."""

__version__ = "0.1.0"