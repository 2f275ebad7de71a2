"""GPU-offloadable numeric kernels: vector addition and windowed median filtering."""

from .config import MedianFilterConfig
from .errors import BufferSizeMismatch, InvalidGeometry
from .image import Image
from .modules import WindowMedianFilter
from .ops import median_filter, vector_add

__version__ = "0.1.0"

__all__ = [
    "BufferSizeMismatch",
    "Image",
    "InvalidGeometry",
    "MedianFilterConfig",
    "WindowMedianFilter",
    "median_filter",
    "vector_add",
]
