"""Pure PyTorch reference kernels."""

from .reference import median_filter, vector_add, window_median, window_offsets

__all__ = [
    "median_filter",
    "vector_add",
    "window_median",
    "window_offsets",
]
