"""Module namespace for kernlab filters."""

from .median import WindowMedianFilter

__all__ = [
    "WindowMedianFilter",
]
