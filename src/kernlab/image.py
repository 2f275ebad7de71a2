from __future__ import annotations

from dataclasses import dataclass

import torch

from .errors import InvalidGeometry, check_buffer_size


@dataclass(frozen=True)
class Image:
    """Grayscale image stored as a flat row-major sample buffer.

    Attributes:
        width: Number of columns.
        height: Number of rows.
        samples: 1-D tensor of ``width * height`` samples; pixel ``(x, y)``
            lives at index ``y * width + x``.
    """

    width: int
    height: int
    samples: torch.Tensor

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidGeometry(
                f"image dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.samples.dim() != 1:
            raise ValueError("samples must be a 1-D tensor.")
        check_buffer_size("samples", self.samples.numel(), self.width, self.height)

    @classmethod
    def from_tensor(cls, tensor: torch.Tensor) -> "Image":
        if tensor.dim() != 2:
            raise ValueError("expected a (H, W) tensor.")
        height, width = tensor.shape
        return cls(width=width, height=height, samples=tensor.reshape(-1).clone())

    @classmethod
    def zeros(cls, width: int, height: int, dtype: torch.dtype = torch.int32) -> "Image":
        return cls(width, height, torch.zeros(width * height, dtype=dtype))

    def index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height}")
        return y * self.width + x

    def __getitem__(self, xy: tuple[int, int]):
        x, y = xy
        return self.samples[self.index(x, y)].item()

    def to_tensor(self) -> torch.Tensor:
        """Return a ``(height, width)`` view of the samples."""

        return self.samples.view(self.height, self.width)

    @property
    def dtype(self) -> torch.dtype:
        return self.samples.dtype
