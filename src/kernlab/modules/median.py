from __future__ import annotations

import torch
from torch import nn

from .. import ops
from ..config import MedianFilterConfig
from ..image import Image
from ..ops.python import reference as reference_ops
from ..ops.sorting import get_sorter
from ..utils.execution import MedianKernel, get_strategy


class WindowMedianFilter(nn.Module):
    """Windowed median filter with a pluggable execution strategy.

    Every interior pixel is replaced by the median of its ``(2r+1)^2``
    neighbourhood. The same filter body runs under each strategy and the
    output is identical whichever one is selected.

    Args:
        radius: Window radius ``r >= 1``.
        border: Border policy (``"zero"``, ``"constant"``, ``"keep"``,
            ``"replicate"`` or ``"reflect"``).
        fill_value: Border value for ``border="constant"``.
        strategy: ``"accelerator"`` dispatches to the CUDA/CPU/reference ops
            by tensor device; ``"sequential"`` and ``"threads"`` sweep the
            per-pixel body on the host.
        sorter: Sort strategy for the host sweeps (``"full"``,
            ``"insertion"`` or ``"bitonic"``).
        workers: Thread count for ``strategy="threads"``.
        backend: Optional backend for ``strategy="accelerator"``
            (``"cuda"``, ``"cpu"`` or ``"python"``).
    """

    def __init__(
        self,
        radius: int = 3,
        border: str = "zero",
        fill_value: int | float = 0,
        strategy: str = "accelerator",
        sorter: str = "full",
        workers: int | None = None,
        backend: str | None = None,
    ) -> None:
        super().__init__()
        config = MedianFilterConfig(
            radius=radius,
            border=border,
            fill_value=fill_value,
            strategy=strategy,
            sorter=sorter,
            workers=workers,
            backend=backend,
        )
        self.radius = config.radius
        self.border = config.border
        self.fill_value = config.fill_value
        self.strategy = config.strategy
        self.sort = get_sorter(config.sorter)
        self.workers = config.workers
        self.backend = config.backend
        self._executor = (
            None
            if config.strategy == "accelerator"
            else get_strategy(config.strategy, workers=config.workers)
        )

    @classmethod
    def from_config(cls, config: MedianFilterConfig) -> "WindowMedianFilter":
        return cls(
            radius=config.radius,
            border=config.border,
            fill_value=config.fill_value,
            strategy=config.strategy,
            sorter=config.sorter,
            workers=config.workers,
            backend=config.backend,
        )

    def extra_repr(self) -> str:
        return (
            f"radius={self.radius}, border={self.border!r}, "
            f"strategy={self.strategy!r}"
        )

    def _sweep(self, x: torch.Tensor) -> torch.Tensor:
        radius = self.radius
        height, width = x.shape[-2:]
        planes = x.reshape(-1, height, width).to(reference_ops._get_compute_dtype(x))
        padded = self.border in ("replicate", "reflect")
        source = (
            reference_ops.pad_for_border(planes, radius, self.border)
            if padded
            else planes
        )

        outputs = []
        for plane in source.cpu():
            plane_height, plane_width = plane.shape
            output = [0] * (plane_height * plane_width)
            kernel = MedianKernel(
                plane.reshape(-1).tolist(),
                output,
                plane_width,
                plane_height,
                radius,
                sort=self.sort,
            )
            self._executor.run(kernel, kernel.region)
            outputs.append(
                torch.tensor(output, dtype=plane.dtype).view(plane_height, plane_width)
            )
        if not outputs:
            return torch.zeros_like(x)

        result = torch.stack(outputs).to(planes.device)
        if padded:
            result = result[..., radius:-radius, radius:-radius]
        else:
            result = reference_ops.apply_border(
                result, planes, radius, self.border, self.fill_value
            )
        return result.to(x.dtype).reshape(x.shape)

    def forward(self, image):
        """Filter an image.

        Args:
            image: ``(H, W)`` / ``(..., H, W)`` tensor or an :class:`Image`.

        Returns:
            The filtered image, of the same kind, shape and dtype as the input.

        Raises:
            InvalidGeometry: If the interior region is empty for ``radius``.
        """

        if isinstance(image, Image):
            return Image.from_tensor(self.forward(image.to_tensor()))

        if self._executor is None:
            return ops.median_filter(
                image,
                self.radius,
                border=self.border,
                fill_value=self.fill_value,
                backend=self.backend,
            )
        reference_ops.validate_median_args(image, self.radius, self.border, None)
        return self._sweep(image)
