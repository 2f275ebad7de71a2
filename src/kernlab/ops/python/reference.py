from __future__ import annotations

from typing import Iterable, MutableSequence, Sequence

import torch

from ...errors import (
    BufferSizeMismatch,
    InvalidGeometry,
    check_interior,
    check_radius,
)
from ..sorting import Sorter, full_sort

_PADDED_BORDERS = ("replicate", "reflect")
_INTERIOR_BORDERS = ("zero", "constant", "keep")


def _get_compute_dtype(tensor: torch.Tensor) -> torch.dtype:
    """Return the dtype the median is selected in for a given input tensor."""

    if tensor.dtype in (torch.bool, torch.uint8, torch.int8, torch.int16):
        return torch.int32
    if getattr(torch, "uint16", None) is not None and tensor.dtype == torch.uint16:
        return torch.int32
    if tensor.dtype in (torch.float16, torch.bfloat16):
        return torch.float32
    return tensor.dtype


def window_offsets(radius: int) -> list[tuple[int, int]]:
    """Row-major ``(dx, dy)`` offsets covering a ``(2r+1) x (2r+1)`` window."""

    return [
        (dx, dy)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
    ]


def window_median(
    x: int,
    y: int,
    samples: Sequence,
    width: int,
    height: int,
    radius: int,
    sort: Sorter = full_sort,
    buffer: MutableSequence | None = None,
    offsets: Iterable[tuple[int, int]] | None = None,
):
    """Median of the window centred on an interior pixel.

    This is the per-pixel body shared by every execution strategy: it only
    reads ``samples`` and returns the median, leaving the write to the caller.

    Args:
        x: Column of the centre pixel.
        y: Row of the centre pixel.
        samples: Flat row-major input samples of length ``width * height``.
        width: Image width.
        height: Image height.
        radius: Window radius ``r``.
        sort: Strategy with the ``sort(buffer, start, stop)`` interface.
        buffer: Optional reusable gather buffer of length ``(2r+1)^2``.
        offsets: Optional gather order; any permutation of
            :func:`window_offsets` gives the same result.

    Returns:
        The sample at sorted index ``(2r+1)^2 // 2``.

    Raises:
        InvalidGeometry: If ``(x, y)`` is outside the interior region, or if
            ``offsets`` is not a permutation of :func:`window_offsets`.
        BufferSizeMismatch: If ``buffer`` has the wrong length.
    """

    if not (radius <= x < width - radius and radius <= y < height - radius):
        raise InvalidGeometry(
            f"pixel ({x}, {y}) is outside the interior of a {width}x{height} "
            f"image for radius {radius}"
        )
    count = (2 * radius + 1) ** 2
    if buffer is None:
        buffer = [0] * count
    elif len(buffer) != count:
        raise BufferSizeMismatch(
            f"gather buffer holds {len(buffer)} slots but radius {radius} needs {count}"
        )

    if offsets is None:
        offsets = window_offsets(radius)
    else:
        offsets = list(offsets)
        if len(offsets) != count or set(offsets) != set(window_offsets(radius)):
            raise InvalidGeometry(
                f"window offsets must visit each of the {count} slots of a radius "
                f"{radius} window exactly once"
            )

    for slot, (dx, dy) in enumerate(offsets):
        buffer[slot] = samples[(y + dy) * width + (x + dx)]

    sort(buffer, 0, count)
    return buffer[count // 2]


def _interior_medians(x: torch.Tensor, radius: int) -> torch.Tensor:
    """Median of every full window of ``x`` with shape ``(N, H, W)``."""

    side = 2 * radius + 1
    patches = x.unfold(-2, side, 1).unfold(-2, side, 1)
    flat = patches.reshape(*patches.shape[:-2], side * side)
    return flat.sort(dim=-1).values[..., (side * side) // 2]


def _median_filter_interior(x: torch.Tensor, radius: int) -> torch.Tensor:
    """Filter ``(N, H, W)`` samples, leaving the border band at zero."""

    output = torch.zeros_like(x)
    height, width = x.shape[-2:]
    output[..., radius : height - radius, radius : width - radius] = (
        _interior_medians(x, radius)
    )
    return output


def apply_border(
    output: torch.Tensor,
    image: torch.Tensor,
    radius: int,
    border: str,
    fill_value: int | float = 0,
) -> torch.Tensor:
    """Overwrite the border band of ``output`` according to ``border``."""

    if border == "zero":
        return output
    if border not in ("constant", "keep"):
        raise ValueError(f"border mode {border!r} does not fill a border band.")
    height, width = output.shape[-2:]
    mask = torch.ones(height, width, dtype=torch.bool, device=output.device)
    mask[radius : height - radius, radius : width - radius] = False
    if border == "constant":
        output[..., mask] = fill_value
    else:
        output[..., mask] = image[..., mask].to(output.dtype)
    return output


def _padded_indices(
    size: int, radius: int, border: str, device: torch.device
) -> torch.Tensor:
    """Source index for each position of an axis padded by ``radius``."""

    index = torch.arange(-radius, size + radius, device=device)
    if border == "replicate":
        return index.clamp(0, size - 1)
    # reflect mirrors about the edge sample without repeating it
    index = index.abs()
    return torch.where(index > size - 1, 2 * (size - 1) - index, index)


def pad_for_border(x: torch.Tensor, radius: int, border: str) -> torch.Tensor:
    """Pad ``(N, H, W)`` samples by ``radius`` for the padded border policies."""

    height, width = x.shape[-2:]
    if border == "reflect" and radius >= min(height, width):
        raise InvalidGeometry(
            f"reflect padding needs radius < {min(height, width)}, got {radius}"
        )
    rows = _padded_indices(height, radius, border, x.device)
    cols = _padded_indices(width, radius, border, x.device)
    return x.index_select(-2, rows).index_select(-1, cols)


def validate_median_args(
    image: torch.Tensor, radius: int, border: str, out: torch.Tensor | None
) -> None:
    if image.dim() < 2:
        raise ValueError("image must have shape (H, W) or (..., H, W).")
    if border not in _INTERIOR_BORDERS and border not in _PADDED_BORDERS:
        raise ValueError(f"unknown border mode: {border}")
    height, width = image.shape[-2:]
    if border in _INTERIOR_BORDERS:
        check_interior(width, height, radius)
    else:
        check_radius(radius)
    if out is not None and out.numel() != image.numel():
        raise BufferSizeMismatch(
            f"out holds {out.numel()} elements but the {width}x{height} image "
            f"requires {image.numel()}"
        )


def median_filter(
    image: torch.Tensor,
    radius: int,
    border: str = "zero",
    fill_value: int | float = 0,
    out: torch.Tensor | None = None,
) -> torch.Tensor:
    """Reference windowed median filter implemented in pure PyTorch.

    Every interior pixel ``(x, y)`` in ``[r, W - r) x [r, H - r)`` receives
    the median of the ``(2r+1)^2`` input samples around it. Leading
    dimensions are treated as independent image planes.

    Args:
        image: Samples of shape ``(H, W)`` or ``(..., H, W)``. Narrow integer
            and half-precision dtypes are widened for selection and cast back.
        radius: Window radius ``r >= 1``.
        border: ``"zero"``, ``"constant"``, ``"keep"``, ``"replicate"`` or
            ``"reflect"``; see :class:`kernlab.config.MedianFilterConfig`.
        fill_value: Border value for ``border="constant"``.
        out: Optional output buffer with ``image.numel()`` elements; it is
            written in place and returned.

    Returns:
        Filtered tensor with the shape, dtype and device of ``image``.

    Raises:
        InvalidGeometry: If the radius is invalid or the interior is empty.
        BufferSizeMismatch: If ``out`` has the wrong number of elements.
    """

    validate_median_args(image, radius, border, out)
    height, width = image.shape[-2:]
    planes = image.reshape(-1, height, width).to(_get_compute_dtype(image))

    if border in _PADDED_BORDERS:
        padded = pad_for_border(planes, radius, border)
        result = _interior_medians(padded, radius)
    else:
        result = _median_filter_interior(planes, radius)
        result = apply_border(result, planes, radius, border, fill_value)

    result = result.to(image.dtype).reshape(image.shape)
    if out is not None:
        out.copy_(result.reshape(out.shape))
        return out
    return result


def vector_add(
    a: torch.Tensor,
    b: torch.Tensor,
    out: torch.Tensor | None = None,
) -> torch.Tensor:
    """Reference elementwise addition ``dst[i] = a[i] + b[i]``.

    Args:
        a: First operand.
        b: Second operand with the same shape as ``a``.
        out: Optional destination with ``a.numel()`` elements.

    Returns:
        Tensor holding the elementwise sum (``out`` when given).

    Raises:
        ValueError: If ``a`` and ``b`` differ in shape.
        BufferSizeMismatch: If ``out`` has the wrong number of elements.
    """

    if a.shape != b.shape:
        raise ValueError(f"operands must share a shape, got {tuple(a.shape)} and {tuple(b.shape)}")
    if out is None:
        return a + b
    if out.numel() != a.numel():
        raise BufferSizeMismatch(
            f"out holds {out.numel()} elements but the operands hold {a.numel()}"
        )
    out.copy_((a + b).reshape(out.shape))
    return out
