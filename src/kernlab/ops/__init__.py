"""Ops façade with backend dispatch."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import torch

from ..config import BACKENDS, extensions_enabled, verbose_build
from ..errors import BufferSizeMismatch
from .cuda import MAX_RADIUS as CUDA_MAX_RADIUS
from .python import reference as reference_ops

try:
    from torch.utils.cpp_extension import load as _load_extension
except ImportError:  # pragma: no cover - torch utils missing
    _load_extension = None


logger = logging.getLogger(__name__)

_CPU_OPS: Any = None
_CPU_LOAD_ERROR: Optional[Exception] = None
_CUDA_OPS: Any = None
_CUDA_LOAD_ERROR: Optional[Exception] = None

# Dtypes the compiled kernels are instantiated for.
_KERNEL_DTYPES = (
    torch.uint8,
    torch.int8,
    torch.int16,
    torch.int32,
    torch.int64,
    torch.float32,
    torch.float64,
)


@dataclass(frozen=True)
class _BackendCandidate:
    name: str
    available: bool


def _cpu_sources() -> list[str]:
    root = Path(__file__).resolve().parent / "cpu"
    return [
        str(root / "bindings.cpp"),
        str(root / "median_filter.cpp"),
        str(root / "vector_add.cpp"),
    ]


def _cuda_sources() -> list[str]:
    root = Path(__file__).resolve().parent / "cuda"
    return [
        str(root / "bindings.cpp"),
        str(root / "median_filter.cu"),
        str(root / "vector_add.cu"),
    ]


def _load_cpu_ops() -> Optional[Any]:
    global _CPU_OPS, _CPU_LOAD_ERROR
    if _CPU_OPS is not None:
        return _CPU_OPS
    if _CPU_LOAD_ERROR is not None:
        return None
    if not extensions_enabled():
        _CPU_LOAD_ERROR = RuntimeError("extension builds disabled by environment")
        return None
    if _load_extension is None:
        _CPU_LOAD_ERROR = RuntimeError("torch.utils.cpp_extension.load unavailable")
        return None

    try:
        _CPU_OPS = _load_extension(
            name="kernlab_cpu_ops",
            sources=_cpu_sources(),
            extra_cflags=["-O3"],
            verbose=verbose_build(),
        )
        return _CPU_OPS
    except Exception as exc:  # pragma: no cover - build environment specific
        logger.debug("CPU extension build failed: %s", exc)
        _CPU_LOAD_ERROR = exc
        return None


def _load_cuda_ops() -> Optional[Any]:
    global _CUDA_OPS, _CUDA_LOAD_ERROR
    if _CUDA_OPS is not None:
        return _CUDA_OPS
    if _CUDA_LOAD_ERROR is not None:
        return None
    if not extensions_enabled():
        _CUDA_LOAD_ERROR = RuntimeError("extension builds disabled by environment")
        return None
    if _load_extension is None:
        _CUDA_LOAD_ERROR = RuntimeError("torch.utils.cpp_extension.load unavailable")
        return None
    if not torch.cuda.is_available():
        _CUDA_LOAD_ERROR = RuntimeError("CUDA is not available")
        return None

    try:
        _CUDA_OPS = _load_extension(
            name="kernlab_cuda_ops",
            sources=_cuda_sources(),
            extra_cflags=["-O3"],
            extra_cuda_cflags=["-O3"],
            verbose=verbose_build(),
        )
        return _CUDA_OPS
    except Exception as exc:  # pragma: no cover - build environment specific
        logger.debug("CUDA extension build failed: %s", exc)
        _CUDA_LOAD_ERROR = exc
        return None


def _should_use_cpu(*tensors: Optional[torch.Tensor]) -> bool:
    return all(t.device.type == "cpu" for t in tensors if isinstance(t, torch.Tensor))


def _should_use_cuda(*tensors: Optional[torch.Tensor]) -> bool:
    devices = [t.device.type for t in tensors if isinstance(t, torch.Tensor)]
    if not devices:
        return False
    if any(device == "cuda" for device in devices):
        return all(device == "cuda" for device in devices)
    return False


def _cpu_backend_status() -> _BackendCandidate:
    ops = _load_cpu_ops()
    return _BackendCandidate(name="cpu", available=ops is not None)


def _cuda_backend_status() -> _BackendCandidate:
    ops = _load_cuda_ops()
    return _BackendCandidate(name="cuda", available=ops is not None)


def _invoke_cpu(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except RuntimeError as exc:  # translate contract violations
        raise ValueError(str(exc)) from None


def _invoke_cuda(fn, *args, **kwargs):
    try:
        result = fn(*args, **kwargs)
    except RuntimeError as exc:
        raise ValueError(str(exc)) from None
    # Launches are asynchronous; callers observe a completed result.
    torch.cuda.synchronize(result.device)
    return result


# Largest gridDim.z; the CUDA median kernel maps one plane to one grid layer.
CUDA_MAX_PLANES = 65535


def _check_backend(backend: str | None) -> None:
    if backend is not None and backend not in BACKENDS:
        raise ValueError(f"unknown backend: {backend}")


def _allows(backend: str | None, name: str) -> bool:
    return backend is None or backend == name


def _launch_in_plane_chunks(fn, planes: torch.Tensor, radius: int, limit: int):
    if planes.shape[0] <= limit:
        return fn(planes, radius)
    return torch.cat([fn(chunk, radius) for chunk in planes.split(limit)])


def _median_kernel(image: torch.Tensor, radius: int, backend: str | None = None):
    """Return the compiled ``(planes, radius) -> planes`` kernel, if any."""

    if _should_use_cuda(image) and _allows(backend, "cuda"):
        ops = _load_cuda_ops()
        if ops is not None:
            if radius <= CUDA_MAX_RADIUS:

                def run(planes, r):
                    return _launch_in_plane_chunks(
                        lambda chunk, rr: _invoke_cuda(ops.median_filter, chunk, rr),
                        planes,
                        r,
                        CUDA_MAX_PLANES,
                    )

                return run
            warnings.warn(
                f"CUDA median kernel supports radius <= {CUDA_MAX_RADIUS}; "
                f"falling back to the reference path for radius {radius}",
                RuntimeWarning,
                stacklevel=3,
            )
    elif _should_use_cpu(image) and _allows(backend, "cpu"):
        ops = _load_cpu_ops()
        if ops is not None:
            return lambda planes, r: _invoke_cpu(ops.median_filter, planes, r)
    return None


def median_filter(
    image: torch.Tensor,
    radius: int,
    border: str = "zero",
    fill_value: int | float = 0,
    out: torch.Tensor | None = None,
    backend: str | None = None,
) -> torch.Tensor:
    _check_backend(backend)
    reference_ops.validate_median_args(image, radius, border, out)
    kernel = _median_kernel(image, radius, backend)
    if kernel is None:
        logger.debug("median_filter: reference path on %s", image.device)
        return reference_ops.median_filter(
            image, radius, border=border, fill_value=fill_value, out=out
        )

    height, width = image.shape[-2:]
    planes = image.reshape(-1, height, width).to(
        reference_ops._get_compute_dtype(image)
    )
    if border in ("replicate", "reflect"):
        padded = reference_ops.pad_for_border(planes, radius, border)
        result = kernel(padded, radius)[..., radius:-radius, radius:-radius]
    else:
        result = kernel(planes, radius)
        result = reference_ops.apply_border(result, planes, radius, border, fill_value)

    result = result.to(image.dtype).reshape(image.shape)
    if out is not None:
        out.copy_(result.reshape(out.shape))
        return out
    return result


def vector_add(
    a: torch.Tensor,
    b: torch.Tensor,
    out: torch.Tensor | None = None,
    backend: str | None = None,
) -> torch.Tensor:
    _check_backend(backend)
    if a.shape != b.shape:
        raise ValueError(
            f"operands must share a shape, got {tuple(a.shape)} and {tuple(b.shape)}"
        )
    if out is not None and out.numel() != a.numel():
        raise BufferSizeMismatch(
            f"out holds {out.numel()} elements but the operands hold {a.numel()}"
        )
    result = None
    if a.dtype == b.dtype and a.dtype in _KERNEL_DTYPES:
        if _should_use_cuda(a, b) and _allows(backend, "cuda"):
            ops = _load_cuda_ops()
            if ops is not None:
                result = _invoke_cuda(ops.vector_add, a, b)
        elif _should_use_cpu(a, b) and _allows(backend, "cpu"):
            ops = _load_cpu_ops()
            if ops is not None:
                result = _invoke_cpu(ops.vector_add, a, b)
    if result is None:
        return reference_ops.vector_add(a, b, out=out)
    if out is not None:
        out.copy_(result.reshape(out.shape))
        return out
    return result


__all__ = [
    "median_filter",
    "vector_add",
    "_cpu_backend_status",
    "_cuda_backend_status",
]


_BACKEND_ARG_DOC = """
        backend: Optional ``"cuda"``, ``"cpu"`` or ``"python"`` restricting
            dispatch to one backend; the reference runs when it cannot serve
            the call."""


def _with_backend_arg(doc: str | None) -> str | None:
    if doc is None:  # stripped under -OO
        return doc
    return doc.replace("\n\n    Returns:", _BACKEND_ARG_DOC + "\n\n    Returns:", 1)


median_filter.__doc__ = _with_backend_arg(reference_ops.median_filter.__doc__)
vector_add.__doc__ = _with_backend_arg(reference_ops.vector_add.__doc__)
