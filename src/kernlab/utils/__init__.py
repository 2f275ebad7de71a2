"""Utility namespace for backend dispatch and per-pixel execution strategies."""

from .dispatch import (
    get_available_backend,
    has_cpu_kernels,
    has_cuda_kernels,
    has_python_reference,
)
from .execution import (
    ExecutionCancelled,
    MedianKernel,
    Region,
    SequentialStrategy,
    ThreadPoolStrategy,
    get_strategy,
)

__all__ = [
    "ExecutionCancelled",
    "MedianKernel",
    "Region",
    "SequentialStrategy",
    "ThreadPoolStrategy",
    "get_available_backend",
    "get_strategy",
    "has_cpu_kernels",
    "has_cuda_kernels",
    "has_python_reference",
]
