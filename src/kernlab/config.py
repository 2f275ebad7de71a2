from __future__ import annotations

import os
from dataclasses import dataclass


BORDER_MODES = ("zero", "constant", "keep", "replicate", "reflect")
STRATEGIES = ("accelerator", "sequential", "threads")
BACKENDS = ("cuda", "cpu", "python")

DISABLE_EXTENSIONS_ENV = "KERNLAB_DISABLE_EXTENSIONS"
VERBOSE_BUILD_ENV = "KERNLAB_VERBOSE_BUILD"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def extensions_enabled() -> bool:
    """Return ``False`` when JIT builds of the C++/CUDA kernels are disabled."""

    return not _env_flag(DISABLE_EXTENSIONS_ENV)


def verbose_build() -> bool:
    return _env_flag(VERBOSE_BUILD_ENV)


@dataclass
class MedianFilterConfig:
    """Configuration for :class:`kernlab.modules.WindowMedianFilter`.

    Attributes:
        radius: Window radius ``r``; the window side is ``2r + 1``.
        border: Policy for pixels outside the interior region. ``"zero"``
            leaves them at zero, ``"constant"`` writes ``fill_value``,
            ``"keep"`` copies the input, while ``"replicate"`` and
            ``"reflect"`` pad the input so every pixel is filtered.
        fill_value: Value written by the ``"constant"`` border policy.
        strategy: ``"accelerator"`` routes through the ops backends;
            ``"sequential"`` and ``"threads"`` sweep the per-pixel body.
        sorter: Sort strategy used by the per-pixel body.
        workers: Thread count for the ``"threads"`` strategy.
        backend: Restricts the ``"accelerator"`` strategy to one backend;
            ``"python"`` always runs the reference path. ``None`` routes by
            tensor device.
    """

    radius: int = 3
    border: str = "zero"
    fill_value: int | float = 0
    strategy: str = "accelerator"
    sorter: str = "full"
    workers: int | None = None
    backend: str | None = None

    def __post_init__(self) -> None:
        if self.border not in BORDER_MODES:
            raise ValueError(f"unknown border mode: {self.border}")
        if self.strategy not in STRATEGIES:
            raise ValueError(f"unknown execution strategy: {self.strategy}")
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be >= 1 when given.")
        if self.backend is not None and self.backend not in BACKENDS:
            raise ValueError(f"unknown backend: {self.backend}")
