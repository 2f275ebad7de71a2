"""Execution strategies for per-pixel kernels.

A strategy calls ``kernel(x, y, *args)`` for every pixel of a half-open
:class:`Region` and returns only once all calls have finished. Kernels must
write disjoint outputs, so every strategy produces identical results.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, MutableSequence, Protocol, Sequence

from ..errors import check_buffer_size, check_interior
from ..ops.python.reference import window_median
from ..ops.sorting import Sorter, full_sort

logger = logging.getLogger(__name__)

PixelKernel = Callable[..., None]


class ExecutionCancelled(RuntimeError):
    """Raised when a run is cancelled before every pixel was processed."""


@dataclass(frozen=True)
class Region:
    """Half-open pixel range ``[x0, x1) x [y0, y1)``."""

    x0: int
    x1: int
    y0: int
    y1: int

    @classmethod
    def interior(cls, width: int, height: int, radius: int) -> "Region":
        return cls(radius, width - radius, radius, height - radius)

    @property
    def rows(self) -> range:
        return range(self.y0, self.y1)

    @property
    def columns(self) -> range:
        return range(self.x0, self.x1)

    def __len__(self) -> int:
        return max(self.x1 - self.x0, 0) * max(self.y1 - self.y0, 0)


class ExecutionStrategy(Protocol):
    def run(self, kernel: PixelKernel, region: Region, *args: Any) -> None: ...


def _sweep(kernel: PixelKernel, columns: range, rows: range, args) -> None:
    for y in rows:
        for x in columns:
            kernel(x, y, *args)


class SequentialStrategy:
    """Single-threaded row-major sweep."""

    def run(self, kernel: PixelKernel, region: Region, *args: Any) -> None:
        _sweep(kernel, region.columns, region.rows, args)


class ThreadPoolStrategy:
    """Fan rows of a region out to a thread pool.

    Args:
        workers: Pool size; defaults to ``os.cpu_count()``.
        rows_per_task: Rows handed to a worker per task.
    """

    def __init__(self, workers: int | None = None, rows_per_task: int = 1) -> None:
        if workers is not None and workers < 1:
            raise ValueError("workers must be >= 1.")
        if rows_per_task < 1:
            raise ValueError("rows_per_task must be >= 1.")
        self.workers = workers or os.cpu_count() or 1
        self.rows_per_task = rows_per_task
        self._lock = threading.Lock()
        self._active: set[threading.Event] = set()

    def cancel(self) -> None:
        """Abandon row chunks that have not started in every run in progress."""

        with self._lock:
            for event in self._active:
                event.set()

    @staticmethod
    def _run_rows(
        stop: threading.Event, kernel: PixelKernel, columns: range, rows: range, args
    ) -> bool:
        if stop.is_set():
            return False
        _sweep(kernel, columns, rows, args)
        return True

    def run(self, kernel: PixelKernel, region: Region, *args: Any) -> None:
        rows = region.rows
        chunks = [
            rows[start : start + self.rows_per_task]
            for start in range(0, len(rows), self.rows_per_task)
        ]
        logger.debug(
            "dispatching %d row chunks to %d workers", len(chunks), self.workers
        )
        stop = threading.Event()
        with self._lock:
            self._active.add(stop)
        try:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [
                    pool.submit(
                        self._run_rows, stop, kernel, region.columns, chunk, args
                    )
                    for chunk in chunks
                ]
                done, _ = wait(futures, return_when=FIRST_EXCEPTION)
                for future in done:
                    error = future.exception()
                    if error is not None:
                        stop.set()
                        raise error
        finally:
            with self._lock:
                self._active.discard(stop)
        if not all(future.result() for future in futures):
            raise ExecutionCancelled("execution cancelled before completion")


def get_strategy(name: str, workers: int | None = None) -> ExecutionStrategy:
    """Resolve ``"sequential"`` or ``"threads"`` to a strategy instance."""

    if name == "sequential":
        return SequentialStrategy()
    if name == "threads":
        return ThreadPoolStrategy(workers=workers)
    raise ValueError(f"unknown execution strategy: {name}")


class MedianKernel:
    """Per-pixel median body bound to one input and one output buffer.

    Each worker thread gathers into its own buffer of ``(2r+1)^2`` slots,
    allocated on first use and reused for every later pixel.

    Args:
        samples: Flat row-major input samples; read only.
        output: Flat output buffer of the same length; written per pixel.
        width: Image width.
        height: Image height.
        radius: Window radius.
        sort: Sort strategy with the ``sort(buffer, start, stop)`` interface.
    """

    def __init__(
        self,
        samples: Sequence,
        output: MutableSequence,
        width: int,
        height: int,
        radius: int,
        sort: Sorter = full_sort,
    ) -> None:
        check_interior(width, height, radius)
        check_buffer_size("samples", len(samples), width, height)
        check_buffer_size("output", len(output), width, height)
        self.samples = samples
        self.output = output
        self.width = width
        self.height = height
        self.radius = radius
        self.sort = sort
        self.count = (2 * radius + 1) ** 2
        self._local = threading.local()

    def _buffer(self) -> list:
        buffer = getattr(self._local, "buffer", None)
        if buffer is None:
            buffer = self._local.buffer = [0] * self.count
        return buffer

    @property
    def region(self) -> Region:
        return Region.interior(self.width, self.height, self.radius)

    def __call__(self, x: int, y: int) -> None:
        self.output[y * self.width + x] = window_median(
            x,
            y,
            self.samples,
            self.width,
            self.height,
            self.radius,
            sort=self.sort,
            buffer=self._buffer(),
        )


__all__ = [
    "ExecutionCancelled",
    "ExecutionStrategy",
    "MedianKernel",
    "Region",
    "SequentialStrategy",
    "ThreadPoolStrategy",
    "get_strategy",
]
