"""In-place sort strategies sharing the ``sort(buffer, start, stop)`` interface.

Each strategy sorts ``buffer[start:stop]`` ascending and leaves the rest of
``buffer`` untouched. Buffers are mutable sequences (lists, or 1-D tensors
when callers accept the per-element overhead).
"""

from __future__ import annotations

from typing import Callable, MutableSequence

Sorter = Callable[[MutableSequence, int, int], None]


def full_sort(buffer: MutableSequence, start: int, stop: int) -> None:
    """Comparison sort of the half-open range ``[start, stop)``."""

    if start == 0 and stop == len(buffer) and isinstance(buffer, list):
        buffer.sort()
    else:
        buffer[start:stop] = sorted(buffer[start:stop])


def insertion_sort(buffer: MutableSequence, start: int, stop: int) -> None:
    for i in range(start + 1, stop):
        value = buffer[i]
        j = i - 1
        while j >= start and buffer[j] > value:
            buffer[j + 1] = buffer[j]
            j -= 1
        buffer[j + 1] = value


def _compare_swap(buffer: MutableSequence, i: int, j: int, ascending: bool) -> None:
    if (buffer[i] > buffer[j]) == ascending:
        buffer[i], buffer[j] = buffer[j], buffer[i]


def _greatest_power_of_two_below(n: int) -> int:
    k = 1
    while k < n:
        k <<= 1
    return k >> 1


def _bitonic_merge(buffer: MutableSequence, lo: int, n: int, ascending: bool) -> None:
    if n <= 1:
        return
    m = _greatest_power_of_two_below(n)
    for i in range(lo, lo + n - m):
        _compare_swap(buffer, i, i + m, ascending)
    _bitonic_merge(buffer, lo, m, ascending)
    _bitonic_merge(buffer, lo + m, n - m, ascending)


def _bitonic(buffer: MutableSequence, lo: int, n: int, ascending: bool) -> None:
    if n <= 1:
        return
    m = n // 2
    _bitonic(buffer, lo, m, not ascending)
    _bitonic(buffer, lo + m, n - m, ascending)
    _bitonic_merge(buffer, lo, n, ascending)


def bitonic_sort(buffer: MutableSequence, start: int, stop: int) -> None:
    """Bitonic sorting network generalised to arbitrary lengths.

    The compare-exchange sequence depends only on ``stop - start``, which is
    what makes the same network usable per thread in the CUDA kernel.
    """

    _bitonic(buffer, start, stop - start, True)


_SORTERS: dict[str, Sorter] = {
    "full": full_sort,
    "insertion": insertion_sort,
    "bitonic": bitonic_sort,
}


def available_sorters() -> tuple[str, ...]:
    return tuple(_SORTERS)


def get_sorter(name: str | Sorter) -> Sorter:
    """Resolve a sort strategy by name; callables are returned unchanged.

    Args:
        name: One of ``"full"``, ``"insertion"`` or ``"bitonic"``, or a
            callable with the ``sort(buffer, start, stop)`` signature.

    Returns:
        The sort callable.

    Raises:
        ValueError: If ``name`` is not a known strategy.
    """

    if callable(name):
        return name
    try:
        return _SORTERS[name]
    except KeyError:
        raise ValueError(f"unknown sort strategy: {name}") from None


__all__ = [
    "Sorter",
    "available_sorters",
    "bitonic_sort",
    "full_sort",
    "get_sorter",
    "insertion_sort",
]
