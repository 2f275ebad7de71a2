"""Contract errors raised by the filter and kernel entry points."""

from __future__ import annotations


class InvalidGeometry(ValueError):
    """Radius or image dimensions leave no valid interior region."""


class BufferSizeMismatch(ValueError):
    """A sample or output buffer does not hold ``width * height`` elements."""


def check_radius(radius: int) -> None:
    if not isinstance(radius, int) or isinstance(radius, bool):
        raise InvalidGeometry(f"radius must be an int, got {type(radius).__name__}")
    if radius < 1:
        raise InvalidGeometry(f"radius must be >= 1, got {radius}")


def check_interior(width: int, height: int, radius: int) -> None:
    """Raise ``InvalidGeometry`` when the interior region would be empty."""

    check_radius(radius)
    side = 2 * radius
    if width <= side or height <= side:
        raise InvalidGeometry(
            f"image of size {width}x{height} has no interior for radius {radius}; "
            f"both dimensions must exceed {side}"
        )


def check_buffer_size(name: str, numel: int, width: int, height: int) -> None:
    expected = width * height
    if numel != expected:
        raise BufferSizeMismatch(
            f"{name} holds {numel} elements but the {width}x{height} image "
            f"requires {expected}"
        )
