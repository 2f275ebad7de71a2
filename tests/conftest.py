import sys
from pathlib import Path

import pytest
import torch


def pytest_configure(config):
    # Ensure src/ is importable without installing the package
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


@pytest.fixture
def noisy_image():
    """A 13x11 int32 image with impulse noise on a smooth ramp."""

    generator = torch.Generator().manual_seed(0)
    ys = torch.arange(13, dtype=torch.int32).view(-1, 1)
    xs = torch.arange(11, dtype=torch.int32).view(1, -1)
    image = ys * 20 + xs * 3
    noise = torch.rand(image.shape, generator=generator)
    image[noise < 0.1] = 0
    image[noise > 0.9] = 65535
    return image
