#!/usr/bin/env python3
"""Denoise a synthetic salt-and-pepper image with the windowed median filter."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace

import torch

from kernlab import MedianFilterConfig, WindowMedianFilter
from kernlab.utils import get_available_backend
from kernlab.utils.dispatch import backend_device

logger = logging.getLogger("denoise_demo")


def _gradient_image(height: int, width: int) -> torch.Tensor:
    ys = torch.arange(height, dtype=torch.int32).view(-1, 1)
    xs = torch.arange(width, dtype=torch.int32).view(1, -1)
    return ((ys * 37 + xs * 11) % 4096).to(torch.int32)


def _add_impulse_noise(image: torch.Tensor, amount: float, seed: int) -> torch.Tensor:
    generator = torch.Generator().manual_seed(seed)
    noise = torch.rand(image.shape, generator=generator)
    noisy = image.clone()
    noisy[noise < amount / 2] = 0
    noisy[noise > 1 - amount / 2] = 65535
    return noisy


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--height", type=int, default=1024)
    parser.add_argument("--width", type=int, default=1024)
    parser.add_argument("--radius", type=int, default=3)
    parser.add_argument("--amount", type=float, default=0.1)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument(
        "--strategy", choices=("accelerator", "sequential", "threads"), default="accelerator"
    )
    parser.add_argument(
        "--border",
        choices=("zero", "constant", "keep", "replicate", "reflect"),
        default="zero",
    )
    parser.add_argument("--backend", choices=("cuda", "cpu", "python"), default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(message)s")

    config = MedianFilterConfig(
        radius=args.radius, border=args.border, strategy=args.strategy
    )
    device = "cpu"
    if config.strategy == "accelerator":
        backend = get_available_backend(args.backend)
        config = replace(config, backend=backend)
        device = backend_device(backend)

    clean = _gradient_image(args.height, args.width)
    noisy = _add_impulse_noise(clean, args.amount, args.seed).to(device)
    denoiser = WindowMedianFilter.from_config(config)

    start = time.perf_counter()
    denoised = denoiser(noisy).cpu()
    elapsed = time.perf_counter() - start
    logger.info("%s %s time: %.2f s", config.strategy, device, elapsed)

    r = config.radius
    interior = (slice(r, args.height - r), slice(r, args.width - r))
    before = (noisy.cpu()[interior] != clean[interior]).float().mean().item()
    after = (denoised[interior] != clean[interior]).float().mean().item()
    logger.info("corrupted interior pixels: %.2f%% -> %.2f%%", before * 100, after * 100)
    return 0


if __name__ == "__main__":
    sys.exit(main())
