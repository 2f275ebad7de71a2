#!/usr/bin/env python3
"""Add two vectors on the best available backend and verify the result."""

from __future__ import annotations

import argparse
import logging
import sys

import torch

import kernlab.ops as ops
from kernlab.utils import get_available_backend
from kernlab.utils.dispatch import backend_device

logger = logging.getLogger("vector_add_demo")

EXIT_MISMATCH = 6


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--length", type=int, default=1 << 20)
    parser.add_argument("--backend", choices=("cuda", "cpu", "python"), default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(message)s")

    backend = get_available_backend(args.backend)
    device = backend_device(backend)
    logger.info("running vector_add on backend=%s device=%s", backend, device)

    a = torch.arange(args.length, dtype=torch.float32, device=device)
    b = torch.ones(args.length, dtype=torch.float32, device=device)
    dst = ops.vector_add(a, b, backend=backend)

    expected = a + 1.0
    bad = (dst != expected).nonzero()
    if bad.numel():
        index = int(bad[0].item())
        logger.error(
            "ERROR at %d -- %s != %s", index, dst[index].item(), expected[index].item()
        )
        return EXIT_MISMATCH

    print("OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
