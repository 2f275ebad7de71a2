"""CUDA fused kernels.

CUDA sources for the GPU backend, JIT-compiled on first use by
:func:`kernlab.ops._load_cuda_ops`. The median kernel sorts each window with a
per-thread bitonic network and supports radii up to ``MAX_RADIUS``.
"""

MAX_RADIUS = 7
