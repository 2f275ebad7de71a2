"""CPU fused kernels.

C++ sources for the CPU backend, JIT-compiled on first use by
:func:`kernlab.ops._load_cpu_ops`. Parallelism comes from ``at::parallel_for``.
"""
