"""Pluggable FFT transforms with pooled, shape-keyed plans.

Transform backends:
- fftw: SIMD-optimized CPU via pyFFTW (expensive plans, fast execution)
- scipy: Default CPU implementation
- numpy: Last-resort CPU implementation (always available)
- cufft: NVIDIA CUDA GPU via CuPy, for buffers in device memory

Usage:
    from accelvec.fft import PlanKey, PlanPool, resolve_backend

    pool = PlanPool(resolve_backend("auto"))
    with pool.borrow(PlanKey.two_d(256, 256)) as plan:
        pool.backend.transform(plan, buffer, inverse=False)
"""

from .base import FFTPlan, PlanKey, TransformBackend
from .pool import PlanPool, PoolStats
from .registry import available_backends, resolve_backend
from .scipy_backend import NumpyTransformBackend, ScipyTransformBackend

__all__ = [
    "FFTPlan",
    "NumpyTransformBackend",
    "PlanKey",
    "PlanPool",
    "PoolStats",
    "ScipyTransformBackend",
    "TransformBackend",
    "available_backends",
    "resolve_backend",
]
