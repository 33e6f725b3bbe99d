"""cuFFT transform backend via CuPy - NVIDIA CUDA GPU acceleration.

Transforms device buffers in place. Each plan wraps a cuFFT C2C plan built by
cupyx for one shape; a cuFFT plan serves both directions.

Install: pip install cupy-cuda12x (adjust for your CUDA version)
Requires: NVIDIA GPU with CUDA support
"""

from __future__ import annotations

import logging
from typing import Any

from accelvec.errors import ResourceError

from .base import FFTPlan, PlanKey, TransformBackend

logger = logging.getLogger(__name__)

# Try to import CuPy
_cp: Any | None = None
_cufft: Any | None = None
CUPY_AVAILABLE = False

try:
    import cupy as cp
    import cupyx.scipy.fft as cufft

    _cp = cp
    _cufft = cufft
    CUPY_AVAILABLE = True
except ImportError:
    pass


class CuFFTTransformBackend(TransformBackend):
    """cuFFT transform backend for buffers in CUDA memory."""

    memory = "cuda"

    def __init__(self, **_: Any):
        if not CUPY_AVAILABLE or _cp is None or _cufft is None:
            raise ImportError(
                "CuPy not available. Install with: pip install cupy-cuda12x\n"
                "Requires NVIDIA GPU with CUDA support"
            )
        try:
            device_count = _cp.cuda.runtime.getDeviceCount()
        except Exception as e:
            raise ImportError(f"CUDA runtime unusable: {e}") from e
        if device_count == 0:
            raise ImportError("No CUDA device present")
        self._cp = _cp
        self._cufft = _cufft
        logger.info("cuFFT backend initialized")

    def create_plan(self, key: PlanKey) -> FFTPlan:
        axes = tuple(range(-key.dims, 0))
        try:
            template = self._cp.empty(key.shape, dtype=self._cp.complex64)
            handle = self._cufft.get_fft_plan(template, axes=axes, value_type="C2C")
        except self._cp.cuda.memory.OutOfMemoryError as e:
            raise ResourceError(f"No device memory for cuFFT plan {key}") from e
        return FFTPlan(key=key, backend=self.name, handle=handle)

    def transform(self, plan: FFTPlan, buffer: Any, inverse: bool) -> None:
        self._check_buffer(plan, buffer)
        data = buffer.view(self._cp.complex64).reshape(plan.key.shape)
        axes = tuple(range(-plan.key.dims, 0))
        if inverse:
            result = self._cufft.ifftn(
                data, axes=axes, norm="forward", overwrite_x=True, plan=plan.handle
            )
        else:
            result = self._cufft.fftn(
                data, axes=axes, norm="backward", overwrite_x=True, plan=plan.handle
            )
        if result is not data:
            data[...] = result

    @property
    def name(self) -> str:
        return "cufft"


def is_available() -> bool:
    """Check if the cuFFT backend is available."""
    return CUPY_AVAILABLE
