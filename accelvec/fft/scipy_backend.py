"""SciPy transform backend - the default CPU implementation.

Uses scipy.fft, which keeps single precision and can overwrite its input.
scipy.fft plans internally, so the plans handed out by the pool only carry
the shape.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from .base import FFTPlan, PlanKey, TransformBackend

# Try to import scipy.fft
_scipy_fft: Any | None = None
SCIPY_FFT_AVAILABLE = False

try:
    import scipy.fft

    _scipy_fft = scipy.fft
    SCIPY_FFT_AVAILABLE = True
except ImportError:
    pass


class ScipyTransformBackend(TransformBackend):
    """Transform backend using scipy.fft.

    Args:
        workers: Worker threads passed to scipy.fft (None for scipy's default)
    """

    def __init__(self, workers: int | None = None, **_: Any):
        if not SCIPY_FFT_AVAILABLE or _scipy_fft is None:
            raise ImportError("scipy.fft not available. Install with: pip install scipy")
        self._fft = _scipy_fft
        self.workers = workers

    def create_plan(self, key: PlanKey) -> FFTPlan:
        return FFTPlan(key=key, backend=self.name)

    def transform(self, plan: FFTPlan, buffer: Any, inverse: bool) -> None:
        self._check_buffer(plan, buffer)
        data = buffer.view(np.complex64).reshape(plan.key.shape)
        if inverse:
            # norm="forward" puts the 1/N on the forward side: inverse stays unscaled
            result = self._fft.ifftn(data, norm="forward", overwrite_x=True, workers=self.workers)
        else:
            result = self._fft.fftn(data, norm="backward", overwrite_x=True, workers=self.workers)
        data[...] = result

    @property
    def name(self) -> str:
        return "scipy"


class NumpyTransformBackend(TransformBackend):
    """Transform backend using numpy.fft (double precision internally)."""

    def __init__(self, **_: Any):
        pass

    def create_plan(self, key: PlanKey) -> FFTPlan:
        return FFTPlan(key=key, backend=self.name)

    def transform(self, plan: FFTPlan, buffer: Any, inverse: bool) -> None:
        self._check_buffer(plan, buffer)
        data = buffer.view(np.complex64).reshape(plan.key.shape)
        if inverse:
            result = np.fft.ifftn(data, norm="forward")
        else:
            result = np.fft.fftn(data)
        data[...] = result.astype(np.complex64)

    @property
    def name(self) -> str:
        return "numpy"


def is_available() -> bool:
    """Check if the scipy backend is available."""
    return SCIPY_FFT_AVAILABLE
