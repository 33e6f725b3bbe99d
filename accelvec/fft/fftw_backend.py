"""pyFFTW transform backend - SIMD-optimized CPU FFT.

Uses FFTW (Fastest Fourier Transform in the West) via pyFFTW bindings.
Planning is expensive (FFTW_MEASURE times candidate algorithms), which is
exactly what the plan pool amortizes: each plan owns aligned work arrays and
a forward/backward FFTW object pair for one shape.

Install: pip install pyfftw
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from accelvec.errors import ResourceError

from .base import FFTPlan, PlanKey, TransformBackend

logger = logging.getLogger(__name__)

# Try to import pyFFTW
_pyfftw: Any | None = None
PYFFTW_AVAILABLE = False

try:
    import pyfftw

    _pyfftw = pyfftw
    PYFFTW_AVAILABLE = True
except ImportError:
    pass


@dataclass
class _FFTWHandle:
    work_in: Any
    work_out: Any
    forward: Any
    backward: Any


class FFTWTransformBackend(TransformBackend):
    """FFTW-based transform backend with pre-planned operations.

    Args:
        threads: Number of threads per transform
        planner_effort: FFTW planner flag (FFTW_ESTIMATE, FFTW_MEASURE, ...)
    """

    def __init__(self, threads: int = 1, planner_effort: str = "FFTW_MEASURE", **_: Any):
        if not PYFFTW_AVAILABLE or _pyfftw is None:
            raise ImportError("pyFFTW not available. Install with: pip install pyfftw")
        self._pyfftw = _pyfftw
        self.threads = threads
        self.planner_effort = planner_effort
        logger.info(f"FFTW backend initialized (threads={threads}, effort={planner_effort})")

    def create_plan(self, key: PlanKey) -> FFTPlan:
        axes = tuple(range(-key.dims, 0))
        try:
            work_in = self._pyfftw.empty_aligned(key.shape, dtype="complex64")
            work_out = self._pyfftw.empty_aligned(key.shape, dtype="complex64")
            forward = self._pyfftw.FFTW(
                work_in,
                work_out,
                axes=axes,
                direction="FFTW_FORWARD",
                flags=(self.planner_effort,),
                threads=self.threads,
            )
            backward = self._pyfftw.FFTW(
                work_in,
                work_out,
                axes=axes,
                direction="FFTW_BACKWARD",
                flags=(self.planner_effort,),
                threads=self.threads,
            )
        except MemoryError as e:
            raise ResourceError(f"No memory for FFTW plan {key}") from e
        return FFTPlan(
            key=key,
            backend=self.name,
            handle=_FFTWHandle(work_in, work_out, forward, backward),
        )

    def transform(self, plan: FFTPlan, buffer: Any, inverse: bool) -> None:
        self._check_buffer(plan, buffer)
        handle: _FFTWHandle = plan.handle
        data = buffer.view(np.complex64).reshape(plan.key.shape)
        handle.work_in[...] = data
        # execute() never normalizes, unlike FFTW.__call__
        (handle.backward if inverse else handle.forward).execute()
        data[...] = handle.work_out

    @property
    def name(self) -> str:
        return "fftw"


def is_available() -> bool:
    """Check if FFTW backend is available."""
    return PYFFTW_AVAILABLE
