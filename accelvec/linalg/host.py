"""Host backend: vectors held entirely in process memory.

This is the reference implementation of the vector contract and the target
of the portable fallback path. It is also the process-wide default backend,
so callers that never configure an accelerator still work.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from accelvec.errors import PlacementError, ResourceError, SizeMismatchError
from accelvec.fft.base import PlanKey
from accelvec.fft.pool import PlanPool
from accelvec.fft.registry import HOST_CANDIDATES, resolve_backend
from accelvec.typing import NDArrayFloat

from .base import Backend, ComplexVector, RealVector, validate_size
from .factory import VectorFactory
from .vec2d import Complex2DMixin

logger = logging.getLogger(__name__)


def _zeros(length: int) -> NDArrayFloat:
    try:
        return np.zeros(length, dtype=np.float32)
    except MemoryError as e:
        raise ResourceError(f"No memory for allocating {length}-float host vector") from e


class HostRealVector(RealVector):
    backend = Backend.HOST

    def __init__(self, factory: HostVectorFactory, n: int):
        super().__init__(factory, n)
        self._data = _zeros(self._n)

    def vector_data(self) -> NDArrayFloat:
        self._check_open()
        return self._data

    def sync_buffer(self) -> None:
        pass


class HostComplexVector(ComplexVector):
    backend = Backend.HOST

    def __init__(self, factory: HostVectorFactory, n: int):
        super().__init__(factory, n)
        self._data = _zeros(2 * self._n)

    def vector_data(self) -> NDArrayFloat:
        self._check_open()
        return self._data

    def sync_buffer(self) -> None:
        pass


class HostComplexVector2D(Complex2DMixin, HostComplexVector):
    def __init__(self, factory: HostVectorFactory, width: int, height: int):
        validate_size(width, height)
        super().__init__(factory, width * height)
        self._init_2d(width, height)


class HostComplexVector3D(HostComplexVector):
    """Complex volume, element (x, y, z) at ``x + width * (y + height * z)``."""

    def __init__(self, factory: HostVectorFactory, width: int, height: int, depth: int):
        validate_size(width, height, depth)
        super().__init__(factory, width * height * depth)
        self.width = int(width)
        self.height = int(height)
        self.depth = int(depth)

    def vector_width(self) -> int:
        return self.width

    def vector_height(self) -> int:
        return self.height

    def vector_depth(self) -> int:
        return self.depth

    def duplicate(self) -> HostComplexVector3D:
        ret = self.factory.create_complex_3d(self.width, self.height, self.depth)
        ret.copy(self)
        return ret

    def get_xyz(self, x: int, y: int, z: int) -> complex:
        return self.get(x + self.width * (y + self.height * z))

    def set_xyz(self, x: int, y: int, z: int, v: complex) -> None:
        self.set(x + self.width * (y + self.height * z), v)

    def set_plane(self, z: int, src: HostComplexVector2D | Any) -> None:
        """Copy a width x height 2D vector into plane ``z``."""
        if src.vector_width() != self.width or src.vector_height() != self.height:
            raise SizeMismatchError(self.width * self.height, src.vector_size())
        if not 0 <= z < self.depth:
            raise PlacementError(f"Plane {z} outside depth {self.depth}")
        plane = 2 * self.width * self.height
        self._data[plane * z : plane * (z + 1)] = src._host()

    def fft3d(self, inverse: bool = False) -> None:
        """In-place 3D FFT. The inverse is unnormalized."""
        self._fft(PlanKey.three_d(self.width, self.height, self.depth), inverse)


class HostVectorFactory(VectorFactory):
    """Factory for host vectors.

    Args:
        fft: Transform backend preference ('auto', 'fftw', 'scipy', 'numpy')
        **fft_options: Backend options (threads, planner_effort, workers)
    """

    backend = Backend.HOST

    def __init__(self, fft: str = "auto", **fft_options: Any):
        self._fft_preference = fft
        self._fft_options = fft_options
        self._plan_pool: PlanPool | None = None
        self._pool_lock = threading.Lock()

    def create_real(self, n: int) -> HostRealVector:
        validate_size(n)
        return HostRealVector(self, n)

    def create_complex(self, n: int) -> HostComplexVector:
        validate_size(n)
        return HostComplexVector(self, n)

    def create_complex_2d(self, width: int, height: int) -> HostComplexVector2D:
        return HostComplexVector2D(self, width, height)

    def create_complex_3d(self, width: int, height: int, depth: int) -> HostComplexVector3D:
        return HostComplexVector3D(self, width, height, depth)

    def sync_concurrent(self) -> None:
        # Host operations complete before they return
        pass

    @property
    def plan_pool(self) -> PlanPool:
        with self._pool_lock:
            if self._plan_pool is None:
                backend = resolve_backend(
                    self._fft_preference, candidates=HOST_CANDIDATES, **self._fft_options
                )
                self._plan_pool = PlanPool(backend)
            return self._plan_pool
