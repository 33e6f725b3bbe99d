"""Accelerator kernel boundary.

A DeviceContext owns a separate memory space. Vectors hold DeviceBuffer
handles into it and call one kernel per algebraic primitive; the kernels are
opaque to the vector layer, which only knows their names, argument order and
units (complex scalars are passed as separate re/im floats, lengths are
counted in floats unless the name says elements).
"""

from __future__ import annotations

import contextlib
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from accelvec.errors import ConsistencyError, ResourceError
from accelvec.typing import NDArrayFloat, NDArrayUInt16

if TYPE_CHECKING:
    from accelvec.fft.base import FFTPlan, TransformBackend
    from accelvec.fft.pool import PlanPool

logger = logging.getLogger(__name__)

DEFAULT_STAGING_BYTES = 16 * 1024 * 1024


@dataclass(eq=False)
class DeviceBuffer:
    """Opaque handle to a float32 region in device memory.

    The handle is exclusively owned by one vector; ``release`` frees the
    region and is idempotent.
    """

    context: DeviceContext
    handle: Any
    length: int
    _released: bool = field(default=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.context.free(self)


class StagingBuffer:
    """Bounded host transfer buffer shared by all vectors of one context.

    Only one transfer may hold the buffer at a time. Requests larger than the
    capacity raise ResourceError instead of being truncated.
    """

    def __init__(self, capacity_bytes: int, memory: Any):
        self.capacity_bytes = capacity_bytes
        self._memory = memory
        self._lock = threading.Lock()
        self.transfers = 0

    @contextlib.contextmanager
    def reserve(self, nbytes: int) -> Iterator[Any]:
        if nbytes > self.capacity_bytes:
            raise ResourceError(
                f"Transfer of {nbytes} bytes exceeds staging buffer capacity "
                f"of {self.capacity_bytes} bytes"
            )
        with self._lock:
            self.transfers += 1
            yield self._memory[:nbytes]


class DeviceContext(ABC):
    """A device memory space plus the kernels that operate on it.

    Subclasses supply ``xp`` (a numpy-compatible array module for the device
    memory) and the allocation/transfer primitives. The default kernels are
    written against ``xp`` so they run unchanged on numpy or cupy arrays.
    """

    xp: Any = np
    # FFT candidates able to transform buffers living in this memory space
    transform_candidates: tuple[str, ...] = ()

    def __init__(self, fft: str = "auto", **fft_options: Any):
        self._fft_preference = fft
        self._fft_options = fft_options
        self._plan_pool: PlanPool | None = None
        self._pool_lock = threading.Lock()
        self._live_buffers = 0
        self._live_lock = threading.Lock()

    @property
    @abstractmethod
    def name(self) -> str:
        """Return device identifier (e.g., 'emulated', 'cuda')."""

    @property
    @abstractmethod
    def staging(self) -> StagingBuffer:
        """Staging buffer used for host/device transfers."""

    @property
    def live_buffers(self) -> int:
        with self._live_lock:
            return self._live_buffers

    # ------ memory management ------

    def alloc(self, length: int) -> DeviceBuffer:
        """Allocate ``length`` zeroed floats; raise ResourceError on failure."""
        handle = self._alloc(length)
        with self._live_lock:
            self._live_buffers += 1
        return DeviceBuffer(context=self, handle=handle, length=length)

    def free(self, buf: DeviceBuffer) -> None:
        if buf.context is not self:
            raise ConsistencyError("Buffer belongs to a different device context")
        self._free(buf.handle)
        buf.handle = None
        with self._live_lock:
            self._live_buffers -= 1

    @abstractmethod
    def _alloc(self, length: int) -> Any: ...

    def _free(self, handle: Any) -> None:
        # Device arrays are reference counted by their array module
        pass

    @abstractmethod
    def upload(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        """Copy a host float32 array into ``buf``."""

    @abstractmethod
    def download(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        """Copy ``buf`` into a host float32 array (in place)."""

    @abstractmethod
    def synchronize(self) -> None:
        """Block until all queued kernels have completed."""

    # ------ transforms ------

    @property
    def plan_pool(self) -> PlanPool:
        """FFT plan pool for this memory space, resolved on first use."""
        with self._pool_lock:
            if self._plan_pool is None:
                from accelvec.fft.pool import PlanPool
                from accelvec.fft.registry import resolve_backend

                backend = resolve_backend(
                    self._fft_preference,
                    candidates=self.transform_candidates,
                    **self._fft_options,
                )
                self._plan_pool = PlanPool(backend)
            return self._plan_pool

    @property
    def transform_backend(self) -> TransformBackend:
        return self.plan_pool.backend

    def transform(self, plan: FFTPlan, buf: DeviceBuffer, inverse: bool) -> None:
        self.transform_backend.transform(plan, buf.handle, inverse)

    # ------ kernels ------

    def _cplx(self, buf: DeviceBuffer) -> Any:
        return buf.handle.view(self.xp.complex64)

    def zero(self, buf: DeviceBuffer, n: int) -> None:
        buf.handle[:n] = 0

    def copy(self, dst: DeviceBuffer, src: DeviceBuffer, n: int) -> None:
        dst.handle[:n] = src.handle[:n]

    def copy_real_to_complex(self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int) -> None:
        out = dst.handle.reshape(-1, 2)
        out[:n_elem, 0] = src.handle[:n_elem]
        out[:n_elem, 1] = 0

    def copy_complex_to_real(
        self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int, imag: bool
    ) -> None:
        dst.handle[:n_elem] = src.handle.reshape(-1, 2)[:n_elem, 1 if imag else 0]

    def add(self, dst: DeviceBuffer, src: DeviceBuffer, n: int) -> None:
        dst.handle[:n] += src.handle[:n]

    def add_const(self, buf: DeviceBuffer, n_elem: int, re: float, im: float | None) -> None:
        if im is None:
            buf.handle[:n_elem] += self.xp.float32(re)
        else:
            self._cplx(buf)[:n_elem] += self.xp.complex64(complex(re, im))

    def axpy(
        self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int, re: float, im: float | None
    ) -> None:
        if im is None or im == 0.0:
            length = n_elem if im is None else 2 * n_elem
            dst.handle[:length] += self.xp.float32(re) * src.handle[:length]
        else:
            self._cplx(dst)[:n_elem] += self.xp.complex64(complex(re, im)) * self._cplx(src)[:n_elem]

    def scal(self, buf: DeviceBuffer, n_elem: int, re: float, im: float | None) -> None:
        if im is None or im == 0.0:
            length = n_elem if im is None else 2 * n_elem
            buf.handle[:length] *= self.xp.float32(re)
        else:
            self._cplx(buf)[:n_elem] *= self.xp.complex64(complex(re, im))

    def times_real(self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int) -> None:
        dst.handle[:n_elem] *= src.handle[:n_elem]

    def times_complex(self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int, conj: bool) -> None:
        other = self._cplx(src)[:n_elem]
        if conj:
            other = self.xp.conj(other)
        self._cplx(dst)[:n_elem] *= other

    def times_complex_by_real(self, dst: DeviceBuffer, src: DeviceBuffer, n_elem: int) -> None:
        dst.handle.reshape(-1, 2)[:n_elem] *= src.handle[:n_elem, None]

    def reduce(self, buf: DeviceBuffer, n: int, sqr: bool) -> float:
        data = buf.handle[:n].astype(self.xp.float64)
        if sqr:
            return float(self.xp.dot(data, data))
        return float(self.xp.sum(data))

    def dot_real(self, a: DeviceBuffer, b: DeviceBuffer, n: int) -> float:
        return float(
            self.xp.dot(a.handle[:n].astype(self.xp.float64), b.handle[:n].astype(self.xp.float64))
        )

    def paste_freq(
        self,
        dst: DeviceBuffer,
        wo: int,
        ho: int,
        src: DeviceBuffer,
        wi: int,
        hi: int,
        x_off: int,
        y_off: int,
    ) -> None:
        from accelvec.linalg.vec2d import paste_freq_into

        out = self._cplx(dst)[: wo * ho].reshape(ho, wo)
        inp = self._cplx(src)[: wi * hi].reshape(hi, wi)
        paste_freq_into(self.xp, out, inp, x_off, y_off)

    def fourier_shift(self, buf: DeviceBuffer, n: int, kx: float, ky: float) -> None:
        from accelvec.linalg.vec2d import fourier_shift_factors

        data = self._cplx(buf)[: n * n].reshape(n, n)
        data *= fourier_shift_factors(self.xp, n, kx, ky)

    def copy_short(self, dst: DeviceBuffer, pixels: NDArrayUInt16, n_elem: int) -> None:
        """Ingest 16-bit samples into a complex buffer through the staging buffer."""
        out = dst.handle.reshape(-1, 2)
        with self.staging.reserve(n_elem * 2) as stage:
            stage.view(np.uint16)[:n_elem] = pixels[:n_elem]
            samples = self._stage_to_device(stage.view(np.uint16)[:n_elem])
            out[:n_elem, 0] = samples.astype(self.xp.float32)
        out[:n_elem, 1] = 0

    def _stage_to_device(self, staged: Any) -> Any:
        return self.xp.asarray(staged)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
