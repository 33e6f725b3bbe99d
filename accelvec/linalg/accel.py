"""Accelerator backend: vectors mirrored in host and device memory.

Every vector owns a host buffer and a DeviceBuffer in its factory's
DeviceContext. Operations whose operands all live on the same context run
as device kernels; anything else reads synchronized host buffers through the
portable implementation. The Coherence state machine decides when copies
happen.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from accelvec.device.base import DeviceBuffer, DeviceContext
from accelvec.errors import ConsistencyError, ResourceError, SizeMismatchError, UnsupportedOperationError
from accelvec.fft.base import FFTPlan, TransformBackend
from accelvec.fft.pool import PlanPool
from accelvec.typing import NDArrayFloat, NDArrayUInt16

from .base import Backend, ComplexVector, RealVector, check_sizes, validate_size
from .coherence import Coherence, CoherenceState
from .factory import VectorFactory
from .vec2d import Complex2DMixin, _as_pixels, check_square

logger = logging.getLogger(__name__)


class _AccelStorage:
    """Host mirror, device buffer and coherence state of one vector."""

    backend = Backend.ACCEL
    context: DeviceContext
    _closed: bool

    def _alloc_storage(self, context: DeviceContext, length: int) -> None:
        self.context = context
        try:
            self._host_buf = np.zeros(length, dtype=np.float32)
        except MemoryError as e:
            raise ResourceError(f"No memory for allocating {length}-float host mirror") from e
        self._device_buf: DeviceBuffer | None = context.alloc(length)
        self._coherence = Coherence(self._upload, self._download)

    def _upload(self) -> None:
        self.context.upload(self._buf, self._host_buf)

    def _download(self) -> None:
        self.context.download(self._buf, self._host_buf)

    def _check_open(self) -> None:
        if self._closed or self._device_buf is None:
            raise ConsistencyError(f"{self!r} has been closed")

    @property
    def _buf(self) -> DeviceBuffer:
        self._check_open()
        return self._device_buf  # type: ignore[return-value]

    # --- host side ---

    def vector_data(self) -> NDArrayFloat:
        self._check_open()
        self._coherence.ensure_host_current()
        return self._host_buf

    def sync_buffer(self) -> None:
        self._check_open()
        self._coherence.host_written()

    def make_coherent(self) -> None:
        self._check_open()
        self._coherence.make_coherent()

    def _host(self, overwrite: bool = False) -> NDArrayFloat:
        # A full overwrite does not need the device contents
        if overwrite:
            self._check_open()
            return self._host_buf
        return self.vector_data()

    def _host_modified(self, overwrite: bool = False) -> None:
        if overwrite:
            self._check_open()
            self._coherence.host_overwritten()
        else:
            self.sync_buffer()

    # --- device side ---

    def _dev(self, overwrite: bool = False) -> DeviceBuffer:
        buf = self._buf
        if not overwrite:
            self._coherence.ensure_device_current()
        return buf

    def _dev_modified(self, overwrite: bool = False) -> None:
        if overwrite:
            self._coherence.device_overwritten()
        else:
            self._coherence.device_written()

    @property
    def transfers(self) -> int:
        """Host/device copies performed for this vector so far."""
        return self._coherence.transfers

    @property
    def state(self) -> CoherenceState:
        return self._coherence.state

    @property
    def coherence(self) -> Coherence:
        return self._coherence

    def close(self) -> None:
        buf = getattr(self, "_device_buf", None)
        if buf is not None:
            buf.release()
            self._device_buf = None
        super().close()  # type: ignore[misc]


class AccelRealVector(_AccelStorage, RealVector):
    def __init__(self, factory: AccelVectorFactory, n: int):
        super().__init__(factory, n)
        self._alloc_storage(factory.context, self._n)

    def zero(self) -> None:
        self.context.zero(self._dev(overwrite=True), self._n)
        self._dev_modified(overwrite=True)

    def copy(self, src: RealVector | ComplexVector, imag: bool = False) -> None:
        if src is self:
            return
        if not self.same_backend(src):
            super().copy(src, imag)
            return
        check_sizes(self, src)
        s = src._dev()
        d = self._dev(overwrite=True)
        if isinstance(src, ComplexVector):
            self.context.copy_complex_to_real(d, s, self._n, imag)
        else:
            self.context.copy(d, s, self._n)
        self._dev_modified(overwrite=True)

    def add(self, *vs: RealVector) -> None:
        if not vs:
            return
        check_sizes(self, *vs)
        if not self.same_backend(*vs):
            super().add(*vs)
            return
        srcs = [v._dev() for v in vs]
        d = self._dev()
        for s in srcs:
            self.context.add(d, s, self._n)
        self._dev_modified()

    def axpy(self, a: float, x: RealVector) -> None:
        check_sizes(self, x)
        if not self.same_backend(x):
            super().axpy(a, x)
            return
        s = x._dev()
        self.context.axpy(self._dev(), s, self._n, float(a), None)
        self._dev_modified()

    def add_const(self, a: float) -> None:
        self.context.add_const(self._dev(), self._n, float(a), None)
        self._dev_modified()

    def scal(self, a: float) -> None:
        self.context.scal(self._dev(), self._n, float(a), None)
        self._dev_modified()

    def times(self, x: RealVector) -> None:
        check_sizes(self, x)
        if not self.same_backend(x):
            super().times(x)
            return
        s = x._dev()
        self.context.times_real(self._dev(), s, self._n)
        self._dev_modified()

    def dot(self, x: RealVector) -> float:
        check_sizes(self, x)
        if not self.same_backend(x):
            return super().dot(x)
        return self.context.dot_real(self._dev(), x._dev(), self._n)

    def norm2(self) -> float:
        return self.context.reduce(self._dev(), self._n, sqr=True)

    def sum_elements(self) -> float:
        return self.context.reduce(self._dev(), self._n, sqr=False)


class AccelComplexVector(_AccelStorage, ComplexVector):
    def __init__(self, factory: AccelVectorFactory, n: int):
        super().__init__(factory, n)
        self._alloc_storage(factory.context, 2 * self._n)

    def zero(self) -> None:
        self.context.zero(self._dev(overwrite=True), 2 * self._n)
        self._dev_modified(overwrite=True)

    def copy(self, src: ComplexVector | RealVector) -> None:
        if src is self:
            return
        if not self.same_backend(src):
            super().copy(src)
            return
        check_sizes(self, src)
        s = src._dev()
        d = self._dev(overwrite=True)
        if isinstance(src, RealVector):
            self.context.copy_real_to_complex(d, s, self._n)
        else:
            self.context.copy(d, s, 2 * self._n)
        self._dev_modified(overwrite=True)

    def add(self, *vs: ComplexVector) -> None:
        if not vs:
            return
        check_sizes(self, *vs)
        if not self.same_backend(*vs):
            super().add(*vs)
            return
        srcs = [v._dev() for v in vs]
        d = self._dev()
        for s in srcs:
            self.context.add(d, s, 2 * self._n)
        self._dev_modified()

    def axpy(self, a: float | complex, x: ComplexVector) -> None:
        check_sizes(self, x)
        if not self.same_backend(x):
            super().axpy(a, x)
            return
        a = complex(a)
        s = x._dev()
        self.context.axpy(self._dev(), s, self._n, a.real, a.imag)
        self._dev_modified()

    def add_const(self, a: float | complex) -> None:
        a = complex(a)
        self.context.add_const(self._dev(), self._n, a.real, a.imag)
        self._dev_modified()

    def scal(self, a: float | complex) -> None:
        a = complex(a)
        self.context.scal(self._dev(), self._n, a.real, a.imag)
        self._dev_modified()

    def times(self, x: ComplexVector | RealVector, conj: bool = False) -> None:
        check_sizes(self, x)
        if not self.same_backend(x):
            super().times(x, conj)
            return
        s = x._dev()
        if isinstance(x, RealVector):
            self.context.times_complex_by_real(self._dev(), s, self._n)
        else:
            self.context.times_complex(self._dev(), s, self._n, conj)
        self._dev_modified()

    def norm2(self) -> float:
        return self.context.reduce(self._dev(), 2 * self._n, sqr=True)

    def _transform(self, backend: TransformBackend, plan: FFTPlan, inverse: bool) -> None:
        self.context.transform(plan, self._dev(), inverse)
        self._dev_modified()


class AccelComplexVector2D(Complex2DMixin, AccelComplexVector):
    def __init__(self, factory: AccelVectorFactory, width: int, height: int):
        validate_size(width, height)
        super().__init__(factory, width * height)
        self._init_2d(width, height)

    def paste_freq(self, src: Complex2DMixin, x_offset: int = 0, y_offset: int = 0) -> None:
        if src is self or not self.same_backend(src):
            super().paste_freq(src, x_offset, y_offset)
            return
        s = src._dev()
        d = self._dev(overwrite=True)
        self.context.paste_freq(
            d,
            self.width,
            self.height,
            s,
            src.vector_width(),
            src.vector_height(),
            x_offset,
            y_offset,
        )
        self._dev_modified(overwrite=True)

    def fourier_shift(self, kx: float, ky: float) -> None:
        n = check_square(self)
        self.context.fourier_shift(self._dev(), n, kx, ky)
        self._dev_modified()

    def set_from_16bit_pixels(self, pixels: NDArrayUInt16) -> None:
        samples = _as_pixels(pixels)
        if samples.size != self._n:
            raise SizeMismatchError(self._n, int(samples.size))
        self.context.copy_short(self._dev(overwrite=True), samples, self._n)
        self._dev_modified(overwrite=True)

    def slice(self, src: Any, z: int) -> None:
        raise UnsupportedOperationError("slice is not implemented for accelerator vectors")

    def project(self, src: Any, start: int = 0, end: int | None = None) -> None:
        raise UnsupportedOperationError("project is not implemented for accelerator vectors")


class AccelVectorFactory(VectorFactory):
    """Factory for vectors living in one DeviceContext.

    Args:
        context: Device memory space and kernels, see
            :func:`accelvec.device.open_device`
    """

    backend = Backend.ACCEL

    def __init__(self, context: DeviceContext):
        self.context = context

    @classmethod
    def open(cls, device: str = "auto", **kwargs: Any) -> AccelVectorFactory:
        """Open a device by name (or auto-detect) and wrap it in a factory."""
        from accelvec.device import open_device

        return cls(open_device(device, **kwargs))

    def create_real(self, n: int) -> AccelRealVector:
        validate_size(n)
        return AccelRealVector(self, n)

    def create_complex(self, n: int) -> AccelComplexVector:
        validate_size(n)
        return AccelComplexVector(self, n)

    def create_complex_2d(self, width: int, height: int) -> AccelComplexVector2D:
        return AccelComplexVector2D(self, width, height)

    def sync_concurrent(self) -> None:
        self.context.synchronize()

    @property
    def plan_pool(self) -> PlanPool:
        return self.context.plan_pool

    def __repr__(self) -> str:
        return f"AccelVectorFactory(context={self.context!r})"
