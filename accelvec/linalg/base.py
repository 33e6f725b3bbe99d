"""Vector algebra contract and its portable implementation.

Conventions:
- Elements are float32. Real vectors hold N scalars, complex vectors hold N
  interleaved (re, im) pairs in one float32 buffer of length 2N.
- Input operands are read-only: ``a.add(b)`` changes ``a``, never ``b``.
- New vectors are only ever allocated through the owning factory.
- Every vector carries a ``backend`` tag and a device ``context``. Backends
  override operations with fast kernels when all operands share their tag
  and context; anything else runs the portable code in this module on
  synchronized host buffers. Results do not depend on which path ran.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from accelvec.errors import ConsistencyError, InvalidSizeError, SizeMismatchError
from accelvec.fft.base import PlanKey
from accelvec.typing import NDArrayFloat

if TYPE_CHECKING:
    from accelvec.fft.base import FFTPlan, TransformBackend
    from accelvec.linalg.factory import VectorFactory


class Backend(Enum):
    """Memory/execution domain a vector is bound to."""

    HOST = "host"
    ACCEL = "accel"


def validate_size(*dims: int) -> None:
    """Raise InvalidSizeError unless every extent is a positive integer."""
    for n in dims:
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n <= 0:
            raise InvalidSizeError(n)


def check_sizes(this: Vector, *others: Vector | None) -> int:
    """Throw if not all vectors are of the same size. Returns that size."""
    n = this.vector_size()
    for i, v in enumerate(others):
        if v is None:
            raise ConsistencyError(f"Input vector {i} is None")
        if v.vector_size() != n:
            raise SizeMismatchError(n, v.vector_size(), i)
    return n


class Vector(ABC):
    """State and raw buffer access shared by real and complex vectors."""

    backend: Backend = Backend.HOST
    context: Any = None

    def __init__(self, factory: VectorFactory, n: int):
        validate_size(n)
        self.factory = factory
        self._n = int(n)
        self._closed = False

    def vector_size(self) -> int:
        """Number of elements in the vector."""
        return self._n

    def __len__(self) -> int:
        return self._n

    @abstractmethod
    def vector_data(self) -> NDArrayFloat:
        """Access to the internal host buffer.

        If the vector is backed by device memory it is synced before the
        buffer is returned. After writing to the buffer call
        :meth:`sync_buffer`. Any later operation on the vector may
        invalidate the buffer contents.
        """

    @abstractmethod
    def sync_buffer(self) -> None:
        """Publish writes made to the buffer returned by :meth:`vector_data`."""

    def make_coherent(self) -> None:
        """Make all buffers coherent.

        This ONLY influences WHEN buffers are copied (for timing, etc.); the
        program runs correctly without ever calling it.
        """

    # Hooks for the portable path. Backends with separate device memory
    # override these to run the coherence protocol.
    def _host(self, overwrite: bool = False) -> NDArrayFloat:
        return self.vector_data()

    def _host_modified(self, overwrite: bool = False) -> None:
        self.sync_buffer()

    def same_backend(self, *others: Vector | None) -> bool:
        """True when every operand can use this vector's fast kernels.

        Operands of another backend select the portable path. Accelerator
        operands from a different device context cannot be mixed at all.
        """
        for i, v in enumerate(others):
            if v is None:
                raise ConsistencyError(f"Input vector {i} is None")
            if (
                v.backend is Backend.ACCEL
                and self.backend is Backend.ACCEL
                and v.context is not self.context
            ):
                raise ConsistencyError(f"Input vector {i} belongs to a different device context")
        return all(v.backend is self.backend for v in others)

    def _check_open(self) -> None:
        if self._closed:
            raise ConsistencyError(f"{self!r} has been closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the vector's memory. Idempotent."""
        self._closed = True

    def __enter__(self) -> Vector:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _first10(self, values: Any) -> str:
        return " ".join(f"{v:8.3f}" for v in values[:10])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n={self._n})"


class RealVector(Vector):
    """A real-valued vector, base type float32."""

    def duplicate(self) -> RealVector:
        ret = self.factory.create_real(self._n)
        ret.copy(self)
        return ret

    def get(self, i: int) -> float:
        return float(self._host()[i])

    def set(self, i: int, x: float) -> None:
        data = self._host()
        data[i] = x
        self._host_modified()

    # --- copy functions ---

    def copy(self, src: RealVector | ComplexVector, imag: bool = False) -> None:
        """Copy ``src`` into this vector.

        For a complex source the real part is copied, or the imaginary part
        if ``imag`` is set.
        """
        if src is self:
            return
        check_sizes(self, src)
        if isinstance(src, ComplexVector):
            values = src._host().reshape(-1, 2)[:, 1 if imag else 0]
        else:
            values = src._host()
        self._host(overwrite=True)[:] = values
        self._host_modified(overwrite=True)

    def copy_magnitude(self, src: ComplexVector) -> None:
        check_sizes(self, src)
        values = np.abs(src._host().view(np.complex64))
        self._host(overwrite=True)[:] = values
        self._host_modified(overwrite=True)

    def copy_phase(self, src: ComplexVector) -> None:
        check_sizes(self, src)
        values = np.angle(src._host().view(np.complex64))
        self._host(overwrite=True)[:] = values
        self._host_modified(overwrite=True)

    def zero(self) -> None:
        self._host(overwrite=True)[:] = 0
        self._host_modified(overwrite=True)

    # --- arithmetic ---

    def add(self, *vs: RealVector) -> None:
        """Add all input vectors to this vector."""
        if not vs:
            return
        check_sizes(self, *vs)
        values = [v._host() for v in vs]
        out = self._host()
        for val in values:
            out += val
        self._host_modified()

    def axpy(self, a: float, x: RealVector) -> None:
        """Compute this += a * x."""
        check_sizes(self, x)
        xv = x._host()
        out = self._host()
        out += np.float32(a) * xv
        self._host_modified()

    def add_const(self, a: float) -> None:
        self._host()[:] += np.float32(a)
        self._host_modified()

    def scal(self, a: float) -> None:
        """Multiply by scalar, ie this *= a."""
        self._host()[:] *= np.float32(a)
        self._host_modified()

    def times(self, x: RealVector) -> None:
        """Element-wise multiplication this = this .* x."""
        check_sizes(self, x)
        xv = x._host()
        out = self._host()
        out *= xv
        self._host_modified()

    def reciproc(self) -> None:
        """Set every element to 1/element."""
        out = self._host()
        with np.errstate(divide="ignore"):
            np.reciprocal(out, out=out)
        self._host_modified()

    def add_sqr(self, x: RealVector) -> None:
        """Compute this += x^2."""
        check_sizes(self, x)
        xv = x._host()
        out = self._host()
        out += xv * xv
        self._host_modified()

    def normalize(self, vmin: float = 0.0, vmax: float = 1.0) -> None:
        """Linearly rescale the elements to vmin..vmax.

        A constant vector is set to vmin.
        """
        out = self._host()
        lo, hi = float(out.min()), float(out.max())
        if hi == lo:
            out[:] = vmin
        else:
            out[:] = (out.astype(np.float64) - lo) / (hi - lo) * (vmax - vmin) + vmin
        self._host_modified()

    # --- reductions ---

    def dot(self, x: RealVector) -> float:
        """Return the dot product <this, x>."""
        check_sizes(self, x)
        return float(np.dot(self._host().astype(np.float64), x._host().astype(np.float64)))

    def norm2(self) -> float:
        """Return the squared norm <this, this>."""
        data = self._host().astype(np.float64)
        return float(np.dot(data, data))

    def sum_elements(self) -> float:
        return float(np.sum(self._host(), dtype=np.float64))

    def avr(self) -> float:
        return float(np.mean(self._host(), dtype=np.float64))

    def median(self) -> float:
        return float(np.median(self._host()))

    def min(self) -> float:
        return float(np.min(self._host()))

    def max(self) -> float:
        return float(np.max(self._host()))

    def n_largest_idx(self, n: int) -> list[int]:
        """Indices of the n largest-magnitude elements, largest first."""
        if not 0 <= n <= self._n:
            raise ValueError(f"Cannot select {n} of {self._n} elements")
        order = np.argsort(-np.abs(self._host()), kind="stable")
        return [int(i) for i in order[:n]]

    def first10_elem(self) -> str:
        """The first 10 vector elements, for debugging."""
        return self._first10(self._host())


class ComplexVector(Vector):
    """A complex-valued vector, base type float32 (interleaved re, im)."""

    def duplicate(self) -> ComplexVector:
        ret = self.factory.create_complex(self._n)
        ret.copy(self)
        return ret

    def duplicate_real(self) -> RealVector:
        ret = self.factory.create_real(self._n)
        ret.copy(self)
        return ret

    def duplicate_imag(self) -> RealVector:
        ret = self.factory.create_real(self._n)
        ret.copy(self, imag=True)
        return ret

    def duplicate_magnitude(self) -> RealVector:
        ret = self.factory.create_real(self._n)
        ret.copy_magnitude(self)
        return ret

    def duplicate_phase(self) -> RealVector:
        ret = self.factory.create_real(self._n)
        ret.copy_phase(self)
        return ret

    def complex_view(self) -> Any:
        """Synced host buffer viewed as complex64 (writes need sync_buffer)."""
        return self.vector_data().view(np.complex64)

    def get(self, i: int) -> complex:
        data = self._host()
        return complex(float(data[2 * i]), float(data[2 * i + 1]))

    def set(self, i: int, v: complex) -> None:
        data = self._host()
        data[2 * i] = v.real
        data[2 * i + 1] = v.imag
        self._host_modified()

    # --- copy functions ---

    def copy(self, src: ComplexVector | RealVector) -> None:
        """Copy ``src`` into this vector; a real source gets zero imaginary parts."""
        if src is self:
            return
        check_sizes(self, src)
        values = src._host()
        out = self._host(overwrite=True)
        if isinstance(src, RealVector):
            pairs = out.reshape(-1, 2)
            pairs[:, 0] = values
            pairs[:, 1] = 0
        else:
            out[:] = values
        self._host_modified(overwrite=True)

    def zero(self) -> None:
        self._host(overwrite=True)[:] = 0
        self._host_modified(overwrite=True)

    # --- arithmetic ---

    def add(self, *vs: ComplexVector) -> None:
        """Add all input vectors to this vector."""
        if not vs:
            return
        check_sizes(self, *vs)
        values = [v._host() for v in vs]
        out = self._host()
        for val in values:
            out += val
        self._host_modified()

    def axpy(self, a: float | complex, x: ComplexVector) -> None:
        """Compute this += a * x."""
        check_sizes(self, x)
        xc = x._host().view(np.complex64)
        out = self._host().view(np.complex64)
        out += np.complex64(a) * xc
        self._host_modified()

    def add_const(self, a: float | complex) -> None:
        out = self._host().view(np.complex64)
        out += np.complex64(a)
        self._host_modified()

    def scal(self, a: float | complex) -> None:
        """Multiply by scalar, ie this *= a."""
        out = self._host().view(np.complex64)
        out *= np.complex64(a)
        self._host_modified()

    def conj(self) -> None:
        """Complex conjugate every element of this vector."""
        self._host().reshape(-1, 2)[:, 1] *= -1
        self._host_modified()

    def reciproc(self) -> None:
        out = self._host().view(np.complex64)
        with np.errstate(divide="ignore", invalid="ignore"):
            np.reciprocal(out, out=out)
        self._host_modified()

    def times(self, x: ComplexVector | RealVector, conj: bool = False) -> None:
        """Element-wise multiplication this = this .* x.

        ``x`` is conjugated first if ``conj`` is set (ignored for real ``x``).
        """
        check_sizes(self, x)
        if isinstance(x, RealVector):
            xv = x._host()
            self._host().reshape(-1, 2)[:] *= xv[:, None]
        else:
            xc = x._host().view(np.complex64)
            if conj:
                xc = np.conj(xc)
            self._host().view(np.complex64)[:] *= xc
        self._host_modified()

    def times_conj(self, x: ComplexVector) -> None:
        """Element-wise multiplication this = this .* conj(x)."""
        self.times(x, conj=True)

    def add_sqr(self, x: ComplexVector) -> None:
        """Compute this += |x|^2 (added to the real parts)."""
        check_sizes(self, x)
        pairs = x._host().reshape(-1, 2).astype(np.float64)
        mag2 = pairs[:, 0] ** 2 + pairs[:, 1] ** 2
        self._host().reshape(-1, 2)[:, 0] += mag2.astype(np.float32)
        self._host_modified()

    # --- reductions ---

    def norm2(self) -> float:
        """Return the squared norm <this, this>."""
        data = self._host().astype(np.float64)
        return float(np.dot(data, data))

    def dot(self, y: ComplexVector) -> complex:
        """Compute the dot product <conj(this), y>."""
        check_sizes(self, y)
        a = self._host().view(np.complex64).astype(np.complex128)
        b = y._host().view(np.complex64).astype(np.complex128)
        return complex(np.vdot(a, b))

    def sum_elements(self) -> complex:
        return complex(np.sum(self._host().view(np.complex64), dtype=np.complex128))

    def n_largest_idx(self, n: int) -> list[int]:
        """Indices of the n largest-magnitude elements, largest first."""
        if not 0 <= n <= self._n:
            raise ValueError(f"Cannot select {n} of {self._n} elements")
        order = np.argsort(-np.abs(self._host().view(np.complex64)), kind="stable")
        return [int(i) for i in order[:n]]

    def first10_elem(self) -> str:
        return " ".join(
            f"{complex(v.real, v.imag):.3f}" for v in self._host().view(np.complex64)[:10]
        )

    # --- transforms ---

    def fft1d(self, inverse: bool = False) -> None:
        """In-place 1D FFT. The inverse is unnormalized."""
        self._fft(PlanKey.one_d(self._n), inverse)

    def _fft(self, key: PlanKey, inverse: bool) -> None:
        pool = self.factory.plan_pool
        with pool.borrow(key) as plan:
            self._transform(pool.backend, plan, inverse)

    def _transform(self, backend: TransformBackend, plan: FFTPlan, inverse: bool) -> None:
        backend.transform(plan, self._host(), inverse)
        self._host_modified()
