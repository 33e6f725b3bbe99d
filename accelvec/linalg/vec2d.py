"""2D spatial and frequency-domain operations on complex vectors.

Element (x, y) of a width x height vector lives at linear index
``x + y * width``; FFT data uses the native (unshifted) ordering, zero
frequency at index 0 and negative frequencies in the upper half.

The array helpers take the array module ``xp`` so that the portable path
(numpy on host buffers) and accelerator kernels (numpy or cupy on device
buffers) share one definition and produce bit-identical results.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

import numpy as np

from accelvec.errors import PlacementError, SizeMismatchError
from accelvec.fft.base import PlanKey

from .base import ComplexVector, validate_size

if TYPE_CHECKING:
    from accelvec.typing import NDArrayUInt16


def _freq_axis(xp: Any, n_in: int, n_out: int, offset: int) -> tuple[Any, Any]:
    """Source and destination indices for one axis of a frequency paste.

    Input index x carries frequency x (x < n_in//2) or x - n_in. Frequencies
    representable in the output are kept and stored at their native output
    position, shifted by ``offset`` with wrap-around.
    """
    idx = xp.arange(n_in)
    freq = xp.where(idx < n_in // 2, idx, idx - n_in)
    keep = (freq >= -(n_out - n_out // 2)) & (freq < n_out // 2)
    src = idx[keep]
    dst = (freq[keep] + offset) % n_out
    return src, dst


def paste_freq_into(xp: Any, out: Any, inp: Any, x_offset: int, y_offset: int) -> None:
    """Place spectrum ``inp`` (hi x wi) into ``out`` (ho x wo), zero-filling.

    Used for Fourier-domain zero padding (upsampling) when ``inp`` is
    smaller, and cropping when it is larger. For equal shapes the offsets
    act as a cyclic shift, so pasting back with negated offsets restores the
    original layout.
    """
    ho, wo = out.shape
    hi, wi = inp.shape
    xs, xd = _freq_axis(xp, wi, wo, x_offset)
    ys, yd = _freq_axis(xp, hi, ho, y_offset)
    out[...] = 0
    out[yd[:, None], xd[None, :]] = inp[ys[:, None], xs[None, :]]


def fourier_shift_factors(xp: Any, n: int, kx: float, ky: float) -> Any:
    """exp(2*pi*i*(kx*x + ky*y)/n) over an n x n grid, as complex64."""
    coords = xp.arange(n, dtype=xp.float64)
    phase_x = 2.0 * math.pi * kx * coords / n
    phase_y = 2.0 * math.pi * ky * coords / n
    return xp.exp(1j * (phase_y[:, None] + phase_x[None, :])).astype(xp.complex64)


def check_square(v: Complex2DMixin) -> int:
    """Return the side length of a square 2D vector; raise ValueError otherwise."""
    if v.vector_width() != v.vector_height():
        raise ValueError(
            f"Vector is not square: {v.vector_width()} x {v.vector_height()}"
        )
    return v.vector_width()


class Complex2DMixin(ComplexVector):
    """2D addressing and spatial/frequency operations for complex vectors.

    Concrete classes list this mixin before their backend vector class and
    call ``_init_2d`` from their constructor.
    """

    width: int
    height: int

    def _init_2d(self, width: int, height: int) -> None:
        validate_size(width, height)
        self.width = int(width)
        self.height = int(height)

    def vector_width(self) -> int:
        return self.width

    def vector_height(self) -> int:
        return self.height

    def duplicate(self) -> Complex2DMixin:
        ret = self.factory.create_complex_2d(self.width, self.height)
        ret.copy(self)
        return ret

    def _grid(self, overwrite: bool = False) -> Any:
        return self._host(overwrite).view(np.complex64).reshape(self.height, self.width)

    def get_xy(self, x: int, y: int) -> complex:
        return self.get(x + y * self.width)

    def set_xy(self, x: int, y: int, v: complex) -> None:
        self.set(x + y * self.width, v)

    def paste(self, src: Complex2DMixin, x: int, y: int, zero_first: bool = False) -> None:
        """Copy ``src`` into this vector with its origin at (x, y)."""
        self.same_backend(src)
        w, h = src.vector_width(), src.vector_height()
        if x < 0 or y < 0 or x + w > self.width or y + h > self.height:
            raise PlacementError(
                f"Cannot paste {w}x{h} at ({x}, {y}) into {self.width}x{self.height}"
            )
        region = src._host().view(np.complex64).reshape(h, w).copy()
        out = self._grid()
        if zero_first:
            out[...] = 0
        out[y : y + h, x : x + w] = region
        self._host_modified()

    def paste_freq(self, src: Complex2DMixin, x_offset: int = 0, y_offset: int = 0) -> None:
        """Zero-pad or crop spectrum ``src`` into this vector (native FFT order)."""
        if src is self:
            tmp = src.duplicate()
            try:
                self.paste_freq(tmp, x_offset, y_offset)
            finally:
                tmp.close()
            return
        inp = src._host().view(np.complex64).reshape(src.vector_height(), src.vector_width())
        paste_freq_into(np, self._grid(overwrite=True), inp, x_offset, y_offset)
        self._host_modified(overwrite=True)

    def fourier_shift(self, kx: float, ky: float) -> None:
        """Multiply by a phase ramp, shifting the spectrum by (kx, ky) pixels."""
        n = check_square(self)
        grid = self._grid()
        grid *= fourier_shift_factors(np, n, kx, ky)
        self._host_modified()

    def fft2d(self, inverse: bool = False) -> None:
        """In-place 2D FFT. The inverse is unnormalized."""
        self._fft(PlanKey.two_d(self.width, self.height), inverse)

    def set_from_16bit_pixels(self, pixels: NDArrayUInt16) -> None:
        """Set real parts from raw 16-bit samples, imaginary parts to zero."""
        samples = _as_pixels(pixels)
        if samples.size != self._n:
            raise SizeMismatchError(self._n, int(samples.size))
        pairs = self._host(overwrite=True).reshape(-1, 2)
        pairs[:, 0] = samples
        pairs[:, 1] = 0
        self._host_modified(overwrite=True)

    def slice(self, src: Any, z: int) -> None:
        """Copy plane ``z`` of a 3D vector into this vector."""
        self.same_backend(src)
        plane = _planes(self, src)
        if not 0 <= z < src.vector_depth():
            raise PlacementError(f"Plane {z} outside depth {src.vector_depth()}")
        values = plane[z].copy()
        self._grid(overwrite=True)[...] = values
        self._host_modified(overwrite=True)

    def project(self, src: Any, start: int = 0, end: int | None = None) -> None:
        """Set this vector to the sum of planes start..end-1 of a 3D vector."""
        self.same_backend(src)
        planes = _planes(self, src)
        end = src.vector_depth() if end is None else end
        if not 0 <= start < end <= src.vector_depth():
            raise PlacementError(f"Invalid plane range {start}..{end} for depth {src.vector_depth()}")
        total = planes[start:end].sum(axis=0, dtype=np.complex64)
        self._grid(overwrite=True)[...] = total
        self._host_modified(overwrite=True)


def _as_pixels(pixels: Any) -> Any:
    samples = np.asarray(pixels)
    if samples.dtype != np.uint16:
        if samples.dtype.kind not in "iu" or (
            samples.size and (samples.min() < 0 or samples.max() > 0xFFFF)
        ):
            raise ValueError(f"Pixels must be unsigned 16-bit integers, got {samples.dtype}")
        samples = samples.astype(np.uint16)
    return samples.ravel()


def _planes(dst: Complex2DMixin, src: Any) -> Any:
    if src.vector_width() != dst.width or src.vector_height() != dst.height:
        raise SizeMismatchError(dst.vector_size(), src.vector_width() * src.vector_height())
    return src._host().view(np.complex64).reshape(src.vector_depth(), dst.height, dst.width)
