"""Base classes for transform backends.

This module defines the transform boundary used by the plan pool, allowing
pluggable implementations (scipy, numpy, pyFFTW, cuFFT via CuPy).

Buffers are float32 arrays holding interleaved (re, im) pairs, laid out
row-major with x fastest. Transforms run in place. The inverse transform is
unnormalized: a forward/inverse round trip scales the data by N.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PlanKey:
    """Shape key of an FFT plan.

    Attributes:
        dims: Dimensionality (1, 2 or 3)
        width: Fastest varying extent
        height: 1 for 1D plans
        depth: 1 for 1D and 2D plans
    """

    dims: int
    width: int
    height: int = 1
    depth: int = 1

    def __post_init__(self) -> None:
        if self.dims not in (1, 2, 3):
            raise ValueError(f"FFT dimensionality must be 1, 2 or 3, got {self.dims}")
        if min(self.width, self.height, self.depth) <= 0:
            raise ValueError(f"FFT extents must be positive: {self}")

    @classmethod
    def one_d(cls, n: int) -> PlanKey:
        return cls(1, n)

    @classmethod
    def two_d(cls, width: int, height: int) -> PlanKey:
        return cls(2, width, height)

    @classmethod
    def three_d(cls, width: int, height: int, depth: int) -> PlanKey:
        return cls(3, width, height, depth)

    @property
    def shape(self) -> tuple[int, ...]:
        """Array shape in row-major order (slowest axis first)."""
        if self.dims == 1:
            return (self.width,)
        if self.dims == 2:
            return (self.height, self.width)
        return (self.depth, self.height, self.width)

    @property
    def elements(self) -> int:
        return self.width * self.height * self.depth


@dataclass(eq=False)
class FFTPlan:
    """A reusable transform context for exactly one shape.

    ``handle`` is backend specific (FFTW plans, cuFFT plan, or None for
    backends that plan internally).
    """

    key: PlanKey
    backend: str
    handle: Any = None


class TransformBackend(ABC):
    """Abstract base class for transform backends.

    All backends must implement:
    - create_plan(): Build a plan for one shape
    - transform(): Execute a plan in place on an interleaved buffer
    - name property: Return backend identifier
    """

    # Memory space the backend's buffers live in ('host' or 'cuda')
    memory = "host"

    @abstractmethod
    def create_plan(self, key: PlanKey) -> FFTPlan:
        """Build a transform plan for ``key``.

        Raises:
            ResourceError: If the plan cannot be allocated
        """

    @abstractmethod
    def transform(self, plan: FFTPlan, buffer: Any, inverse: bool) -> None:
        """Transform ``buffer`` in place.

        Args:
            plan: Plan matching the buffer's shape
            buffer: float32 interleaved complex buffer of 2 * plan.key.elements
            inverse: Run the unnormalized inverse transform
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return backend identifier (e.g., 'scipy', 'fftw', 'cufft')."""

    @staticmethod
    def _check_buffer(plan: FFTPlan, buffer: Any) -> None:
        expected = 2 * plan.key.elements
        if buffer.size != expected:
            from accelvec.errors import SizeMismatchError

            raise SizeMismatchError(expected, int(buffer.size))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
