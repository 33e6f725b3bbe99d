"""Vector factories and the process-wide current factory.

Library code should take a factory argument. The module-level helpers are
for the outermost entry point only.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from accelvec.errors import ConsistencyError, UnsupportedOperationError

from .base import Backend, validate_size

if TYPE_CHECKING:
    from accelvec.fft.pool import PlanPool

    from .base import ComplexVector, RealVector
    from .vec2d import Complex2DMixin

logger = logging.getLogger(__name__)


class VectorFactory(ABC):
    """Creates zero-initialized vectors bound to one backend."""

    backend: Backend = Backend.HOST

    @abstractmethod
    def create_real(self, n: int) -> RealVector:
        """Return a new real-valued vector of length n."""

    @abstractmethod
    def create_complex(self, n: int) -> ComplexVector:
        """Return a new complex-valued vector of length n."""

    @abstractmethod
    def create_complex_2d(self, width: int, height: int) -> Complex2DMixin:
        """Return a new width x height complex vector."""

    def create_complex_3d(self, width: int, height: int, depth: int) -> ComplexVector:
        raise UnsupportedOperationError(
            f"3D vectors are not supported by the {self.backend.value} backend"
        )

    def create_real_array(self, count: int, n: int) -> list[RealVector]:
        validate_size(count)
        return [self.create_real(n) for _ in range(count)]

    def create_complex_array(self, count: int, n: int) -> list[ComplexVector]:
        validate_size(count)
        return [self.create_complex(n) for _ in range(count)]

    @abstractmethod
    def sync_concurrent(self) -> None:
        """Block until all queued backend work has completed."""

    @property
    @abstractmethod
    def plan_pool(self) -> PlanPool:
        """FFT plan pool for vectors of this factory."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(backend={self.backend.value})"


_lock = threading.Lock()
_default_factory: VectorFactory | None = None
_current_factory: VectorFactory | None = None


def get_default_factory() -> VectorFactory:
    """The host factory used when no current factory was set."""
    global _default_factory
    with _lock:
        if _default_factory is None:
            from .host import HostVectorFactory

            _default_factory = HostVectorFactory()
        return _default_factory


def set_current_factory(factory: VectorFactory, replace: bool = False) -> None:
    """Install the process-wide factory.

    Raises:
        ConsistencyError: If a different factory is already installed and
            ``replace`` is not set
    """
    global _current_factory
    if factory is None:
        raise ConsistencyError("Current factory cannot be None")
    with _lock:
        if _current_factory is not None and _current_factory is not factory and not replace:
            raise ConsistencyError(f"Current factory already set to {_current_factory!r}")
        _current_factory = factory
    logger.info(f"Current vector factory: {factory!r}")


def reset_current_factory() -> None:
    """Forget the installed factory (the default is used again)."""
    global _current_factory
    with _lock:
        _current_factory = None


def get_current_factory() -> VectorFactory:
    with _lock:
        factory = _current_factory
    return factory if factory is not None else get_default_factory()


def create_real(n: int) -> RealVector:
    return get_current_factory().create_real(n)


def create_complex(n: int) -> ComplexVector:
    return get_current_factory().create_complex(n)


def create_complex_2d(width: int, height: int) -> Complex2DMixin:
    return get_current_factory().create_complex_2d(width, height)


def sync_concurrent() -> None:
    get_current_factory().sync_concurrent()
