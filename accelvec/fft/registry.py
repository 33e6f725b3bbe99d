"""Transform backend registry with capability probing.

Candidates are probed in priority order; the first whose dependencies import
and initialize becomes the active implementation. A candidate that fails is
logged and skipped. Only when every candidate failed is the failure fatal.

Priority order (auto mode):
- host memory: pyFFTW, scipy, numpy
- CUDA memory: cuFFT (CuPy)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from accelvec.errors import DependencyResolutionError

from .base import TransformBackend

logger = logging.getLogger(__name__)

# Backend registry
_BACKENDS: dict[str, type[TransformBackend]] = {}
_registry_lock = threading.Lock()

HOST_CANDIDATES = ("fftw", "scipy", "numpy")
CUDA_CANDIDATES = ("cufft",)


def _try_create_backend(name: str, **kwargs: Any) -> TransformBackend | None:
    """Try to create a backend, returning None if unavailable."""
    if name not in _BACKENDS:
        logger.debug(f"Transform backend '{name}' is not registered")
        return None

    try:
        return _BACKENDS[name](**kwargs)
    except ImportError as e:
        logger.debug(f"Transform backend '{name}' not available: {e}")
        return None
    except Exception as e:
        logger.warning(f"Failed to initialize transform backend '{name}': {e}")
        return None


def resolve_backend(
    preference: str = "auto",
    candidates: Sequence[str] = HOST_CANDIDATES,
    **kwargs: Any,
) -> TransformBackend:
    """Select the transform backend for one memory space.

    Args:
        preference: Backend name or 'auto'. A named backend is tried first;
            the remaining candidates are still probed if it fails.
        candidates: Backends able to operate on the memory space, in priority order
        **kwargs: Backend-specific options (threads, planner_effort, workers)

    Raises:
        DependencyResolutionError: If no candidate could be initialized
    """
    _ensure_registered()

    order = list(candidates)
    if preference != "auto":
        if preference not in order:
            logger.warning(
                f"Requested transform backend '{preference}' cannot operate on this memory "
                f"space; probing {order}"
            )
        else:
            order.remove(preference)
            order.insert(0, preference)

    for name in order:
        backend = _try_create_backend(name, **kwargs)
        if backend is not None:
            if preference not in ("auto", backend.name):
                logger.warning(
                    f"Requested transform backend '{preference}' not available, "
                    f"falling back to {backend.name}"
                )
            logger.info(f"Selected transform backend: {backend.name}")
            return backend

    raise DependencyResolutionError(
        f"No transform backend available (tried {', '.join(order) or 'nothing'})"
    )


def available_backends() -> list[str]:
    """Get list of available backend names."""
    _ensure_registered()

    available = []
    for name in _BACKENDS:
        try:
            _BACKENDS[name]()
            available.append(name)
        except ImportError:
            pass
        except Exception as e:
            logger.debug(f"Transform backend '{name}' failed to initialize: {e}")

    return available


def _ensure_registered() -> None:
    """Ensure all backends are registered."""
    with _registry_lock:
        if _BACKENDS:
            return

        # numpy is always available
        from .scipy_backend import NumpyTransformBackend, ScipyTransformBackend

        # Optional backends; constructors raise ImportError when unresolvable
        from .cupy_backend import CuFFTTransformBackend
        from .fftw_backend import FFTWTransformBackend

        _BACKENDS.update(
            numpy=NumpyTransformBackend,
            scipy=ScipyTransformBackend,
            fftw=FFTWTransformBackend,
            cufft=CuFFTTransformBackend,
        )
        logger.debug(f"Registered transform backends: {list(_BACKENDS.keys())}")
