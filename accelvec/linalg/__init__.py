"""Backend-agnostic vector algebra.

Usage:
    from accelvec.linalg import AccelVectorFactory, HostVectorFactory

    factory = AccelVectorFactory.open("auto")
    img = factory.create_complex_2d(512, 512)
    img.set_from_16bit_pixels(raw)
    img.fft2d()
"""

from .accel import AccelComplexVector, AccelComplexVector2D, AccelRealVector, AccelVectorFactory
from .base import Backend, ComplexVector, RealVector, Vector
from .coherence import Coherence, CoherenceState
from .factory import (
    VectorFactory,
    create_complex,
    create_complex_2d,
    create_real,
    get_current_factory,
    get_default_factory,
    reset_current_factory,
    set_current_factory,
    sync_concurrent,
)
from .host import (
    HostComplexVector,
    HostComplexVector2D,
    HostComplexVector3D,
    HostRealVector,
    HostVectorFactory,
)
from .vec2d import Complex2DMixin

__all__ = [
    "AccelComplexVector",
    "AccelComplexVector2D",
    "AccelRealVector",
    "AccelVectorFactory",
    "Backend",
    "Coherence",
    "CoherenceState",
    "Complex2DMixin",
    "ComplexVector",
    "HostComplexVector",
    "HostComplexVector2D",
    "HostComplexVector3D",
    "HostRealVector",
    "HostVectorFactory",
    "RealVector",
    "Vector",
    "VectorFactory",
    "create_complex",
    "create_complex_2d",
    "create_real",
    "get_current_factory",
    "get_default_factory",
    "reset_current_factory",
    "set_current_factory",
    "sync_concurrent",
]
