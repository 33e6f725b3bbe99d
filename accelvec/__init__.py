from accelvec.errors import (
    AccelVecError,
    ConsistencyError,
    DependencyResolutionError,
    InvalidSizeError,
    PlacementError,
    ResourceError,
    SizeMismatchError,
    UnsupportedOperationError,
)
from accelvec.linalg import (
    AccelVectorFactory,
    Backend,
    HostVectorFactory,
    VectorFactory,
    get_current_factory,
    set_current_factory,
)

__all__ = [
    "__version__",
    "AccelVecError",
    "AccelVectorFactory",
    "Backend",
    "ConsistencyError",
    "DependencyResolutionError",
    "HostVectorFactory",
    "InvalidSizeError",
    "PlacementError",
    "ResourceError",
    "SizeMismatchError",
    "UnsupportedOperationError",
    "VectorFactory",
    "get_current_factory",
    "set_current_factory",
]

__version__ = "0.1.0"
