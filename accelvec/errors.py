"""Error taxonomy for the vector engine.

Every error raised by accelvec derives from AccelVecError and also from the
closest built-in exception, so callers can catch either.
"""

from __future__ import annotations


class AccelVecError(Exception):
    """Base class for all accelvec errors."""


class InvalidSizeError(AccelVecError, ValueError):
    """A vector was requested with a non-positive size."""

    def __init__(self, size: int):
        super().__init__(f"Vector size must be positive, got {size}")
        self.size = size


class SizeMismatchError(AccelVecError, ValueError):
    """Operand vectors disagree in length."""

    def __init__(self, expected: int, actual: int, index: int | None = None):
        where = f" (operand {index})" if index is not None else ""
        super().__init__(f"Vector length mismatch{where}: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual
        self.index = index


class PlacementError(AccelVecError, ValueError):
    """A 2D paste would write outside the destination vector."""


class ConsistencyError(AccelVecError, RuntimeError):
    """Internal invariant violated (dirty flags, foreign operands, pool misuse)."""


class ResourceError(AccelVecError, MemoryError):
    """Allocation of a vector, staging buffer or plan failed."""


class UnsupportedOperationError(AccelVecError, NotImplementedError):
    """The current backend does not implement this capability yet."""


class DependencyResolutionError(AccelVecError, ImportError):
    """No candidate implementation could resolve its dependencies."""
