"""Shared pytest fixtures for accelvec tests."""

import numpy as np
import pytest

from accelvec.device import EmulatedDevice
from accelvec.linalg import AccelVectorFactory, HostVectorFactory, reset_current_factory


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def host_factory() -> HostVectorFactory:
    return HostVectorFactory(fft="scipy")


@pytest.fixture
def device() -> EmulatedDevice:
    """Emulated accelerator with a small staging buffer."""
    return EmulatedDevice(staging_bytes=1 << 20, fft="scipy")


@pytest.fixture
def accel_factory(device: EmulatedDevice) -> AccelVectorFactory:
    return AccelVectorFactory(device)


@pytest.fixture
def fill(rng):
    """Fill a vector with random float32 data through its raw buffer.

    Returns the data written so tests can compare against numpy.
    """

    def _fill(vec, scale: float = 1.0) -> np.ndarray:
        data = vec.vector_data()
        values = (rng.standard_normal(data.size) * scale).astype(np.float32)
        data[:] = values
        vec.sync_buffer()
        return values.copy()

    return _fill


@pytest.fixture(autouse=True)
def _isolate_current_factory():
    reset_current_factory()
    yield
    reset_current_factory()
