"""CuPy device - NVIDIA CUDA GPU acceleration.

Vectors live in CUDA global memory; kernels are CuPy elementwise operations
issued on the current stream, so they run asynchronously with respect to the
calling thread until ``synchronize`` is called.

Install: pip install cupy-cuda12x (adjust for your CUDA version)
Requires: NVIDIA GPU with CUDA support
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from accelvec.errors import ResourceError
from accelvec.typing import NDArrayFloat

from .base import DEFAULT_STAGING_BYTES, DeviceBuffer, DeviceContext, StagingBuffer

logger = logging.getLogger(__name__)

# Try to import CuPy
_cp: Any | None = None
_cupyx: Any | None = None
CUPY_AVAILABLE = False

try:
    import cupy as cp
    import cupyx

    _cp = cp
    _cupyx = cupyx
    CUPY_AVAILABLE = True
except ImportError:
    pass


class CuPyDevice(DeviceContext):
    """CUDA device context using CuPy.

    Host transfers go through a page-locked staging buffer when
    ``use_staging`` is set (the default); otherwise CuPy copies directly
    from pageable host memory. 16-bit pixel ingestion always stages.
    ``memory_limit_bytes`` caps CuPy's default memory pool.
    """

    transform_candidates = ("cufft",)

    def __init__(
        self,
        staging_bytes: int = DEFAULT_STAGING_BYTES,
        device_id: int = 0,
        use_staging: bool = True,
        memory_limit_bytes: int | None = None,
        fft: str = "auto",
        **fft_options: Any,
    ):
        if not CUPY_AVAILABLE or _cp is None or _cupyx is None:
            raise ImportError(
                "CuPy not available. Install with: pip install cupy-cuda12x\n"
                "Requires NVIDIA GPU with CUDA support"
            )
        super().__init__(fft=fft, **fft_options)
        self._cp = _cp
        self.xp = _cp
        self._device = _cp.cuda.Device(device_id)
        self._device.use()
        self._use_staging = use_staging
        if memory_limit_bytes is not None:
            # Pool allocations beyond the limit raise OutOfMemoryError, mapped to ResourceError
            _cp.get_default_memory_pool().set_limit(size=memory_limit_bytes)

        try:
            pinned = _cupyx.empty_pinned((staging_bytes,), dtype=np.uint8)
        except Exception as e:
            raise ResourceError(f"Cannot allocate {staging_bytes}-byte pinned staging buffer: {e}") from e
        self._staging = StagingBuffer(staging_bytes, pinned)

        try:
            props = _cp.cuda.runtime.getDeviceProperties(device_id)
            gpu_name = props["name"].decode() if isinstance(props["name"], bytes) else props["name"]
            logger.info(f"CuPy device initialized on {gpu_name} (staging={staging_bytes} bytes)")
        except Exception:
            logger.info(f"CuPy device initialized (device_id={device_id})")

    @property
    def name(self) -> str:
        return "cuda"

    @property
    def staging(self) -> StagingBuffer:
        return self._staging

    def _alloc(self, length: int) -> Any:
        try:
            with self._device:
                return self._cp.zeros(length, dtype=self._cp.float32)
        except self._cp.cuda.memory.OutOfMemoryError as e:
            raise ResourceError(f"No memory for allocating {length}-float device vector") from e

    def upload(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        if not self._use_staging:
            buf.handle[: host.size].set(host)
            return
        with self._staging.reserve(host.nbytes) as stage:
            staged = stage.view(np.float32)
            staged[:] = host
            buf.handle[: staged.size].set(staged)
            # The staging buffer is reused by the next transfer
            self._cp.cuda.get_current_stream().synchronize()

    def download(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        if not self._use_staging:
            buf.handle[: host.size].get(out=host)
            return
        with self._staging.reserve(host.nbytes) as stage:
            staged = stage.view(np.float32)
            buf.handle[: staged.size].get(out=staged)
            host[:] = staged

    def _stage_to_device(self, staged: Any) -> Any:
        samples = self._cp.asarray(staged)
        self._cp.cuda.get_current_stream().synchronize()
        return samples

    def synchronize(self) -> None:
        self._device.synchronize()


def is_available() -> bool:
    """Check if the CuPy device is available."""
    if not CUPY_AVAILABLE or _cp is None:
        return False
    try:
        return bool(_cp.cuda.runtime.getDeviceCount() > 0)
    except Exception:
        return False
