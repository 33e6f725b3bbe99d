"""Emulated accelerator backed by numpy.

Device memory is a set of numpy arrays owned by the context and never handed
to callers; every host/device transfer goes through a bounded staging buffer,
the way a co-processor without direct host addressing behaves. Useful for
development and tests on machines without a GPU, and as the reference for
the accelerator coherence protocol.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from accelvec.errors import ResourceError
from accelvec.typing import NDArrayFloat

from .base import DEFAULT_STAGING_BYTES, DeviceBuffer, DeviceContext, StagingBuffer

logger = logging.getLogger(__name__)


class EmulatedDevice(DeviceContext):
    """Numpy-backed device with optional memory limit.

    Args:
        staging_bytes: Capacity of the host transfer buffer
        memory_limit_bytes: Fail allocations beyond this many bytes of
            device memory (None for unlimited)
        fft: Transform backend preference ('auto', 'fftw', 'scipy', 'numpy')
    """

    xp = np
    transform_candidates = ("fftw", "scipy", "numpy")

    def __init__(
        self,
        staging_bytes: int = DEFAULT_STAGING_BYTES,
        memory_limit_bytes: int | None = None,
        fft: str = "auto",
        **fft_options: Any,
    ):
        super().__init__(fft=fft, **fft_options)
        try:
            memory = np.empty(staging_bytes, dtype=np.uint8)
        except (MemoryError, ValueError) as e:
            raise ResourceError(f"Cannot allocate {staging_bytes}-byte staging buffer: {e}") from e
        self._staging = StagingBuffer(staging_bytes, memory)
        self._memory_limit = memory_limit_bytes
        self._allocated_bytes = 0
        self._alloc_lock = threading.Lock()
        self.sync_count = 0
        logger.info(
            f"Emulated device initialized (staging={staging_bytes} bytes, "
            f"limit={memory_limit_bytes})"
        )

    @property
    def name(self) -> str:
        return "emulated"

    @property
    def staging(self) -> StagingBuffer:
        return self._staging

    @property
    def allocated_bytes(self) -> int:
        with self._alloc_lock:
            return self._allocated_bytes

    def _alloc(self, length: int) -> Any:
        nbytes = length * 4
        with self._alloc_lock:
            if self._memory_limit is not None and self._allocated_bytes + nbytes > self._memory_limit:
                raise ResourceError(
                    f"Device memory exhausted: {nbytes} bytes requested, "
                    f"{self._memory_limit - self._allocated_bytes} available"
                )
            try:
                handle = np.zeros(length, dtype=np.float32)
            except MemoryError as e:
                raise ResourceError(f"No memory for allocating {length}-float device vector") from e
            self._allocated_bytes += nbytes
        return handle

    def _free(self, handle: Any) -> None:
        with self._alloc_lock:
            self._allocated_bytes -= handle.nbytes

    def upload(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        with self._staging.reserve(host.nbytes) as stage:
            staged = stage.view(np.float32)
            staged[:] = host
            buf.handle[: staged.size] = staged

    def download(self, buf: DeviceBuffer, host: NDArrayFloat) -> None:
        with self._staging.reserve(host.nbytes) as stage:
            staged = stage.view(np.float32)
            staged[:] = buf.handle[: staged.size]
            host[:] = staged

    def _stage_to_device(self, staged: Any) -> Any:
        return np.array(staged)

    def synchronize(self) -> None:
        # Kernels run in-line; nothing is ever queued
        self.sync_count += 1
