"""Host/device coherence tracking for accelerator-backed vectors.

Each accelerator vector keeps a host buffer and a device buffer. Two dirty
flags record which side holds the authoritative data; copies happen lazily,
only when the other side is about to be read:

    SYNCED  --kernel write-->  DEVICE_AUTHORITATIVE  --ensure_host_current-->  SYNCED
    SYNCED  --host write-->    HOST_AUTHORITATIVE    --ensure_device_current-->  SYNCED

Both flags set at once means an operation wrote to both sides without
resolving one of them first. That is a bug and raises ConsistencyError; no
side is ever picked to win.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable

from accelvec.errors import ConsistencyError


class CoherenceState(Enum):
    SYNCED = "synced"
    DEVICE_AUTHORITATIVE = "device"
    HOST_AUTHORITATIVE = "host"


class Coherence:
    """Dirty-flag state machine for one vector.

    Args:
        upload: Copies the host buffer to the device buffer
        download: Copies the device buffer to the host buffer
    """

    def __init__(self, upload: Callable[[], None], download: Callable[[], None]):
        self._upload = upload
        self._download = download
        self.device_dirty = False
        self.host_dirty = False
        self.transfers = 0

    def _check(self) -> None:
        if self.device_dirty and self.host_dirty:
            raise ConsistencyError("Changes occurred to both device and host memory")

    @property
    def state(self) -> CoherenceState:
        self._check()
        if self.device_dirty:
            return CoherenceState.DEVICE_AUTHORITATIVE
        if self.host_dirty:
            return CoherenceState.HOST_AUTHORITATIVE
        return CoherenceState.SYNCED

    def ensure_device_current(self) -> None:
        self._check()
        if self.host_dirty:
            self._upload()
            self.transfers += 1
            self.host_dirty = False

    def ensure_host_current(self) -> None:
        self._check()
        if self.device_dirty:
            self._download()
            self.transfers += 1
            self.device_dirty = False

    def device_written(self) -> None:
        """A kernel wrote the device buffer after ensure_device_current."""
        self.device_dirty = True
        self._check()

    def host_written(self) -> None:
        """The host buffer was written after ensure_host_current."""
        self.host_dirty = True
        self._check()

    def device_overwritten(self) -> None:
        """A kernel replaced the whole device buffer; stale host edits are void."""
        self.host_dirty = False
        self.device_dirty = True

    def host_overwritten(self) -> None:
        """The whole host buffer was replaced; stale device results are void."""
        self.device_dirty = False
        self.host_dirty = True

    def make_coherent(self) -> None:
        """Resolve whichever side is dirty. Only affects when copies happen."""
        self._check()
        if self.host_dirty:
            self.ensure_device_current()
        if self.device_dirty:
            self.ensure_host_current()

    def __repr__(self) -> str:
        return (
            f"Coherence(device_dirty={self.device_dirty}, host_dirty={self.host_dirty}, "
            f"transfers={self.transfers})"
        )
