"""Board communication boundary used by acquisition code that drives the
pattern display hardware feeding the reconstruction pipeline.

Only the link contract lives here: the error taxonomy, identifiers, the
``CommLink`` protocol and an in-memory ``FakeCommLink`` for tests and
development. Hardware drivers implement ``CommLink`` elsewhere.
"""

from __future__ import annotations

import logging
from typing import Protocol

from accelvec.errors import AccelVecError

logger = logging.getLogger(__name__)

# USB vendor/product identifiers and serial settings
FDD_VID = 0x19EC
R4_HID_PID = 0x0301
R4_WINUSB_PID = 0x0403
R4_WINUSB_GUID = "54ED7AC9-CC23-4165-BE32-79016BAFB950"
R4_RS232_BAUDRATE = 115200
ATMEL_VID = 0x03EB
ATMEL_SAM_BA_PID = 0x6124
ATMEL_SAM_BA_BAUDRATE = 115200


class CommError(AccelVecError):
    """Base class for board link errors.

    Attributes:
        code: Numeric error code reported by the link or board
        message: Human readable description
    """

    # Whether the connection should be dropped rather than reused
    disconnect_recommended = False

    def __init__(self, message: str, code: int = 0):
        super().__init__(f"{message} (code {code})")
        self.message = message
        self.code = code


class BoardError(CommError):
    """The board rejected or failed a request."""


class ConnectionFatalError(CommError):
    """The link is broken; reconnect before continuing."""

    disconnect_recommended = True


class PacketError(CommError):
    """Malformed or out-of-sequence packet on the link."""

    disconnect_recommended = True


class CommTimeoutError(CommError, TimeoutError):
    disconnect_recommended = True


class CommMemoryError(CommError):
    """Flash or buffer access outside the available memory."""


class LoggingError(CommError):
    """Board-side logging failed; the link itself is fine."""


class CommLink(Protocol):
    def enumerate(self, vid: int, pid: int) -> list[str]:
        """Return device paths of attached boards with the given identifiers."""
        ...

    def open(self, path: str, timeout: int, baud: int = R4_RS232_BAUDRATE, resync: bool = True) -> None: ...

    def set_timeout(self, timeout: int) -> None: ...

    def get_timeout(self) -> int: ...

    def close(self) -> None: ...

    def flash_read(self, offset: int, length: int) -> bytes: ...

    def flash_write(self, data: bytes, offset: int) -> None: ...


class FakeCommLink:
    """In-memory board with a flash image.

    Args:
        devices: Mapping of device path to (vid, pid)
        flash_size: Size of the flash image in bytes
    """

    def __init__(
        self,
        devices: dict[str, tuple[int, int]] | None = None,
        flash_size: int = 64 * 1024,
    ):
        if devices is None:
            devices = {"fake0": (FDD_VID, R4_HID_PID)}
        self.devices = dict(devices)
        self.flash = bytearray(b"\xff" * flash_size)
        self._path: str | None = None
        self._timeout = 0

    @property
    def is_open(self) -> bool:
        return self._path is not None

    def enumerate(self, vid: int, pid: int) -> list[str]:
        return sorted(p for p, ids in self.devices.items() if ids == (vid, pid))

    def open(self, path: str, timeout: int, baud: int = R4_RS232_BAUDRATE, resync: bool = True) -> None:
        if path not in self.devices:
            raise ConnectionFatalError(f"No such device: {path}", code=-1)
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        self._path = path
        self._timeout = timeout
        logger.info(f"Opened fake board link {path} (timeout={timeout}ms, baud={baud})")

    def _require_open(self) -> None:
        if self._path is None:
            raise ConnectionFatalError("Link is not open", code=-2)

    def set_timeout(self, timeout: int) -> None:
        self._require_open()
        self._timeout = timeout

    def get_timeout(self) -> int:
        self._require_open()
        return self._timeout

    def close(self) -> None:
        if self._path is not None:
            logger.info(f"Closed fake board link {self._path}")
        self._path = None

    def _check_range(self, offset: int, length: int) -> None:
        if offset < 0 or length < 0 or offset + length > len(self.flash):
            raise CommMemoryError(
                f"Flash access {offset}+{length} outside {len(self.flash)}-byte image", code=-3
            )

    def flash_read(self, offset: int, length: int) -> bytes:
        self._require_open()
        self._check_range(offset, length)
        return bytes(self.flash[offset : offset + length])

    def flash_write(self, data: bytes, offset: int) -> None:
        self._require_open()
        self._check_range(offset, len(data))
        self.flash[offset : offset + len(data)] = data
