"""Accelerator device registry with auto-detection.

Priority order (auto mode):
1. CuPy (CUDA) - NVIDIA GPU
2. Emulated - numpy-backed device memory (always available)
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from accelvec.errors import DependencyResolutionError

from .base import DeviceContext

logger = logging.getLogger(__name__)

# Device registry
_DEVICES: dict[str, type[DeviceContext]] = {}
_registry_lock = threading.Lock()

_AUTO_PRIORITY = ("cuda", "emulated")


def _try_open_device(name: str, **kwargs: Any) -> DeviceContext | None:
    """Try to open a device, returning None if unavailable."""
    if name not in _DEVICES:
        logger.debug(f"Device '{name}' is not registered")
        return None

    try:
        return _DEVICES[name](**kwargs)
    except ImportError as e:
        logger.debug(f"Device '{name}' not available: {e}")
        return None
    except Exception as e:
        logger.warning(f"Failed to initialize device '{name}': {e}")
        return None


def open_device(device: str = "auto", **kwargs: Any) -> DeviceContext:
    """Open an accelerator device by name or auto-detect the best available.

    Args:
        device: 'auto', 'cuda' or 'emulated'
        **kwargs: Device-specific arguments (staging_bytes, fft, ...)

    Raises:
        DependencyResolutionError: If no candidate device could be opened
    """
    _ensure_registered()

    if device == "auto":
        priority: tuple[str, ...] = _AUTO_PRIORITY
    else:
        priority = (device,)

    for name in priority:
        ctx = _try_open_device(name, **kwargs)
        if ctx is not None:
            logger.info(f"Selected accelerator device: {ctx.name}")
            return ctx

    raise DependencyResolutionError(f"No accelerator device available (tried {', '.join(priority)})")


def available_devices() -> list[str]:
    """Get list of registered device names whose dependencies resolve."""
    _ensure_registered()

    from . import cupy_device

    available = []
    for name in _DEVICES:
        if name == "cuda" and not cupy_device.is_available():
            continue
        available.append(name)
    return available


def _ensure_registered() -> None:
    """Ensure all devices are registered."""
    with _registry_lock:
        if _DEVICES:
            return

        from .emulated import EmulatedDevice

        devices: dict[str, type[DeviceContext]] = {"emulated": EmulatedDevice}
        try:
            from .cupy_device import CuPyDevice, is_available

            if is_available():
                devices["cuda"] = CuPyDevice
        except ImportError:
            pass

        _DEVICES.update(devices)
        logger.debug(f"Registered devices: {list(_DEVICES.keys())}")
