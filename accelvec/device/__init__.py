"""Accelerator devices.

A device context owns a memory space separate from the host plus the opaque
kernels that operate on it:
- emulated: numpy-backed device memory with a bounded staging buffer
- cuda: NVIDIA CUDA GPU via CuPy

Usage:
    from accelvec.device import open_device

    ctx = open_device("auto", staging_bytes=16 << 20)
"""

from .base import DeviceBuffer, DeviceContext, StagingBuffer
from .emulated import EmulatedDevice
from .registry import available_devices, open_device

__all__ = [
    "DeviceBuffer",
    "DeviceContext",
    "EmulatedDevice",
    "StagingBuffer",
    "available_devices",
    "open_device",
]
