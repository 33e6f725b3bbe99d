from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import yaml

from accelvec.device.base import DEFAULT_STAGING_BYTES

if TYPE_CHECKING:
    from accelvec.linalg.factory import VectorFactory

logger = logging.getLogger(__name__)

BackendName = Literal["host", "accel"]
DeviceName = Literal["auto", "cuda", "emulated"]


@dataclass
class EngineConfig:
    backend: BackendName = "host"
    # Accelerator device; ignored for the host backend
    device: DeviceName = "auto"
    # Transform backend preference: auto, fftw, scipy, numpy or cufft
    fft: str = "auto"
    staging_buffer_bytes: int = DEFAULT_STAGING_BYTES
    fftw_threads: int = 1
    # Emulated device only: fail allocations beyond this many bytes
    memory_limit_bytes: int | None = None

    def __post_init__(self) -> None:
        if self.backend not in ("host", "accel"):
            raise ValueError(f"engine.backend must be 'host' or 'accel', got {self.backend!r}")
        if self.staging_buffer_bytes <= 0:
            raise ValueError("engine.staging_buffer_bytes must be positive")


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = ("engine", "logging")


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("Config root must be a mapping")
        return data


def load_config(path_str: str | None = None) -> AppConfig:
    """Load configuration from YAML (missing file means defaults) plus env overrides."""
    raw: dict[str, Any] = _read_yaml(Path(path_str)) if path_str else {}

    # Environment overrides (prefix ACCELVEC__SECTION__KEY)
    # Example: ACCELVEC__ENGINE__BACKEND=accel
    prefix = "ACCELVEC__"
    for k, v in os_environ_items():
        if not k.startswith(prefix):
            continue
        parts = k[len(prefix) :].split("__")
        if len(parts) != 2:
            continue
        section, key = parts
        section = section.lower()
        key = key.lower()
        if section not in _SECTIONS:
            continue
        if raw.get(section) is None:
            raw[section] = {}
        if isinstance(raw[section], dict):
            raw[section][key] = coerce_env_value(v)

    for section in _SECTIONS:
        value = raw.get(section)
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"Config section '{section}' must be a mapping")

    return AppConfig(
        engine=EngineConfig(**(raw.get("engine") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )


def coerce_env_value(val: str) -> Any:
    # Basic bool/int coercion for convenience
    lower = val.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    try:
        return int(val)
    except ValueError:
        return val


def os_environ_items() -> list[tuple[str, str]]:
    # Wrapped for testability
    from os import environ

    return [(k, v) for k, v in environ.items()]


def build_factory(config: AppConfig) -> VectorFactory:
    """Create the vector factory described by ``config.engine``."""
    from accelvec.device import open_device
    from accelvec.linalg import AccelVectorFactory, HostVectorFactory

    engine = config.engine
    if engine.backend == "host":
        return HostVectorFactory(fft=engine.fft, threads=engine.fftw_threads)

    kwargs: dict[str, Any] = {
        "staging_bytes": engine.staging_buffer_bytes,
        "fft": engine.fft,
        "threads": engine.fftw_threads,
    }
    if engine.memory_limit_bytes is not None:
        kwargs["memory_limit_bytes"] = engine.memory_limit_bytes
    context = open_device(engine.device, **kwargs)
    logger.info(f"Accelerator backend on device '{context.name}'")
    return AccelVectorFactory(context)


def install_from_config(config: AppConfig, replace: bool = False) -> VectorFactory:
    """Build the configured factory and make it the process-wide current one."""
    from accelvec.linalg import set_current_factory

    factory = build_factory(config)
    set_current_factory(factory, replace=replace)
    return factory
