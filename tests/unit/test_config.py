"""Tests for YAML configuration and environment overrides."""
from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from accelvec import config as config_module
from accelvec.config import AppConfig, build_factory, coerce_env_value, install_from_config, load_config
from accelvec.device import EmulatedDevice, cupy_device
from accelvec.errors import ConsistencyError, ResourceError
from accelvec.linalg import AccelVectorFactory, HostVectorFactory, get_current_factory


def _write(tmp_path: Path, data) -> str:
    path = tmp_path / "accelvec.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def no_env(monkeypatch):
    monkeypatch.setattr(config_module, "os_environ_items", lambda: [])


def test_defaults_without_file(no_env, tmp_path: Path) -> None:
    cfg = load_config(str(tmp_path / "missing.yaml"))
    assert cfg.engine.backend == "host"
    assert cfg.engine.fft == "auto"
    assert cfg.engine.staging_buffer_bytes == 16 * 1024 * 1024
    assert cfg.logging.level == "INFO"


def test_load_yaml(no_env, tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "engine": {"backend": "accel", "device": "emulated", "fft": "numpy", "fftw_threads": 4},
            "logging": {"level": "DEBUG"},
        },
    )

    cfg = load_config(path)

    assert cfg.engine.backend == "accel"
    assert cfg.engine.device == "emulated"
    assert cfg.engine.fftw_threads == 4
    assert cfg.logging.level == "DEBUG"


def test_env_overrides(monkeypatch, tmp_path: Path) -> None:
    path = _write(tmp_path, {"engine": {"backend": "host"}})
    monkeypatch.setattr(
        config_module,
        "os_environ_items",
        lambda: [
            ("ACCELVEC__ENGINE__BACKEND", "accel"),
            ("ACCELVEC__ENGINE__STAGING_BUFFER_BYTES", "4096"),
            ("ACCELVEC__LOGGING__LEVEL", "warn"),
            ("ACCELVEC__UNKNOWN__KEY", "ignored"),
            ("ACCELVEC__MALFORMED", "ignored"),
            ("OTHER__ENGINE__BACKEND", "ignored"),
        ],
    )

    cfg = load_config(path)

    assert cfg.engine.backend == "accel"
    assert cfg.engine.staging_buffer_bytes == 4096
    assert cfg.logging.level == "warn"


def test_non_mapping_root_rejected(no_env, tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_unknown_key_rejected(no_env, tmp_path: Path) -> None:
    path = _write(tmp_path, {"engine": {"turbo": True}})
    with pytest.raises(TypeError):
        load_config(path)


def test_invalid_backend_rejected(no_env, tmp_path: Path) -> None:
    path = _write(tmp_path, {"engine": {"backend": "quantum"}})
    with pytest.raises(ValueError):
        load_config(path)


def test_coerce_env_value() -> None:
    assert coerce_env_value("true") is True
    assert coerce_env_value("FALSE") is False
    assert coerce_env_value("42") == 42
    assert coerce_env_value("scipy") == "scipy"


def test_build_host_factory() -> None:
    cfg = AppConfig()
    cfg.engine.fft = "numpy"
    factory = build_factory(cfg)
    assert isinstance(factory, HostVectorFactory)
    assert factory.plan_pool.backend.name == "numpy"


def test_build_emulated_factory(caplog) -> None:
    cfg = AppConfig()
    cfg.engine.backend = "accel"
    cfg.engine.device = "emulated"
    cfg.engine.fft = "numpy"
    cfg.engine.staging_buffer_bytes = 8192
    cfg.engine.memory_limit_bytes = 1024

    with caplog.at_level(logging.INFO, logger="accelvec"):
        factory = build_factory(cfg)

    assert isinstance(factory, AccelVectorFactory)
    assert isinstance(factory.context, EmulatedDevice)
    assert factory.context.staging.capacity_bytes == 8192
    assert factory.plan_pool.backend.name == "numpy"
    assert "emulated" in caplog.text


def test_install_from_config() -> None:
    cfg = AppConfig()
    cfg.engine.fft = "numpy"

    factory = install_from_config(cfg)
    assert get_current_factory() is factory

    with pytest.raises(ConsistencyError):
        install_from_config(cfg)
    assert install_from_config(cfg, replace=True) is get_current_factory()


@pytest.mark.skipif(cupy_device.is_available(), reason="auto selects CUDA when present")
def test_memory_limit_applies_to_auto_device() -> None:
    cfg = AppConfig()
    cfg.engine.backend = "accel"
    cfg.engine.device = "auto"
    cfg.engine.fft = "numpy"
    cfg.engine.memory_limit_bytes = 1024

    factory = build_factory(cfg)

    assert isinstance(factory.context, EmulatedDevice)
    factory.create_real(256)
    with pytest.raises(ResourceError):
        factory.create_real(1)
