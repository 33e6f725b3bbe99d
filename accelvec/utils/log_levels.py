from __future__ import annotations

import logging

_LEVEL_ALIASES: dict[str, int] = {
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "TRACE": logging.DEBUG,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_log_level(value: str | int | None, default: int) -> int:
    """Parse a log level name or number into a numeric level."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    raw = value.strip()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    key = raw.upper().replace("-", "_")
    return _LEVEL_ALIASES.get(key, default)


def log_level_name(value: str | int | None, default: int) -> str:
    """Return a lowercase log level name."""
    level = parse_log_level(value, default)
    name = logging.getLevelName(level)
    if isinstance(name, str) and not name.startswith("Level "):
        return name.lower()
    return logging.getLevelName(default).lower()


def configure_logging(level: str | int | None = None, default: int = logging.INFO) -> int:
    """Install a basic stderr handler at the parsed level. Returns the level."""
    numeric = parse_log_level(level, default)
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger("accelvec").setLevel(numeric)
    return numeric
