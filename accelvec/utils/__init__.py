"""Utility modules for accelvec."""

from accelvec.utils.log_levels import configure_logging, log_level_name, parse_log_level
from accelvec.utils.timing import Profiler, TimingStats

__all__ = [
    "Profiler",
    "TimingStats",
    "configure_logging",
    "log_level_name",
    "parse_log_level",
]
