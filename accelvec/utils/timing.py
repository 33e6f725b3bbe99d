"""Timing helpers for vector and transform benchmarks.

Accelerator kernels may still be running when a call returns, so every clock
read is preceded by an optional ``sync`` callable (usually the factory's
``sync_concurrent``).

Usage:
    from accelvec.utils.timing import Profiler

    profiler = Profiler("fft2d", sync=factory.sync_concurrent)
    with profiler.measure("forward"):
        vec.fft2d()
    print(profiler.report())
"""

from __future__ import annotations

import logging
import statistics
import time
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Samples of one operation, in nanoseconds.

    Device timings are noisy (first calls build plans and warm caches), so
    the raw samples are kept and the median is reported next to the mean.
    """

    samples: list[int] = field(default_factory=list)

    def record(self, elapsed_ns: int) -> None:
        self.samples.append(elapsed_ns)

    @property
    def count(self) -> int:
        return len(self.samples)

    @property
    def min_ns(self) -> int:
        return min(self.samples, default=0)

    @property
    def max_ns(self) -> int:
        return max(self.samples, default=0)

    @property
    def avg_ns(self) -> float:
        return statistics.fmean(self.samples) if self.samples else 0.0

    @property
    def median_ns(self) -> float:
        return float(statistics.median(self.samples)) if self.samples else 0.0

    @property
    def avg_ms(self) -> float:
        return self.avg_ns / 1e6


@dataclass
class Profiler:
    """Per-operation wall clock statistics.

    Attributes:
        name: Label used in reports
        sync: Called before each clock read so queued device work is counted
        enabled: When False, measure() only runs the block
    """

    name: str
    sync: Callable[[], None] | None = None
    enabled: bool = True
    _stats: dict[str, TimingStats] = field(default_factory=lambda: defaultdict(TimingStats))

    def _now(self) -> int:
        if self.sync is not None:
            self.sync()
        return time.perf_counter_ns()

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Context manager for timing a block of code."""
        if not self.enabled:
            yield
            return

        start = self._now()
        try:
            yield
        finally:
            self._stats[operation].record(self._now() - start)

    def stats(self, operation: str) -> TimingStats:
        return self._stats[operation]

    def report(self) -> str:
        """Log and return a summary, slowest operation first."""
        lines = [f"[TIMING] {self.name}:"]
        measured = [(op, s) for op, s in self._stats.items() if s.count]
        for op, s in sorted(measured, key=lambda item: sum(item[1].samples), reverse=True):
            lines.append(
                f"  {op}: {s.count:6d} calls | avg={s.avg_ms:.3f}ms "
                f"median={s.median_ns / 1e6:.3f}ms "
                f"min={s.min_ns / 1e6:.3f}ms max={s.max_ns / 1e6:.3f}ms"
            )
        report = "\n".join(lines)
        logger.info(report)
        return report

    def reset(self) -> None:
        self._stats.clear()
