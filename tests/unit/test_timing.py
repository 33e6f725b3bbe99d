"""Unit tests for the benchmark profiler."""

import logging

import pytest

from accelvec.utils.timing import Profiler, TimingStats


class TestTimingStats:
    def test_record(self):
        stats = TimingStats()
        stats.record(100)
        stats.record(300)

        assert stats.count == 2
        assert stats.min_ns == 100
        assert stats.max_ns == 300
        assert stats.avg_ns == pytest.approx(200.0)
        assert stats.median_ns == pytest.approx(200.0)

    def test_empty_average(self):
        assert TimingStats().avg_ms == 0.0


class TestProfiler:
    def test_sync_runs_before_each_clock_read(self):
        calls = []
        profiler = Profiler("test", sync=lambda: calls.append("sync"))

        with profiler.measure("op"):
            calls.append("body")

        assert calls == ["sync", "body", "sync"]
        assert profiler.stats("op").count == 1

    def test_disabled_profiler_only_runs_block(self):
        calls = []
        profiler = Profiler("test", sync=lambda: calls.append("sync"), enabled=False)

        with profiler.measure("op"):
            calls.append("body")

        assert calls == ["body"]
        assert profiler.stats("op").count == 0

    def test_measures_through_exceptions(self):
        profiler = Profiler("test")
        with pytest.raises(RuntimeError):
            with profiler.measure("op"):
                raise RuntimeError("boom")
        assert profiler.stats("op").count == 1

    def test_report(self, caplog):
        profiler = Profiler("bench")
        with profiler.measure("fft"):
            pass

        with caplog.at_level(logging.INFO, logger="accelvec.utils.timing"):
            report = profiler.report()

        assert "fft" in report
        assert "[TIMING] bench" in caplog.text

        profiler.reset()
        assert "fft" not in profiler.report()

    def test_with_factory_sync(self, accel_factory, device):
        profiler = Profiler("fft", sync=accel_factory.sync_concurrent)
        v = accel_factory.create_complex_2d(8, 8)
        before = device.sync_count

        with profiler.measure("fft2d"):
            v.fft2d()

        assert device.sync_count == before + 2
