from __future__ import annotations

import argparse
import os
import sys
from typing import Optional

import numpy as np

from .config import build_factory, load_config
from .device import available_devices
from .fft import available_backends
from .linalg import AccelVectorFactory, HostVectorFactory, VectorFactory
from .utils.log_levels import configure_logging
from .utils.timing import Profiler


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="accelvec", description="Accelerated vector engine")
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=os.environ.get("ACCELVEC_CONFIG"),
        help="Path to YAML config file",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging.level")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("info", help="Show selected device and transform backends")

    p_bench = sub.add_parser("bench", help="Time 2D FFT and axpy")
    p_bench.add_argument("--size", type=int, default=512, help="Square image side length")
    p_bench.add_argument("--repeat", type=int, default=20, help="Iterations per operation")

    sub.add_parser("selftest", help="Round-trip and mixed-backend consistency checks")
    return parser.parse_args(argv)


def cmd_info(factory: VectorFactory) -> int:
    print(f"backend:            {factory.backend.value}")
    if isinstance(factory, AccelVectorFactory):
        print(f"device:             {factory.context.name}")
        print(f"staging buffer:     {factory.context.staging.capacity_bytes} bytes")
    print(f"transform backend:  {factory.plan_pool.backend.name}")
    print(f"available devices:  {', '.join(available_devices())}")
    print(f"available FFTs:     {', '.join(available_backends())}")
    return 0


def cmd_bench(factory: VectorFactory, size: int, repeat: int) -> int:
    rng = np.random.default_rng(0)
    profiler = Profiler(f"bench {size}x{size}", sync=factory.sync_concurrent)

    img = factory.create_complex_2d(size, size)
    other = factory.create_complex_2d(size, size)
    img.set_from_16bit_pixels(rng.integers(0, 4096, size * size, dtype=np.uint16))
    other.copy(img)

    for _ in range(repeat):
        with profiler.measure("fft2d forward"):
            img.fft2d()
        with profiler.measure("fft2d inverse"):
            img.fft2d(inverse=True)
        img.scal(1.0 / (size * size))
        with profiler.measure("axpy"):
            img.axpy(0.5, other)

    print(profiler.report())
    print(factory.plan_pool.stats())
    img.close()
    other.close()
    return 0


def cmd_selftest(factory: VectorFactory) -> int:
    rng = np.random.default_rng(1)
    failures: list[str] = []

    for n in (8, 64, 256):
        vec = factory.create_complex_2d(n, n)
        data = rng.standard_normal(2 * n * n).astype(np.float32)
        vec.vector_data()[:] = data
        vec.sync_buffer()
        vec.fft2d()
        vec.fft2d(inverse=True)
        vec.scal(1.0 / (n * n))
        err = float(np.max(np.abs(vec.vector_data() - data)))
        status = "ok" if err < 1e-3 else "FAIL"
        print(f"fft2d round trip {n}x{n}: max error {err:.2e} {status}")
        if err >= 1e-3:
            failures.append(f"round trip {n}")
        vec.close()

    host = HostVectorFactory()
    a = factory.create_complex_2d(16, 16)
    b = factory.create_complex_2d(16, 16)
    h = host.create_complex_2d(16, 16)
    for v in (a, b):
        v.vector_data()[:] = rng.standard_normal(2 * 256).astype(np.float32)
        v.sync_buffer()
    h.copy(b)
    same = a.duplicate()
    same.add(b)
    mixed = a.duplicate()
    mixed.add(h)
    ok = np.array_equal(same.vector_data(), mixed.vector_data())
    print(f"mixed-backend add 16x16: {'ok' if ok else 'FAIL'}")
    if not ok:
        failures.append("mixed-backend add")

    if failures:
        print(f"selftest failed: {', '.join(failures)}")
        return 1
    print("selftest passed")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)
    configure_logging(args.log_level or cfg.logging.level)

    if not args.command:
        print("usage: accelvec [--config PATH] [--log-level LEVEL] {info,bench,selftest}")
        return 1

    factory = build_factory(cfg)
    if args.command == "info":
        return cmd_info(factory)
    if args.command == "bench":
        return cmd_bench(factory, args.size, args.repeat)
    return cmd_selftest(factory)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
