"""Shape-keyed pool of reusable FFT plans.

Plans are checked out around each transform and returned afterwards. A plan
that is checked out is never handed to a second caller: concurrent requests
for the same shape either get another idle instance, construct a new one, or
(when ``max_live_per_shape`` is reached) wait until an instance is released.

The pool never evicts implicitly; plans live until ``clear()`` drops the idle
ones. The number of distinct shapes used by an application is expected to be
small and stable.

Usage:
    pool = PlanPool(resolve_backend())
    with pool.borrow(PlanKey.two_d(512, 512)) as plan:
        pool.backend.transform(plan, buffer, inverse=False)
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field

from accelvec.errors import ConsistencyError

from .base import FFTPlan, PlanKey, TransformBackend

logger = logging.getLogger(__name__)


@dataclass
class PoolStats:
    """Snapshot of pool usage."""

    shapes: int = 0
    live: int = 0
    idle: int = 0
    in_use: int = 0
    hits: int = 0
    misses: int = 0

    @property
    def reuse_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class _ShapeSlot:
    idle: list[FFTPlan] = field(default_factory=list)
    live: int = 0
    building: int = 0


class PlanPool:
    """Thread-safe pool of FFT plans keyed by shape.

    Args:
        backend: Transform backend that builds and executes the plans
        max_live_per_shape: Upper bound on instances per shape; callers wait
            for a release once it is reached. None lets the pool build a new
            instance whenever all existing ones are checked out.
    """

    def __init__(self, backend: TransformBackend, max_live_per_shape: int | None = None):
        if max_live_per_shape is not None and max_live_per_shape < 1:
            raise ValueError("max_live_per_shape must be at least 1")
        self.backend = backend
        self.max_live_per_shape = max_live_per_shape
        self._cond = threading.Condition()
        self._slots: dict[PlanKey, _ShapeSlot] = {}
        self._in_use: set[FFTPlan] = set()
        self._hits = 0
        self._misses = 0

    def _at_capacity(self, slot: _ShapeSlot) -> bool:
        if self.max_live_per_shape is None:
            return False
        return slot.live + slot.building >= self.max_live_per_shape

    def acquire(self, key: PlanKey) -> FFTPlan:
        """Check out a plan for ``key``, building one if none is idle."""
        with self._cond:
            slot = self._slots.setdefault(key, _ShapeSlot())
            while not slot.idle and self._at_capacity(slot):
                self._cond.wait()
            if slot.idle:
                plan = slot.idle.pop()
                self._in_use.add(plan)
                self._hits += 1
                return plan
            slot.building += 1
            self._misses += 1

        # Build outside the lock so other shapes are not held up
        try:
            plan = self.backend.create_plan(key)
        except BaseException:
            with self._cond:
                slot.building -= 1
                self._cond.notify_all()
            raise

        with self._cond:
            slot.building -= 1
            slot.live += 1
            self._in_use.add(plan)
        logger.debug(f"Built {self.backend.name} plan for {key} (live={slot.live})")
        return plan

    def release(self, key: PlanKey, plan: FFTPlan) -> None:
        """Return a checked-out plan to the pool."""
        with self._cond:
            if plan not in self._in_use:
                raise ConsistencyError(f"Plan for {plan.key} is not checked out from this pool")
            if plan.key != key:
                raise ConsistencyError(f"Plan for {plan.key} returned under key {key}")
            self._in_use.discard(plan)
            self._slots[key].idle.append(plan)
            self._cond.notify_all()

    @contextlib.contextmanager
    def borrow(self, key: PlanKey) -> Iterator[FFTPlan]:
        """Context manager that acquires a plan and always releases it."""
        plan = self.acquire(key)
        try:
            yield plan
        finally:
            self.release(key, plan)

    def clear(self) -> int:
        """Drop all idle plans. Returns the number of plans dropped."""
        dropped = 0
        with self._cond:
            for key in list(self._slots):
                slot = self._slots[key]
                dropped += len(slot.idle)
                slot.live -= len(slot.idle)
                slot.idle.clear()
                if slot.live == 0 and slot.building == 0:
                    del self._slots[key]
        if dropped:
            logger.debug(f"Dropped {dropped} idle FFT plans")
        return dropped

    def stats(self) -> PoolStats:
        with self._cond:
            return PoolStats(
                shapes=len(self._slots),
                live=sum(s.live for s in self._slots.values()),
                idle=sum(len(s.idle) for s in self._slots.values()),
                in_use=len(self._in_use),
                hits=self._hits,
                misses=self._misses,
            )

    def __repr__(self) -> str:
        return f"PlanPool(backend={self.backend.name!r}, max_live_per_shape={self.max_live_per_shape})"
