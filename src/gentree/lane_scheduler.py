"""Capacity-bounded execution lanes with progress reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeVar

import anyio

from gentree.models.progress import LaneSnapshot, ProgressSnapshot
from gentree.models.run_settings import LaneLimits


logger = logging.getLogger(__name__)

T = TypeVar("T")
ProgressCallback = Callable[[ProgressSnapshot], None]


class Lane(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass
class LaneCounters:
    submitted: int = 0
    queued: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0


class LaneScheduler:
    """
    Runs submitted tasks in two lanes, each bounded by its own concurrency.
    Waiters in a lane are served first in, first out.
    """

    def __init__(self, concurrency: LaneLimits | None = None) -> None:
        limits = concurrency or LaneLimits()
        self._limiters: dict[Lane, anyio.CapacityLimiter] = {
            Lane.TEXT: anyio.CapacityLimiter(limits.text),
            Lane.IMAGE: anyio.CapacityLimiter(limits.image),
        }
        self._counters: dict[Lane, LaneCounters] = {lane: LaneCounters() for lane in Lane}
        self._subscribers: list[ProgressCallback] = []

    def concurrency(self, lane: Lane | str) -> int:
        return int(self._limiters[Lane(lane)].total_tokens)

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def submit(self, lane: Lane | str, task: Callable[[], Awaitable[T]]) -> T:
        """Queue `task` on `lane`, wait for a free slot, run it and return its result."""
        lane = Lane(lane)
        # Keep a reference so a reset() between runs never sees stale decrements.
        counters = self._counters[lane]
        counters.submitted += 1
        counters.queued += 1
        self._emit()

        started = False
        try:
            async with self._limiters[lane]:
                counters.queued -= 1
                counters.active += 1
                started = True
                self._emit()

                result = await task()

                counters.active -= 1
                counters.completed += 1
                self._emit()
                return result
        except (Exception, anyio.get_cancelled_exc_class()):
            # cancelled tasks are counted as failed
            if started:
                counters.active -= 1
            else:
                counters.queued -= 1
            counters.failed += 1
            self._emit()
            raise

    def snapshot(self) -> ProgressSnapshot:
        per_lane = {
            lane.value: LaneSnapshot(
                waiting=counters.queued,
                pending=counters.active,
                concurrency=self.concurrency(lane),
                submitted=counters.submitted,
                completed=counters.completed,
                failed=counters.failed,
            )
            for lane, counters in self._counters.items()
        }
        total = sum(counters.submitted for counters in self._counters.values())
        completed = sum(counters.completed for counters in self._counters.values())
        failed = sum(counters.failed for counters in self._counters.values())
        percentage = round((completed + failed) / total * 100, 1) if total else 0
        return ProgressSnapshot(
            total=total,
            completed=completed,
            failed=failed,
            in_progress=sum(counters.active for counters in self._counters.values()),
            queued=sum(counters.queued for counters in self._counters.values()),
            percentage=percentage,
            per_lane=per_lane,
        )

    def reset(self) -> None:
        self._counters = {lane: LaneCounters() for lane in Lane}
        self._emit()

    def _emit(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            callback(snapshot)
