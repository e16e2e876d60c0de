import anyio
import pytest

from gentree.lane_scheduler import Lane, LaneScheduler
from gentree.models import LaneLimits, ProgressSnapshot


@pytest.mark.anyio
async def test_lane_never_exceeds_its_concurrency() -> None:
    scheduler = LaneScheduler(LaneLimits(text=2, image=1))
    active = 0
    peak = 0

    async def task() -> str:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await anyio.sleep(0.01)
        active -= 1
        return "ok"

    async with anyio.create_task_group() as tg:
        for _ in range(6):
            tg.start_soon(scheduler.submit, Lane.TEXT, task)

    assert peak == 2
    snapshot = scheduler.snapshot()
    assert (snapshot.total, snapshot.completed, snapshot.failed) == (6, 6, 0)
    assert snapshot.percentage == 100.0
    assert snapshot.per_lane["text"].concurrency == 2
    assert snapshot.per_lane["image"].concurrency == 1


@pytest.mark.anyio
async def test_waiting_tasks_start_in_submission_order() -> None:
    scheduler = LaneScheduler(LaneLimits(image=1))
    started: list[int] = []

    def make_task(index: int):
        async def task() -> int:
            started.append(index)
            await anyio.sleep(0.001)
            return index

        return task

    async with anyio.create_task_group() as tg:
        for index in range(5):
            tg.start_soon(scheduler.submit, "image", make_task(index))

    assert started == [0, 1, 2, 3, 4]


@pytest.mark.anyio
async def test_lanes_do_not_block_each_other() -> None:
    scheduler = LaneScheduler(LaneLimits(text=1, image=1))
    release = anyio.Event()
    order: list[str] = []

    async def blocked_text() -> None:
        await release.wait()
        order.append("text")

    async def image() -> None:
        order.append("image")
        release.set()

    async with anyio.create_task_group() as tg:
        tg.start_soon(scheduler.submit, Lane.TEXT, blocked_text)
        tg.start_soon(scheduler.submit, Lane.IMAGE, image)

    assert order == ["image", "text"]


@pytest.mark.anyio
async def test_failures_are_counted_and_reraised() -> None:
    scheduler = LaneScheduler()
    snapshots: list[ProgressSnapshot] = []
    scheduler.subscribe(snapshots.append)

    async def boom() -> None:
        raise ValueError("nope")

    async def fine() -> str:
        return "fine"

    with pytest.raises(ValueError):
        await scheduler.submit(Lane.TEXT, boom)
    assert await scheduler.submit(Lane.TEXT, fine) == "fine"

    final = scheduler.snapshot()
    assert (final.total, final.completed, final.failed) == (2, 1, 1)
    assert final.in_progress == 0 and final.queued == 0
    for snapshot in snapshots:
        assert snapshot.completed + snapshot.failed + snapshot.in_progress + snapshot.queued == snapshot.total


@pytest.mark.anyio
async def test_snapshots_report_queued_and_running_work() -> None:
    scheduler = LaneScheduler(LaneLimits(text=1))
    snapshots: list[ProgressSnapshot] = []
    scheduler.subscribe(snapshots.append)

    async def task() -> None:
        await anyio.sleep(0.001)

    async with anyio.create_task_group() as tg:
        for _ in range(3):
            tg.start_soon(scheduler.submit, Lane.TEXT, task)

    assert max(snapshot.queued for snapshot in snapshots) >= 2
    assert max(snapshot.in_progress for snapshot in snapshots) == 1
    percentages = [snapshot.percentage for snapshot in snapshots]
    assert percentages == sorted(percentages)
    assert percentages[-1] == 100.0
    assert 33.3 in percentages


def test_empty_scheduler_reports_zero_percent() -> None:
    snapshot = LaneScheduler().snapshot()

    assert snapshot.total == 0
    assert snapshot.percentage == 0
    assert set(snapshot.per_lane) == {"text", "image"}


@pytest.mark.anyio
async def test_reset_clears_counters_and_unsubscribe_stops_updates() -> None:
    scheduler = LaneScheduler(LaneLimits(text=3))
    snapshots: list[ProgressSnapshot] = []
    unsubscribe = scheduler.subscribe(snapshots.append)

    async def task() -> None:
        return None

    await scheduler.submit(Lane.TEXT, task)
    scheduler.reset()
    assert snapshots[-1].total == 0

    unsubscribe()
    count = len(snapshots)
    await scheduler.submit(Lane.TEXT, task)

    assert len(snapshots) == count
    assert scheduler.snapshot().total == 1
    assert scheduler.concurrency(Lane.TEXT) == 3
