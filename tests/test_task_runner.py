"""Bounded task runner tests."""

import asyncio

import pytest

from stylegen.workers.task_runner import BoundedTaskRunner


@pytest.mark.asyncio
async def test_duplicate_key_is_rejected_while_in_flight():
    runner = BoundedTaskRunner(max_concurrency=2, max_pending=10)
    release = asyncio.Event()
    runs = []

    async def work():
        runs.append("run")
        await release.wait()

    assert runner.submit("job-1", work) is True
    assert runner.submit("job-1", work) is False
    assert runner.is_running("job-1")

    release.set()
    await runner.drain()

    assert runs == ["run"]
    assert runner.pending_count == 0
    # Key is free again once the task finished
    assert runner.submit("job-1", work) is True
    await runner.drain()


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    runner = BoundedTaskRunner(max_concurrency=2, max_pending=10)
    active = 0
    peak = 0

    async def work():
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    for i in range(6):
        assert runner.submit(f"job-{i}", work)

    await runner.drain()

    assert peak == 2


@pytest.mark.asyncio
async def test_submissions_beyond_max_pending_are_rejected():
    runner = BoundedTaskRunner(max_concurrency=1, max_pending=2)
    release = asyncio.Event()

    async def work():
        await release.wait()

    assert runner.available_slots == 2
    assert runner.submit("a", work) is True
    assert runner.submit("b", work) is True
    assert runner.available_slots == 0
    assert runner.submit("c", work) is False

    release.set()
    await runner.drain()
    assert runner.available_slots == 2


@pytest.mark.asyncio
async def test_failing_task_is_logged_and_does_not_break_runner():
    runner = BoundedTaskRunner(max_concurrency=1, max_pending=5)
    done = []

    async def boom():
        raise RuntimeError("orchestrator crashed")

    async def ok():
        done.append(True)

    runner.submit("bad", boom)
    runner.submit("good", ok)
    await runner.drain()

    assert done == [True]
    assert runner.pending_count == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_tracked_tasks():
    runner = BoundedTaskRunner(max_concurrency=1, max_pending=5)
    cancelled = []

    async def forever():
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    runner.submit("long", forever)
    await asyncio.sleep(0)
    await runner.shutdown()

    assert cancelled == [True]
    assert runner.pending_count == 0


def test_invalid_limits_are_rejected():
    with pytest.raises(ValueError):
        BoundedTaskRunner(max_concurrency=0)
    with pytest.raises(ValueError):
        BoundedTaskRunner(max_concurrency=5, max_pending=2)
