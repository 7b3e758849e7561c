"""Tests for the periodic work manager."""

from datetime import datetime, timedelta, timezone

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from devbytes.work.manager import WorkManager, backoff_delay
from devbytes.work.models import (
    Constraints,
    DeviceConditions,
    ExistingWorkPolicy,
    PeriodicWorkRequest,
    WorkInfo,
    WorkResult,
    WorkState,
    Worker,
)

WORK_NAME = "RefreshDataWorker"


class StubWorker(Worker):
    """Worker returning a fixed result (or raising) and counting calls."""

    def __init__(self, result: WorkResult = WorkResult.SUCCESS, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def do_work(self) -> WorkResult:
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def manager(mock_redis, scheduler):
    """Work manager wired to the mock Redis and paused scheduler."""
    return WorkManager(mock_redis, scheduler=scheduler)


def make_request(worker: Worker | None = None, **constraints) -> PeriodicWorkRequest:
    return PeriodicWorkRequest(
        worker=worker or StubWorker(),
        interval=timedelta(days=1),
        constraints=Constraints(**constraints),
    )


def job_ids(scheduler: AsyncIOScheduler) -> list[str]:
    return sorted(job.id for job in scheduler.get_jobs())


@pytest.mark.asyncio
async def test_enqueue_registers_job_and_runs_first_time_soon(manager, scheduler):
    """Test the first registration of periodic work."""
    before = datetime.now(timezone.utc)

    info = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )

    assert info.state is WorkState.ENQUEUED
    assert info.interval_seconds == 86400
    assert info.next_run_at >= before
    assert job_ids(scheduler) == [WORK_NAME, f"{WORK_NAME}:once"]

    stored = await manager.get_work_info(WORK_NAME)
    assert stored == info


@pytest.mark.asyncio
async def test_keep_policy_does_not_duplicate_or_reset(manager, scheduler):
    """Test that a second KEEP submission is a no-op."""
    first = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )
    first_fire = scheduler.get_job(WORK_NAME).next_run_time

    second = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )

    assert second.next_run_at == first.next_run_at
    assert scheduler.get_job(WORK_NAME).next_run_time == first_fire
    assert job_ids(scheduler) == [WORK_NAME, f"{WORK_NAME}:once"]


@pytest.mark.asyncio
async def test_keep_policy_resumes_registration_from_previous_process(mock_redis, scheduler):
    """Test that a restarted process keeps the stored next run time."""
    next_run_at = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(hours=6)
    existing = WorkInfo(
        name=WORK_NAME,
        state=WorkState.ENQUEUED,
        interval_seconds=86400,
        next_run_at=next_run_at,
    )
    await mock_redis.hset(f"devbytes:work:{WORK_NAME}", mapping=existing.to_redis())
    manager = WorkManager(mock_redis, scheduler=scheduler)

    info = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )

    assert info.next_run_at == next_run_at
    assert job_ids(scheduler) == [WORK_NAME]
    assert scheduler.get_job(WORK_NAME).next_run_time == next_run_at


@pytest.mark.asyncio
async def test_keep_policy_resumes_pending_retry_on_original_grid(mock_redis, scheduler):
    """Test that a restart during backoff keeps both the retry and the daily grid."""
    now = datetime.now(timezone.utc).replace(microsecond=0)
    period_start_at = now - timedelta(hours=2)
    retry_at = now + timedelta(minutes=10)
    existing = WorkInfo(
        name=WORK_NAME,
        state=WorkState.ENQUEUED,
        interval_seconds=86400,
        period_start_at=period_start_at,
        next_run_at=retry_at,
        run_attempt=3,
        last_result=WorkResult.RETRY,
    )
    await mock_redis.hset(f"devbytes:work:{WORK_NAME}", mapping=existing.to_redis())
    manager = WorkManager(mock_redis, scheduler=scheduler)

    info = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )

    assert info.period_start_at == period_start_at
    assert info.run_attempt == 3
    assert scheduler.get_job(WORK_NAME).next_run_time == period_start_at + timedelta(days=1)
    assert scheduler.get_job(f"{WORK_NAME}:once").next_run_time == retry_at


@pytest.mark.asyncio
async def test_periodic_tick_is_skipped_while_retry_pending(manager, scheduler):
    """Test that the interval timer does not run work already waiting on a retry."""
    worker = StubWorker(WorkResult.RETRY)
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker)
    )
    await manager.run_now(WORK_NAME)
    assert worker.calls == 1

    job = scheduler.get_job(WORK_NAME)
    result = await job.func(*job.args, **job.kwargs)

    assert result is None
    assert worker.calls == 1
    info = await manager.get_work_info(WORK_NAME)
    assert info.run_attempt == 1
    assert info.state is WorkState.ENQUEUED


@pytest.mark.asyncio
async def test_replace_policy_overwrites_registration(manager, mock_redis):
    """Test that REPLACE resets the registration."""
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )
    await mock_redis.hset(f"devbytes:work:{WORK_NAME}", "run_attempt", "4")

    info = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.REPLACE, make_request()
    )

    assert info.run_attempt == 0
    assert (await manager.get_work_info(WORK_NAME)).run_attempt == 0


@pytest.mark.asyncio
async def test_keep_policy_replaces_cancelled_work(manager, scheduler):
    """Test that cancelled work can be registered again with KEEP."""
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )
    await manager.cancel_unique_work(WORK_NAME)

    info = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request()
    )

    assert info.state is WorkState.ENQUEUED
    assert WORK_NAME in job_ids(scheduler)


@pytest.mark.asyncio
async def test_run_success_resets_attempts(manager, scheduler):
    """Test bookkeeping after a successful run."""
    worker = StubWorker(WorkResult.SUCCESS)
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker)
    )

    result = await manager.run_now(WORK_NAME)

    assert result is WorkResult.SUCCESS
    assert worker.calls == 1
    info = await manager.get_work_info(WORK_NAME)
    assert info.state is WorkState.ENQUEUED
    assert info.last_result is WorkResult.SUCCESS
    assert info.run_attempt == 0
    assert info.next_run_at == scheduler.get_job(WORK_NAME).next_run_time
    assert job_ids(scheduler) == [WORK_NAME]


@pytest.mark.asyncio
async def test_run_retry_schedules_backoff(manager, scheduler):
    """Test that RETRY schedules a one-off re-run with growing backoff."""
    worker = StubWorker(WorkResult.RETRY)
    registered = await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker)
    )
    first_tick = scheduler.get_job(WORK_NAME).next_run_time

    start = datetime.now(timezone.utc)
    await manager.run_now(WORK_NAME)

    info = await manager.get_work_info(WORK_NAME)
    assert info.last_result is WorkResult.RETRY
    assert info.run_attempt == 1
    retry_at = scheduler.get_job(f"{WORK_NAME}:once").next_run_time
    assert start + timedelta(seconds=30) <= retry_at <= start + timedelta(seconds=35)
    assert info.next_run_at == retry_at
    # The daily grid is not moved by a retry
    assert info.period_start_at == registered.period_start_at
    assert scheduler.get_job(WORK_NAME).next_run_time == first_tick

    await manager.run_now(WORK_NAME)

    info = await manager.get_work_info(WORK_NAME)
    assert info.run_attempt == 2
    retry_at = scheduler.get_job(f"{WORK_NAME}:once").next_run_time
    assert retry_at >= start + timedelta(seconds=60)


@pytest.mark.asyncio
async def test_worker_exception_counts_as_failure(manager):
    """Test that an exception escaping the worker is recorded as FAILURE."""
    worker = StubWorker(error=RuntimeError("unexpected"))
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker)
    )

    result = await manager.run_now(WORK_NAME)

    assert result is WorkResult.FAILURE
    info = await manager.get_work_info(WORK_NAME)
    assert info.state is WorkState.ENQUEUED
    assert info.last_result is WorkResult.FAILURE
    assert info.run_attempt == 0


@pytest.mark.asyncio
async def test_unmet_constraints_defer_run(mock_redis, scheduler):
    """Test that work waits while its constraints are not satisfied."""

    async def unplugged():
        return DeviceConditions(charging=False)

    manager = WorkManager(
        mock_redis,
        scheduler=scheduler,
        conditions_probe=unplugged,
        constraint_recheck=timedelta(minutes=10),
    )
    worker = StubWorker()
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker, requires_charging=True)
    )

    start = datetime.now(timezone.utc)
    result = await manager.run_now(WORK_NAME)

    assert result is None
    assert worker.calls == 0
    assert (await manager.get_work_info(WORK_NAME)).state is WorkState.ENQUEUED
    recheck_at = scheduler.get_job(f"{WORK_NAME}:once").next_run_time
    assert recheck_at >= start + timedelta(minutes=10)


@pytest.mark.asyncio
async def test_cancel_removes_timers_and_blocks_runs(manager, scheduler):
    """Test cancelling unique work."""
    worker = StubWorker()
    await manager.enqueue_unique_periodic_work(
        WORK_NAME, ExistingWorkPolicy.KEEP, make_request(worker)
    )

    assert await manager.cancel_unique_work(WORK_NAME) is True

    assert job_ids(scheduler) == []
    assert (await manager.get_work_info(WORK_NAME)).state is WorkState.CANCELLED
    assert await manager.run_now(WORK_NAME) is None
    assert worker.calls == 0


@pytest.mark.asyncio
async def test_cancel_unknown_work_returns_false(manager):
    """Test cancelling work that was never registered."""
    assert await manager.cancel_unique_work("missing") is False
    assert await manager.get_work_info("missing") is None


def test_backoff_delay_doubles_and_caps():
    """Test exponential backoff values."""
    assert backoff_delay(1) == timedelta(seconds=30)
    assert backoff_delay(2) == timedelta(seconds=60)
    assert backoff_delay(5) == timedelta(seconds=480)
    assert backoff_delay(30) == timedelta(hours=5)


def test_periodic_request_rejects_short_interval():
    """Test the minimum periodic interval."""
    with pytest.raises(ValueError):
        PeriodicWorkRequest(worker=StubWorker(), interval=timedelta(minutes=1))


def test_constraints_device_idle_is_best_effort():
    """Test that unknown idleness does not block work."""
    constraints = Constraints(requires_device_idle=True)

    assert constraints.satisfied_by(DeviceConditions(idle=None))
    assert not constraints.satisfied_by(DeviceConditions(idle=False))
    assert constraints.satisfied_by(DeviceConditions(idle=True))


def test_constraints_network_and_battery():
    """Test network and battery constraint checks."""
    constraints = Constraints(requires_unmetered_network=True, requires_battery_not_low=True)

    assert constraints.satisfied_by(DeviceConditions())
    assert not constraints.satisfied_by(DeviceConditions(network_unmetered=False))
    assert not constraints.satisfied_by(DeviceConditions(battery_low=True))
