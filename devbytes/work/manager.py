"""Host job facility: APScheduler timers plus a durable Redis work registry."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from redis.asyncio import Redis

from devbytes.work.models import (
    DeviceConditions,
    ExistingWorkPolicy,
    PeriodicWorkRequest,
    WorkInfo,
    WorkResult,
    WorkState,
)

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = timedelta(seconds=30)
MAX_BACKOFF = timedelta(hours=5)

ConditionsProbe = Callable[[], Awaitable[DeviceConditions]]


def _key(name: str) -> str:
    """Generate Redis key for a unique work registry entry."""
    return f"devbytes:work:{name}"


def _once_id(name: str) -> str:
    return f"{name}:once"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def backoff_delay(run_attempt: int) -> timedelta:
    """Exponential backoff for the given retry attempt (1-based), capped."""
    delay = INITIAL_BACKOFF * (2 ** max(run_attempt - 1, 0))
    return min(delay, MAX_BACKOFF)


async def assume_conditions_met() -> DeviceConditions:
    """Default probe for hosts that cannot report device conditions."""
    return DeviceConditions()


class WorkManager:
    """Runs named periodic work and remembers it across process restarts.

    The registry entry in Redis is the source of truth for whether a job
    exists and when it should next run; APScheduler only provides in-process
    timers derived from it. Retry backoff and constraint re-checks are handled
    here so workers only need to report an outcome.
    """

    def __init__(
        self,
        redis: Redis,
        scheduler: AsyncIOScheduler | None = None,
        conditions_probe: ConditionsProbe = assume_conditions_met,
        constraint_recheck: timedelta = timedelta(minutes=15),
    ):
        self._redis = redis
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._conditions_probe = conditions_probe
        self._constraint_recheck = constraint_recheck
        self._requests: dict[str, PeriodicWorkRequest] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def start(self) -> None:
        """Start the timers. Must be called with a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Work manager started")

    def shutdown(self) -> None:
        """Stop the timers without waiting for running jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Work manager stopped")

    async def enqueue_unique_periodic_work(
        self,
        name: str,
        policy: ExistingWorkPolicy,
        request: PeriodicWorkRequest,
    ) -> WorkInfo:
        """Register periodic work under a unique name.

        With ``KEEP``, an existing non-cancelled registration is left exactly
        as it is: its next run time is not reset and no second timer is
        created. A registration left by an earlier process gets its interval
        timer re-attached on the original grid, plus a one-off run at the
        stored next run time when that comes first (a pending retry, say).

        With ``REPLACE``, any existing registration is overwritten and the
        first run happens as soon as possible.

        Returns:
            The registry entry now in effect
        """
        key = _key(name)
        self._requests[name] = request

        if policy is ExistingWorkPolicy.KEEP:
            created = await self._redis.hsetnx(key, "state", WorkState.ENQUEUED.value)
            if not created:
                existing = await self.get_work_info(name)
                if existing is not None and existing.state is not WorkState.CANCELLED:
                    if self._scheduler.get_job(name) is None:
                        next_run_at = existing.next_run_at or _utcnow()
                        self._add_timers(
                            name, request, existing.period_start_at or next_run_at, next_run_at
                        )
                    logger.info(f"Keeping existing periodic work '{name}'")
                    return existing

        now = _utcnow()
        info = WorkInfo(
            name=name,
            state=WorkState.ENQUEUED,
            interval_seconds=int(request.interval.total_seconds()),
            period_start_at=now,
            next_run_at=now,
            run_attempt=0,
            updated_at=now,
        )
        await self._redis.hset(key, mapping=info.to_redis())  # type: ignore[misc]
        self._add_timers(name, request, now, now)
        logger.info(f"Enqueued periodic work '{name}' every {request.interval}")
        return info

    async def cancel_unique_work(self, name: str) -> bool:
        """Cancel periodic work by name.

        Returns:
            True if a registration existed, False otherwise
        """
        self._remove_job(name)
        self._remove_job(_once_id(name))
        self._requests.pop(name, None)

        if not await self._redis.exists(_key(name)):
            return False

        await self._redis.hset(  # type: ignore[misc]
            _key(name),
            mapping={"state": WorkState.CANCELLED.value, "updated_at": _utcnow().isoformat()},
        )
        logger.info(f"Cancelled periodic work '{name}'")
        return True

    async def get_work_info(self, name: str) -> WorkInfo | None:
        """Read the registry entry for ``name``, or None if there is none."""
        data = await self._redis.hgetall(_key(name))  # type: ignore[misc]
        if not data:
            return None
        return WorkInfo.from_redis(name, data)

    async def run_now(self, name: str) -> WorkResult | None:
        """Execute registered work immediately, as a timer would."""
        return await self._run(name)

    async def _run(self, name: str, periodic: bool = False) -> WorkResult | None:
        request = self._requests.get(name)
        if request is None:
            logger.warning(f"No worker registered in this process for '{name}'")
            return None

        key = _key(name)
        async with self._lock_for(name):
            info = await self.get_work_info(name)
            if info is None or info.state is WorkState.CANCELLED:
                return None

            if periodic and self._scheduler.get_job(_once_id(name)) is not None:
                logger.info(
                    f"Skipping periodic run of '{name}', a one-off run is pending",
                    extra={"work_name": name},
                )
                return None

            conditions = await self._conditions_probe()
            if not request.constraints.satisfied_by(conditions):
                recheck_at = _utcnow() + self._constraint_recheck
                logger.info(
                    f"Constraints not met for '{name}', rechecking at {recheck_at}",
                    extra={"work_name": name},
                )
                self._add_once(name, recheck_at)
                return None

            await self._redis.hset(  # type: ignore[misc]
                key,
                mapping={"state": WorkState.RUNNING.value, "updated_at": _utcnow().isoformat()},
            )
            logger.info(
                f"Running work '{name}' (attempt {info.run_attempt + 1})",
                extra={"work_name": name},
            )

            try:
                result = await request.worker.do_work()
            except Exception as e:
                logger.error(
                    f"Worker for '{name}' raised: {e}", exc_info=True, extra={"work_name": name}
                )
                result = WorkResult.FAILURE

            now = _utcnow()
            if result is WorkResult.RETRY:
                run_attempt = info.run_attempt + 1
                next_run_at = now + backoff_delay(run_attempt)
                self._add_once(name, next_run_at)
                logger.warning(
                    f"Work '{name}' will retry at {next_run_at}", extra={"work_name": name}
                )
            else:
                run_attempt = 0
                self._remove_job(_once_id(name))
                next_run_at = self._next_timer_run(name)
                logger.info(
                    f"Work '{name}' finished with {result.value}", extra={"work_name": name}
                )

            # A cancel issued while the worker ran wins over the result
            state = await self._redis.hget(key, "state")  # type: ignore[misc]
            if state in (WorkState.CANCELLED.value, WorkState.CANCELLED.value.encode()):
                return result

            await self._redis.hset(  # type: ignore[misc]
                key,
                mapping={
                    "state": WorkState.ENQUEUED.value,
                    "last_result": result.value,
                    "run_attempt": str(run_attempt),
                    "next_run_at": next_run_at.isoformat() if next_run_at else "",
                    "updated_at": now.isoformat(),
                },
            )
            return result

    def _lock_for(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    def _add_timers(
        self,
        name: str,
        request: PeriodicWorkRequest,
        period_start_at: datetime,
        next_run_at: datetime,
    ) -> None:
        trigger = IntervalTrigger(
            seconds=int(request.interval.total_seconds()),
            start_date=period_start_at,
            timezone=timezone.utc,
        )
        self._scheduler.add_job(
            self._run,
            trigger=trigger,
            args=[name],
            kwargs={"periodic": True},
            id=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=None,
        )
        # Overdue, or due before the grid's next tick
        now = _utcnow()
        if next_run_at <= now:
            self._add_once(name, now)
        elif next_run_at < trigger.get_next_fire_time(None, now):
            self._add_once(name, next_run_at)

    def _add_once(self, name: str, run_at: datetime) -> None:
        self._scheduler.add_job(
            self._run,
            trigger=DateTrigger(run_date=run_at, timezone=timezone.utc),
            args=[name],
            id=_once_id(name),
            replace_existing=True,
            misfire_grace_time=None,
        )

    def _remove_job(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def _next_timer_run(self, name: str) -> datetime | None:
        job = self._scheduler.get_job(name)
        return getattr(job, "next_run_time", None) if job else None
