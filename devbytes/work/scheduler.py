"""Definition and submission of the daily playlist refresh."""

import logging
from datetime import timedelta

from devbytes.repository import VideosRepository
from devbytes.work.manager import WorkManager
from devbytes.work.models import (
    Constraints,
    ExistingWorkPolicy,
    PeriodicWorkRequest,
    WorkInfo,
)
from devbytes.work.refresh import RefreshDataWorker

logger = logging.getLogger(__name__)

REFRESH_INTERVAL = timedelta(days=1)

# Only refresh on an unmetered network, while charging with a healthy battery,
# and preferably while the device is idle.
REFRESH_CONSTRAINTS = Constraints(
    requires_unmetered_network=True,
    requires_battery_not_low=True,
    requires_charging=True,
    requires_device_idle=True,
)


class RefreshScheduler:
    """Owns the recurring refresh job and how it is submitted.

    ``setup_recurring_work`` is meant to be called on every process start; the
    KEEP policy makes repeated calls no-ops while the job is registered.
    """

    work_name = RefreshDataWorker.WORK_NAME

    def __init__(self, work_manager: WorkManager, repository: VideosRepository):
        self._work_manager = work_manager
        self._repository = repository

    def build_request(self) -> PeriodicWorkRequest:
        """Build the periodic request for the refresh worker."""
        return PeriodicWorkRequest(
            worker=RefreshDataWorker(self._repository),
            interval=REFRESH_INTERVAL,
            constraints=REFRESH_CONSTRAINTS,
        )

    async def setup_recurring_work(self) -> WorkInfo:
        """Schedule the daily refresh unless it is already scheduled."""
        info = await self._work_manager.enqueue_unique_periodic_work(
            self.work_name, ExistingWorkPolicy.KEEP, self.build_request()
        )
        logger.info(f"Recurring refresh scheduled, next run at {info.next_run_at}")
        return info

    async def cancel(self) -> bool:
        """Cancel the recurring refresh."""
        return await self._work_manager.cancel_unique_work(self.work_name)

    async def get_work_info(self) -> WorkInfo | None:
        """Current registry entry for the recurring refresh."""
        return await self._work_manager.get_work_info(self.work_name)
