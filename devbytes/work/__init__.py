"""Background work scheduling for DevBytes sync."""

from devbytes.work.manager import WorkManager
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
from devbytes.work.refresh import RefreshDataWorker
from devbytes.work.scheduler import RefreshScheduler

__all__ = [
    "Constraints",
    "DeviceConditions",
    "ExistingWorkPolicy",
    "PeriodicWorkRequest",
    "RefreshDataWorker",
    "RefreshScheduler",
    "WorkInfo",
    "WorkManager",
    "WorkResult",
    "WorkState",
    "Worker",
]
