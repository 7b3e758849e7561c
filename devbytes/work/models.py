"""Types describing periodic background work and its execution state."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict

# Shortest period the host facility accepts for periodic work
MIN_PERIODIC_INTERVAL = timedelta(minutes=15)


class ExistingWorkPolicy(str, Enum):
    """What to do when unique work with the same name is already registered."""

    KEEP = "keep"
    REPLACE = "replace"


class WorkState(str, Enum):
    """Lifecycle state of a registered periodic job."""

    ENQUEUED = "enqueued"
    RUNNING = "running"
    CANCELLED = "cancelled"


class WorkResult(str, Enum):
    """Outcome a worker reports for a single run."""

    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"


class Constraints(BaseModel):
    """Device conditions that must hold before a job may run."""

    model_config = ConfigDict(frozen=True)

    requires_unmetered_network: bool = False
    requires_battery_not_low: bool = False
    requires_charging: bool = False
    # Best-effort: ignored when the platform cannot report idleness
    requires_device_idle: bool = False

    def satisfied_by(self, conditions: "DeviceConditions") -> bool:
        """Check these constraints against a snapshot of device conditions."""
        if self.requires_unmetered_network and not conditions.network_unmetered:
            return False
        if self.requires_battery_not_low and conditions.battery_low:
            return False
        if self.requires_charging and not conditions.charging:
            return False
        if self.requires_device_idle and conditions.idle is False:
            return False
        return True


class DeviceConditions(BaseModel):
    """Snapshot of the conditions the host platform reports."""

    network_unmetered: bool = True
    battery_low: bool = False
    charging: bool = True
    idle: bool | None = None


class Worker(ABC):
    """A unit of background work invoked by the work manager."""

    @abstractmethod
    async def do_work(self) -> WorkResult:
        """Run once and report the outcome."""


@dataclass(frozen=True)
class PeriodicWorkRequest:
    """Recurring job definition: what to run, how often and under which constraints."""

    worker: Worker
    interval: timedelta
    constraints: Constraints = field(default_factory=Constraints)

    def __post_init__(self) -> None:
        if self.interval < MIN_PERIODIC_INTERVAL:
            raise ValueError(
                f"Periodic interval must be at least {MIN_PERIODIC_INTERVAL}, got {self.interval}"
            )


class WorkInfo(BaseModel):
    """Persisted registry entry for a unique periodic job."""

    name: str
    state: WorkState
    interval_seconds: int = 0
    # Anchor of the interval grid; retries and re-checks never move it
    period_start_at: datetime | None = None
    next_run_at: datetime | None = None
    run_attempt: int = 0
    last_result: WorkResult | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_redis(cls, name: str, data: dict) -> "WorkInfo":
        """Build from a Redis hash (keys and values may be bytes)."""
        fields = {_text(k): _text(v) for k, v in data.items()}
        return cls(
            name=name,
            state=WorkState(fields["state"]),
            interval_seconds=int(fields.get("interval_seconds") or 0),
            period_start_at=fields.get("period_start_at") or None,
            next_run_at=fields.get("next_run_at") or None,
            run_attempt=int(fields.get("run_attempt") or 0),
            last_result=fields.get("last_result") or None,
            updated_at=fields.get("updated_at") or None,
        )

    def to_redis(self) -> dict[str, str]:
        """Flatten to string fields for ``HSET``."""
        return {
            "state": self.state.value,
            "interval_seconds": str(self.interval_seconds),
            "period_start_at": self.period_start_at.isoformat() if self.period_start_at else "",
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else "",
            "run_attempt": str(self.run_attempt),
            "last_result": self.last_result.value if self.last_result else "",
            "updated_at": self.updated_at.isoformat() if self.updated_at else "",
        }


def _text(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value
