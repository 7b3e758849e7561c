"""Composition root wiring the sync-and-cache pipeline together."""

import logging
from datetime import timedelta

from redis.asyncio import Redis

from devbytes.config import Settings, get_settings
from devbytes.db.session import create_engine
from devbytes.db.store import VideoStore
from devbytes.network.client import DevByteClient
from devbytes.repository import VideosRepository
from devbytes.work.manager import ConditionsProbe, WorkManager, assume_conditions_met
from devbytes.work.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


class DevBytesApplication:
    """Owns every long-lived object of the process.

    Construction only builds objects; ``start`` performs I/O (schema creation,
    timer start-up, job registration) and ``stop`` releases connections.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        redis: Redis | None = None,
        conditions_probe: ConditionsProbe = assume_conditions_met,
    ):
        self.settings = settings or get_settings()
        self.engine = create_engine(self.settings)
        self.store = VideoStore(self.engine)
        self.client = DevByteClient(
            self.settings.playlist_url, timeout=self.settings.http_timeout_seconds
        )
        self.repository = VideosRepository(self.store, self.client)
        self.redis = redis or Redis.from_url(
            self.settings.redis_url,
            encoding="utf-8",
            decode_responses=False,
        )
        self.work_manager = WorkManager(
            self.redis,
            conditions_probe=conditions_probe,
            constraint_recheck=timedelta(seconds=self.settings.constraint_recheck_seconds),
        )
        self.scheduler = RefreshScheduler(self.work_manager, self.repository)

    async def start(self) -> None:
        """Prepare the cache and schedule the recurring refresh."""
        await self.store.create_schema()
        self.work_manager.start()
        await self.scheduler.setup_recurring_work()
        logger.info("DevBytes sync started")

    async def stop(self) -> None:
        """Stop background work and close connections."""
        self.work_manager.shutdown()
        await self.redis.aclose()
        await self.engine.dispose()
        logger.info("DevBytes sync stopped")
