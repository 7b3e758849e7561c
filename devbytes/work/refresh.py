"""Background worker that refreshes the offline playlist cache."""

import logging

from devbytes.errors import RefreshError
from devbytes.repository import VideosRepository
from devbytes.work.models import WorkResult, Worker

logger = logging.getLogger(__name__)


class RefreshDataWorker(Worker):
    """Runs one repository refresh and reports the outcome to the work manager."""

    WORK_NAME = "RefreshDataWorker"

    def __init__(self, repository: VideosRepository):
        self._repository = repository

    async def do_work(self) -> WorkResult:
        try:
            await self._repository.refresh()
        except RefreshError as e:
            logger.warning(f"Refresh failed, asking for retry: {e.cause!r}")
            return WorkResult.RETRY
        return WorkResult.SUCCESS
