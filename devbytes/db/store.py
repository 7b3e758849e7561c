"""Durable, observable store for cached playlist videos."""

import asyncio
import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from devbytes.db.models import Base, CachedVideo
from devbytes.db.session import create_sessionmaker
from devbytes.errors import StorageError
from devbytes.live import LiveData, Observer, ObserverRegistry, Subscription

logger = logging.getLogger(__name__)


class VideoStore:
    """Keyed table of cached videos with a live "current contents" view.

    All writes go through ``upsert_all``, which holds a single-writer lock for
    the transaction and for the notification that follows it. Subscribing
    takes the same lock, so observers see snapshots strictly in commit order.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._sessionmaker = create_sessionmaker(engine)
        self._write_lock = asyncio.Lock()
        self._observers: ObserverRegistry[list[CachedVideo]] = ObserverRegistry()

    async def create_schema(self) -> None:
        """Create the cache tables if they do not exist yet."""
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create cache schema: {e}") from e

    async def upsert_all(self, videos: Iterable[CachedVideo]) -> None:
        """Insert ``videos``, replacing any rows with the same url.

        The batch is applied in one transaction: either every row is written
        or none is. The snapshot handed to observers is read inside the same
        transaction, and observers are notified only after it commits.

        Raises:
            StorageError: If the database cannot be written
        """
        rows = [_copy_row(video) for video in videos]

        async with self._write_lock:
            try:
                async with self._sessionmaker() as session:
                    async with session.begin():
                        last = await session.scalar(
                            select(func.coalesce(func.max(CachedVideo.position), 0))
                        )
                        for offset, row in enumerate(rows, start=1):
                            row.position = last + offset
                            await session.merge(row)
                        await session.flush()
                        # Snapshot comes from the same transaction as the writes
                        snapshot = await _select_all(session)
            except SQLAlchemyError as e:
                logger.error(f"Failed to upsert {len(rows)} cached videos: {e}")
                raise StorageError(f"Failed to write cached videos: {e}") from e

            logger.info(f"Committed {len(rows)} videos to the offline cache")
            self._observers.dispatch(snapshot)

    async def get_all(self) -> list[CachedVideo]:
        """Read the current cache contents once.

        Raises:
            StorageError: If the database cannot be read
        """
        try:
            return await self._read_all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read cached videos: {e}") from e

    def observe_all(self) -> LiveData[list[CachedVideo]]:
        """Live view of the full cache contents, re-emitted after every commit."""
        return _CachedVideosLiveData(self)

    async def _read_all(self) -> list[CachedVideo]:
        async with self._sessionmaker() as session:
            return await _select_all(session)

    async def _attach(self, subscription: Subscription) -> None:
        async with self._write_lock:
            snapshot = await self.get_all()
            subscription.observer(snapshot)
            self._observers.add(subscription)

    def _detach(self, subscription: Subscription) -> None:
        self._observers.remove(subscription)


class _CachedVideosLiveData(LiveData[list[CachedVideo]]):
    def __init__(self, store: VideoStore):
        self._store = store

    async def subscribe(self, observer: Observer[list[CachedVideo]]) -> Subscription:
        subscription = Subscription(self, observer)
        await self._store._attach(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._store._detach(subscription)


async def _select_all(session: AsyncSession) -> list[CachedVideo]:
    result = await session.execute(
        select(CachedVideo).order_by(CachedVideo.position, CachedVideo.url)
    )
    return list(result.scalars().all())


def _copy_row(video: CachedVideo) -> CachedVideo:
    """Copy so the caller's object is never attached to the write session."""
    return CachedVideo(
        url=video.url,
        title=video.title,
        description=video.description,
        updated=video.updated,
        thumbnail=video.thumbnail,
    )
