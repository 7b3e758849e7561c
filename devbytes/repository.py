"""Repository combining the remote playlist with the offline cache."""

import logging

from devbytes.db.store import VideoStore
from devbytes.domain import DevByteVideo
from devbytes.errors import MalformedRecordError, NetworkError, RefreshError, StorageError
from devbytes.live import LiveData
from devbytes.network.client import DevByteClient
from devbytes.network.transform import to_cached_items, to_domain_items

logger = logging.getLogger(__name__)


class VideosRepository:
    """Single entry point for reading and refreshing the video playlist.

    Readers always see the offline cache, never the network. ``refresh``
    replaces the cached playlist with the remote one, and every subscriber of
    ``videos`` is notified by the store when that write commits.
    """

    def __init__(self, store: VideoStore, client: DevByteClient):
        self._store = store
        self._client = client

    @property
    def videos(self) -> LiveData[list[DevByteVideo]]:
        """Live list of cached videos in their domain shape."""
        return self.observe_videos()

    def observe_videos(self) -> LiveData[list[DevByteVideo]]:
        """Live list of cached videos, re-derived on every store notification."""
        return self._store.observe_all().map(to_domain_items)

    async def get_videos(self) -> list[DevByteVideo]:
        """One-shot read of the cached videos in their domain shape."""
        return to_domain_items(await self._store.get_all())

    async def refresh(self) -> None:
        """Refresh the offline cache from the remote playlist.

        Fetch, conversion and write all have to succeed before anything is
        committed; the cache is left untouched on any failure.

        Raises:
            RefreshError: Wrapping the NetworkError, MalformedRecordError or
                StorageError that stopped the refresh
        """
        try:
            playlist = await self._client.fetch_playlist()
            rows = to_cached_items(playlist.videos)
            await self._store.upsert_all(rows)
        except (NetworkError, MalformedRecordError, StorageError) as e:
            logger.warning(f"Playlist refresh failed: {e}")
            raise RefreshError(e) from e

        logger.info(f"Playlist refresh stored {len(rows)} videos")
