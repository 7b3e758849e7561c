"""HTTP client for the remote DevBytes playlist."""

import json
import logging

import httpx

from devbytes.errors import MalformedRecordError, NetworkError
from devbytes.network.models import NetworkVideoContainer, parse_playlist

logger = logging.getLogger(__name__)


class DevByteClient:
    """Fetches the DevBytes playlist over HTTPS.

    Every transport problem is reported as ``NetworkError`` and every payload
    problem as ``MalformedRecordError``, so callers never see raw httpx or
    pydantic exceptions.
    """

    def __init__(self, playlist_url: str, timeout: float = 15.0):
        """Initialize the client.

        Args:
            playlist_url: Absolute URL of the playlist JSON document
            timeout: Timeout in seconds applied to the whole request
        """
        self.playlist_url = playlist_url
        self._timeout = timeout

    async def fetch_playlist(self) -> NetworkVideoContainer:
        """Download and decode the current playlist.

        Returns:
            The validated playlist container

        Raises:
            NetworkError: On connection failure, timeout or a non-2xx response
            MalformedRecordError: If the body is not valid JSON or a video in
                it does not match the expected shape
        """
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self.playlist_url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise NetworkError(
                f"Playlist request returned HTTP {status}", status_code=status
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Playlist request failed: {e}") from e

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedRecordError(f"Playlist body is not valid JSON: {e}") from e

        playlist = parse_playlist(data)
        logger.info(f"Fetched playlist with {len(playlist.videos)} videos")
        return playlist
