"""Pure conversions between wire, cache and domain video shapes.

Every function validates each record before converting it and raises
``MalformedRecordError`` for the first record that is missing a required
field. Callers fail the whole batch on that error so the cache is only ever
replaced all-or-nothing.
"""

from collections.abc import Sequence

from devbytes.db.models import CachedVideo
from devbytes.domain import DevByteVideo
from devbytes.errors import MalformedRecordError
from devbytes.network.models import NetworkVideo

REQUIRED_FIELDS = ("title", "description", "url", "updated", "thumbnail")


def _checked_fields(record: NetworkVideo | CachedVideo, index: int) -> dict[str, str]:
    values = {}
    for field in REQUIRED_FIELDS:
        value = getattr(record, field, None)
        if not isinstance(value, str):
            raise MalformedRecordError(
                f"Video at index {index} is missing required field '{field}'",
                index=index,
                field=field,
            )
        values[field] = value

    # url is the cache key; a blank one would collapse unrelated videos
    if not values["url"].strip():
        raise MalformedRecordError(
            f"Video at index {index} has a blank url", index=index, field="url"
        )
    return values


def to_cached_items(videos: Sequence[NetworkVideo]) -> list[CachedVideo]:
    """Convert playlist videos into cache rows (closed captions are not stored)."""
    return [
        CachedVideo(**_checked_fields(video, index)) for index, video in enumerate(videos)
    ]


def remote_to_domain_items(videos: Sequence[NetworkVideo]) -> list[DevByteVideo]:
    """Convert playlist videos straight into domain videos, bypassing the cache."""
    return [
        DevByteVideo(**_checked_fields(video, index)) for index, video in enumerate(videos)
    ]


def to_domain_items(rows: Sequence[CachedVideo]) -> list[DevByteVideo]:
    """Convert cache rows into domain videos."""
    return [DevByteVideo(**_checked_fields(row, index)) for index, row in enumerate(rows)]
