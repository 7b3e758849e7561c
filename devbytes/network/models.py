"""Pydantic models for the remote DevBytes playlist payload."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from devbytes.errors import MalformedRecordError


class NetworkVideo(BaseModel):
    """A single video as delivered by the playlist endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    url: str
    updated: str
    thumbnail: str
    closed_captions: str | None = Field(default=None, alias="closedCaptions")


class NetworkVideoContainer(BaseModel):
    """Top-level playlist payload: ``{"videos": [...]}``."""

    videos: list[NetworkVideo]


def parse_playlist(data: Any) -> NetworkVideoContainer:
    """Validate a decoded JSON payload into a playlist container.

    Raises:
        MalformedRecordError: For the first offending video (or the container
            itself), with ``index`` and ``field`` taken from the validation error
    """
    try:
        return NetworkVideoContainer.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        loc = first["loc"]
        index = loc[1] if len(loc) > 1 and isinstance(loc[1], int) else None
        field = str(loc[-1]) if loc and not isinstance(loc[-1], int) else None
        raise MalformedRecordError(
            f"Invalid playlist payload at {'.'.join(str(p) for p in loc)}: {first['msg']}",
            index=index,
            field=field,
        ) from e
