"""Read endpoints over the cached DevBytes playlist."""

import json
from contextlib import aclosing

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from devbytes.api.dependencies import get_application
from devbytes.application import DevBytesApplication
from devbytes.domain import DevByteVideo

router = APIRouter(prefix="/api/videos", tags=["videos"])
limiter = Limiter(key_func=get_remote_address)


def serialize_video(video: DevByteVideo) -> dict:
    """Serialize a video including its derived short description."""
    data = video.model_dump(mode="json")
    data["short_description"] = video.short_description
    return data


@router.get("")
@limiter.limit("120/minute")
async def list_videos(
    request: Request,
    application: DevBytesApplication = Depends(get_application),
):
    """
    Return the cached playlist.

    The response always reflects the offline cache; it never triggers a
    network fetch. After a failed refresh the previous playlist is returned.

    Returns:
        JSON response with ``items``: list of cached videos
    """
    videos = await application.repository.get_videos()
    return {"items": [serialize_video(v) for v in videos]}


@router.get("/stream")
async def stream_videos(
    request: Request,
    application: DevBytesApplication = Depends(get_application),
) -> StreamingResponse:
    """
    Server-sent events stream of the cached playlist.

    Emits the full playlist immediately and again after every committed
    refresh, one ``data:`` event per snapshot.
    """

    async def event_generator():
        live = application.repository.observe_videos()
        async with aclosing(live.stream()) as snapshots:
            async for videos in snapshots:
                if await request.is_disconnected():
                    break
                payload = json.dumps([serialize_video(v) for v in videos])
                yield f"data: {payload}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
