"""API routers for the DevBytes sync service."""

from devbytes.api.routes_health import router as health_router
from devbytes.api.routes_videos import router as videos_router
from devbytes.api.routes_work import router as work_router

__all__ = [
    "health_router",
    "videos_router",
    "work_router",
]
