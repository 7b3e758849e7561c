"""Health check endpoints for the DevBytes sync API."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from devbytes.api.dependencies import get_application
from devbytes.application import DevBytesApplication
from devbytes.errors import StorageError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Health check endpoint.

    Returns:
        A simple status object indicating the service is healthy
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check(application: DevBytesApplication = Depends(get_application)):
    """
    Readiness check endpoint.

    The service is ready once the offline cache can be read.

    Returns:
        ``{"ok": true}`` or a 503 with ``{"ok": false}`` if the cache is unreadable
    """
    try:
        await application.store.get_all()
    except StorageError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"ok": False})
    return {"ok": True}
