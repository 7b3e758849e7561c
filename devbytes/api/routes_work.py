"""Background work status endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from devbytes.api.dependencies import get_application
from devbytes.application import DevBytesApplication

router = APIRouter(prefix="/api/work", tags=["work"])


@router.get("")
async def get_refresh_work(application: DevBytesApplication = Depends(get_application)):
    """Return the registry entry of the recurring playlist refresh."""
    info = await application.scheduler.get_work_info()
    if info is None:
        raise HTTPException(status_code=404, detail="Refresh work is not scheduled")
    return info.model_dump(mode="json")
