import time
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter

from rbac_api.core.config import PROJECT_NAME, VERSION

router = APIRouter()

START_TIME = time.monotonic()


@router.get("/health", tags=["Health Check"])
async def health_check():
    uptime = timedelta(seconds=int(time.monotonic() - START_TIME))
    return {
        "status": "ok",
        "service": PROJECT_NAME,
        "version": VERSION,
        "uptime": str(uptime),
        "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
    }
