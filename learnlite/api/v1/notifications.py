import logging
from fastapi import APIRouter, HTTPException, Request
from learnlite.core.config import VERSION
from learnlite.notifications.status import StatusReporter
from learnlite.schemas.response import SuccessResponse

router = APIRouter()
log = logging.getLogger(__name__)


@router.get("/health", response_model=SuccessResponse)
async def notifications_health_endpoint(request: Request):
    """
    Returns the health of the notifications dispatcher. No authentication required.
    """
    reporter: StatusReporter = getattr(request.app.state, "status_reporter", None)
    if reporter is None or not reporter.enabled:
        return SuccessResponse(data={
            "ok": True,
            "version": VERSION,
            "enabled": False,
            "message": "Notifications worker is disabled",
        })

    try:
        status = reporter.snapshot()
    except Exception as e:
        log.error(f"Error getting notifications health: {e}")
        raise HTTPException(status_code=500, detail="Failed to get notifications health status")

    data = {"ok": True, "version": VERSION, "enabled": True}
    data.update(status.model_dump(mode="json", by_alias=True))
    return SuccessResponse(data=data)
