from fastapi import APIRouter, Depends

from config import Settings, app_settings
from database import now_utc

router = APIRouter()


@router.get("/health", tags=["Health"], summary="Liveness check")
def health(settings: Settings = Depends(app_settings)):
    return {
        "success": True,
        "message": "API is running",
        "timestamp": now_utc().isoformat(),
        "environment": settings.environment,
    }
