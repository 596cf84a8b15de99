# weconnect/routers/health_router.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request):
    return {
        "success": True,
        "message": "Server is running.",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": request.app.state.settings.ENVIRONMENT,
    }
