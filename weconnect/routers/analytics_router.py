# weconnect/routers/analytics_router.py
from fastapi import APIRouter, Depends

from ..dependencies.auth import get_current_user
from ..dependencies.services import get_analytics_service
from ..errors import success_body
from ..services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.api_route("/dashboard", methods=["GET", "POST"])
async def dashboard(svc: AnalyticsService = Depends(get_analytics_service), current_user=Depends(get_current_user)):
    metrics = await svc.dashboard(current_user.id)
    return success_body(metrics.model_dump(by_alias=True))


@router.get("/posts/{post_id}")
async def post_analytics(post_id: str, svc: AnalyticsService = Depends(get_analytics_service), current_user=Depends(get_current_user)):
    analytics = await svc.post_analytics(post_id, current_user.id)
    return success_body(analytics.model_dump(by_alias=True))
