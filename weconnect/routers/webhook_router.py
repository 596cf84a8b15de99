# weconnect/routers/webhook_router.py
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import ValidationError as PydanticValidationError

from ..dependencies.services import get_post_service
from ..errors import ValidationError, success_body
from ..middleware.webhook_signature import verified_webhook_body
from ..schemas.post_schema import N8nCallback
from ..services.post_service import PostService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/webhook", tags=["webhook"])


@router.post("/n8n/callback")
async def n8n_callback(body: Any = Depends(verified_webhook_body), svc: PostService = Depends(get_post_service)):
    if not isinstance(body, dict):
        raise ValidationError("Callback body must be a JSON object.")
    try:
        callback = N8nCallback.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid callback payload: {exc.errors()[0]['msg']}")

    logger.info("n8n_callback_received", post_id=callback.post_id, status=callback.status)
    post = await svc.apply_callback(callback)
    return success_body({"received": True, "postId": post.id, "status": post.status})
