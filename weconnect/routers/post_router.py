# weconnect/routers/post_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies.auth import get_current_user
from ..dependencies.services import get_post_service
from ..errors import success_body
from ..schemas.post_schema import PostCreate, PostRead, PostUpdate
from ..services.post_service import PostService

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("")
async def list_posts(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    svc: PostService = Depends(get_post_service),
    current_user=Depends(get_current_user),
):
    posts, pagination = await svc.list_posts(current_user.id, page=page, limit=limit)
    return success_body({
        "data": [PostRead.from_model(p).to_api() for p in posts],
        "pagination": pagination.model_dump(by_alias=True),
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(payload: PostCreate, svc: PostService = Depends(get_post_service), current_user=Depends(get_current_user)):
    post = await svc.create_post(user_id=current_user.id, payload=payload)
    return success_body(PostRead.from_model(post).to_api(), "Post created.")


@router.get("/{post_id}")
async def get_post(post_id: str, svc: PostService = Depends(get_post_service), current_user=Depends(get_current_user)):
    post = await svc.get_owned_post(post_id, current_user.id)
    return success_body(PostRead.from_model(post).to_api())


@router.put("/{post_id}")
async def update_post(
    post_id: str,
    payload: PostUpdate,
    svc: PostService = Depends(get_post_service),
    current_user=Depends(get_current_user),
):
    post = await svc.update_post(post_id, current_user.id, payload)
    return success_body(PostRead.from_model(post).to_api(), "Post updated.")


@router.delete("/{post_id}")
async def delete_post(post_id: str, svc: PostService = Depends(get_post_service), current_user=Depends(get_current_user)):
    await svc.delete_post(post_id, current_user.id)
    return success_body(None, "Post deleted.")


@router.post("/{post_id}/publish")
async def publish_post(post_id: str, svc: PostService = Depends(get_post_service), current_user=Depends(get_current_user)):
    post = await svc.publish_post(post_id, current_user.id)
    return success_body(PostRead.from_model(post).to_api(), "Post published.")
