# weconnect/services/post_service.py
import math
import re
from typing import Any, Dict, List, Optional, Tuple

import structlog
from cryptography.fernet import Fernet
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ForbiddenError, NotFoundError, UpstreamError, ValidationError
from ..infrastructure.connections_repo import ConnectionsRepository
from ..infrastructure.n8n_client import N8nClient, PublishWebhookError
from ..infrastructure.posts_repo import PostsRepository
from ..models.base import to_naive_utc, utcnow
from ..models.post import POST_STATUSES, Post
from ..schemas.post_schema import N8nCallback, Pagination, PostCreate, PostUpdate
from ..UAA.utils import decrypt_token

logger = structlog.get_logger(__name__)

_HASHTAG_RE = re.compile(r"#\w+", re.ASCII)
_MENTION_RE = re.compile(r"@\w+", re.ASCII)


def calculate_metadata(content: str) -> Dict[str, Any]:
    """
    Character/word counts plus extracted hashtags and mentions. Hashtags are
    reported on their own and do not count as words.
    """
    hashtags = _HASHTAG_RE.findall(content)
    mentions = _MENTION_RE.findall(content)
    words = [w for w in content.split() if not _HASHTAG_RE.fullmatch(w)]
    return {
        "character_count": len(content),
        "word_count": len(words),
        "hashtags": hashtags,
        "mentions": mentions,
    }


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(v.strip() for v in values if v and v.strip()))


class PostService:
    def __init__(self, session: AsyncSession, n8n_client: Optional[N8nClient] = None, fernet: Optional[Fernet] = None):
        self.session = session
        self.posts = PostsRepository(session)
        self.connections = ConnectionsRepository(session)
        self.n8n_client = n8n_client
        self.fernet = fernet

    async def get_owned_post(self, post_id: str, user_id: str) -> Post:
        post = await self.posts.get_by_id(post_id)
        if not post:
            raise NotFoundError("Post not found.")
        if post.user_id != user_id:
            raise ForbiddenError("You do not have permission to access this post.")
        return post

    async def list_posts(self, user_id: str, page: int = 1, limit: Optional[int] = None) -> Tuple[List[Post], Pagination]:
        total = await self.posts.count_by_user(user_id)
        if limit is None:
            posts = await self.posts.list_by_user(user_id)
            return posts, Pagination(page=1, limit=len(posts), total=total, total_pages=1)
        posts = await self.posts.list_by_user(user_id, offset=(page - 1) * limit, limit=limit)
        total_pages = max(1, math.ceil(total / limit))
        return posts, Pagination(page=page, limit=limit, total=total, total_pages=total_pages)

    async def create_post(self, user_id: str, payload: PostCreate) -> Post:
        platforms = _unique(payload.platforms)
        if not platforms:
            raise ValidationError("At least one platform must be selected.")
        if not payload.content and not payload.topic:
            raise ValidationError("Either content or topic is required.")

        content = payload.content or f"Post about: {payload.topic}"
        post = Post(
            user_id=user_id,
            title=payload.title or payload.topic,
            content=content,
            platforms=platforms,
            status="scheduled" if payload.scheduled_at else "draft",
            scheduled_at=to_naive_utc(payload.scheduled_at),
            media_urls=payload.media_urls,
            hashtags=payload.hashtags,
            video_url=payload.video_url,
            topic=payload.topic,
            content_type=payload.content_type or "text",
            tone=payload.tone,
            image_prompt=payload.image_prompt,
            meta=calculate_metadata(content),
        )
        created = await self.posts.create(post)
        logger.info("post_created", post_id=created.id, user_id=user_id, status=created.status)
        return created

    async def update_post(self, post_id: str, user_id: str, payload: PostUpdate) -> Post:
        post = await self.get_owned_post(post_id, user_id)
        changes = payload.model_dump(exclude_unset=True)

        if "platforms" in changes:
            changes["platforms"] = _unique(changes["platforms"] or [])
            if not changes["platforms"]:
                raise ValidationError("At least one platform must be selected.")
        for key in ("status", "media_urls", "hashtags", "content_type"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} must not be null.")
        if "content" in changes:
            if not changes["content"]:
                raise ValidationError("content must not be empty.")
            changes["meta"] = calculate_metadata(changes["content"])
        if "scheduled_at" in changes:
            changes["scheduled_at"] = to_naive_utc(changes["scheduled_at"])

        updated = await self.posts.write_merged(post, changes)
        logger.info("post_updated", post_id=post_id, fields=sorted(changes))
        return updated

    async def delete_post(self, post_id: str, user_id: str) -> None:
        post = await self.get_owned_post(post_id, user_id)
        await self.posts.delete(post)
        logger.info("post_deleted", post_id=post_id, user_id=user_id)

    async def publish_post(self, post_id: str, user_id: str) -> Post:
        """
        Hand the post and the credentials of the matching connected accounts to
        n8n. Single attempt; a webhook failure marks the post failed.
        """
        post = await self.get_owned_post(post_id, user_id)

        connections = await self.connections.list_by_user(user_id)
        active = [c for c in connections if c.platform in post.platforms and c.status == "connected"]
        if not active:
            raise ValidationError("No connected accounts for the selected platforms.")

        payload = {
            "post": {
                "id": post.id,
                "content": post.content,
                "platforms": post.platforms,
                "imageUrls": post.media_urls,
                "videoUrl": post.video_url,
            },
            "connections": [
                {
                    "platform": c.platform,
                    "accountId": c.account_id,
                    "accessToken": decrypt_token(self.fernet, c.access_token_enc) if self.fernet else None,
                }
                for c in active
            ],
            "userId": user_id,
        }

        try:
            await self.n8n_client.publish(payload)
        except PublishWebhookError as exc:
            logger.error("post_publish_failed", post_id=post_id, error=str(exc))
            await self._mark_failed(post, str(exc))
            raise UpstreamError(
                "Failed to send the post to n8n. Please check that n8n is running.",
                error="Webhook Error",
            ) from exc

        published = await self.posts.write_merged(post, {"status": "published", "published_at": utcnow()})
        logger.info("post_published", post_id=post_id, platforms=[c.platform for c in active])
        return published

    async def _mark_failed(self, post: Post, reason: str) -> None:
        # best effort: the caller gets a 500 whether or not this write lands
        try:
            await self.posts.write_merged(post, {"status": "failed", "error_message": reason})
        except Exception:
            await self.session.rollback()
            logger.exception("post_mark_failed_error", post_id=post.id)

    async def apply_callback(self, callback: N8nCallback) -> Post:
        """Status report from n8n for a post it was asked to publish."""
        if not callback.post_id:
            raise ValidationError("postId is required.")
        post = await self.posts.get_by_id(callback.post_id)
        if not post:
            raise NotFoundError("Post not found.")

        changes: Dict[str, Any] = {}
        if callback.status is not None:
            if callback.status not in POST_STATUSES:
                raise ValidationError(f"Invalid status. Allowed: {', '.join(POST_STATUSES)}")
            changes["status"] = callback.status
            if callback.status == "published" and post.published_at is None:
                changes["published_at"] = utcnow()
        if callback.error is not None:
            changes["error_message"] = callback.error
        if callback.post_url is not None:
            changes["post_url"] = callback.post_url
        if callback.engagement is not None:
            for key, value in callback.engagement.model_dump(exclude_none=True).items():
                changes[f"engagement_{key}"] = value

        updated = await self.posts.write_merged(post, changes)
        logger.info("post_callback_applied", post_id=post.id, status=updated.status)
        return updated
