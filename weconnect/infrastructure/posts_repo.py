# weconnect/infrastructure/posts_repo.py
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models.post import Post
from .database import merge_and_write


class PostsRepository:
    """
    Repository for Post entity.
    All methods are async and expect an AsyncSession to be injected from the outside.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, post: Post) -> Post:
        self.session.add(post)
        await self.session.commit()
        await self.session.refresh(post)
        return post

    async def get_by_id(self, post_id: str) -> Optional[Post]:
        q = select(Post).where(Post.id == post_id)
        res = await self.session.exec(q)
        return res.first()

    async def list_by_user(self, user_id: str, offset: int = 0, limit: Optional[int] = None) -> List[Post]:
        q = select(Post).where(Post.user_id == user_id).order_by(Post.created_at.desc()).offset(offset)
        if limit is not None:
            q = q.limit(limit)
        res = await self.session.exec(q)
        return list(res.all())

    async def count_by_user(self, user_id: str) -> int:
        q = select(func.count()).select_from(Post).where(Post.user_id == user_id)
        res = await self.session.exec(q)
        return res.one()

    async def count_by_status(self, user_id: str, status: str) -> int:
        q = select(func.count()).select_from(Post).where(Post.user_id == user_id, Post.status == status)
        res = await self.session.exec(q)
        return res.one()

    async def update(self, post_id: str, changes: Dict[str, Any]) -> Optional[Post]:
        """
        Read-merge-write: fetch the current row, merge `changes` over it and write
        every column back. Not atomic, see merge_and_write.
        """
        existing = await self.get_by_id(post_id)
        if not existing:
            return None
        return await self.write_merged(existing, changes)

    async def write_merged(self, existing: Post, changes: Dict[str, Any]) -> Post:
        return await merge_and_write(self.session, existing, changes)

    async def delete(self, post: Post) -> None:
        await self.session.delete(post)
        await self.session.commit()
