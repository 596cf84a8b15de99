# weconnect/infrastructure/connections_repo.py
from typing import Any, Dict, Optional, List

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select

from ..models.connection import Connection
from .database import merge_and_write

logger = structlog.get_logger(__name__)


class ConnectionsRepository:
    """
    Repository for Connection entity.
    All methods are async and expect an AsyncSession to be injected from the outside.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, cp: Connection) -> Connection:
        """
        Persist a new Connection and return refreshed instance.
        """
        self.session.add(cp)
        await self.session.commit()
        await self.session.refresh(cp)
        return cp

    async def get_by_id(self, id: str) -> Optional[Connection]:
        q = select(Connection).where(Connection.id == id)
        res = await self.session.exec(q)
        return res.first()

    async def get_by_user_and_platform(self, user_id: str, platform: str) -> Optional[Connection]:
        q = select(Connection).where(
            Connection.user_id == user_id,
            Connection.platform == platform
        )
        res = await self.session.exec(q)
        return res.first()

    async def list_by_user(self, user_id: str) -> List[Connection]:
        q = select(Connection).where(Connection.user_id == user_id).order_by(Connection.created_at.desc())
        res = await self.session.exec(q)
        return list(res.all())

    async def count_by_status(self, user_id: str, status: str) -> int:
        q = select(func.count()).select_from(Connection).where(
            Connection.user_id == user_id,
            Connection.status == status
        )
        res = await self.session.exec(q)
        return res.one()

    async def upsert(self, user_id: str, platform: str, fields: Dict[str, Any]) -> Connection:
        """
        At most one connection per (user_id, platform): update the existing row with
        `fields` or insert a new one. An insert that loses a race against a concurrent
        insert falls back to updating the winner's row.
        """
        existing = await self.get_by_user_and_platform(user_id, platform)
        if existing:
            return await self.write_merged(existing, fields)

        cp = Connection(user_id=user_id, platform=platform, **fields)
        try:
            return await self.create(cp)
        except IntegrityError:
            await self.session.rollback()
            logger.info("connection_upsert_conflict", user_id=user_id, platform=platform)
            existing = await self.get_by_user_and_platform(user_id, platform)
            if existing is None:
                raise
            return await self.write_merged(existing, fields)

    async def write_merged(self, existing: Connection, changes: Dict[str, Any]) -> Connection:
        return await merge_and_write(self.session, existing, changes)

    async def delete(self, cp: Connection) -> None:
        """
        Delete the provided Connection instance.
        """
        await self.session.delete(cp)
        await self.session.commit()
