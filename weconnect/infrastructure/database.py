# weconnect/infrastructure/database.py
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..config import Settings
from ..models.base import utcnow

# table registration for metadata.create_all
from ..UAA.models import User  # noqa: F401
from ..models.post import Post  # noqa: F401
from ..models.connection import Connection  # noqa: F401

logger = structlog.get_logger(__name__)


def build_engine(settings: Settings) -> AsyncEngine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        # single shared connection so in-memory databases survive across sessions
        return create_async_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    logger.info("db_initialized")


async def merge_and_write(session: AsyncSession, entity: SQLModel, changes: Dict[str, Any]) -> SQLModel:
    """
    Shallow-merge `changes` over a snapshot of every column of `entity` and write
    the whole row back. Nothing locks the row between the caller's read and this
    write, so concurrent updates of the same row are last-write-wins.
    """
    snapshot = entity.model_dump()
    snapshot.update(changes)
    snapshot["updated_at"] = utcnow()
    snapshot.pop("id", None)
    for key, value in snapshot.items():
        setattr(entity, key, value)
        flag_modified(entity, key)
    session.add(entity)
    await session.commit()
    await session.refresh(entity)
    return entity


@asynccontextmanager
async def get_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
