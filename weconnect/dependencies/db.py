# weconnect/dependencies/db.py
from typing import AsyncGenerator

from fastapi import Request
from sqlmodel.ext.asyncio.session import AsyncSession

from ..infrastructure.database import get_session


async def get_session_dep(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with get_session(request.app.state.engine) as session:
        yield session
