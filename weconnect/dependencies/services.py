# weconnect/dependencies/services.py
from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from .db import get_session_dep
from ..services.analytics_service import AnalyticsService
from ..services.connection_service import ConnectionService
from ..services.post_service import PostService


def get_post_service(request: Request, session: AsyncSession = Depends(get_session_dep)) -> PostService:
    return PostService(session, request.app.state.n8n_client, request.app.state.fernet)


def get_connection_service(request: Request, session: AsyncSession = Depends(get_session_dep)) -> ConnectionService:
    return ConnectionService(session, request.app.state.fernet)


def get_analytics_service(session: AsyncSession = Depends(get_session_dep)) -> AnalyticsService:
    return AnalyticsService(session)
