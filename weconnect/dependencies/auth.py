# weconnect/dependencies/auth.py
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession
from structlog.contextvars import bind_contextvars

from .db import get_session_dep
from ..errors import AuthError
from ..UAA.models import User
from ..UAA.repository import UserRepository
from ..UAA.services import UserService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_user_service(request: Request, session: AsyncSession = Depends(get_session_dep)) -> UserService:
    state = request.app.state
    return UserService(UserRepository(session), state.settings, state.redis)


async def require_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    if not token:
        raise AuthError("No token provided. Please log in.")
    return token


async def get_current_user(
    token: str = Depends(require_token),
    svc: UserService = Depends(get_user_service),
) -> User:
    user_id = await svc.verify_token(token)
    user = await svc.repo.get_by_id(user_id)
    if not user:
        raise AuthError("User not found. Please log in again.")
    bind_contextvars(user_id=user.id)
    return user
