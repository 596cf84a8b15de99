# weconnect/UAA/repository.py
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from .models import User
from typing import Optional

from ..errors import ConflictError


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        q = select(User).where(func.lower(User.email) == email.strip().lower())
        res = await self.session.exec(q)
        return res.first()

    async def get_by_id(self, user_id: str) -> Optional[User]:
        q = select(User).where(User.id == user_id)
        res = await self.session.exec(q)
        return res.first()

    async def create(self, user: User) -> User:
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("This email address is already registered.")
        await self.session.refresh(user)
        return user
