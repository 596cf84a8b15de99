# weconnect/UAA/services.py
from datetime import timedelta
from typing import Any, Dict

import structlog
from jose import ExpiredSignatureError, JWTError

from .models import User
from .repository import UserRepository
from .schemas import SignupRequest
from . import utils
from ..config import Settings
from ..errors import AuthError, ConflictError, ValidationError

logger = structlog.get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."


class UserService:
    def __init__(self, repo: UserRepository, settings: Settings, redis_client=None):
        self.repo = repo
        self.settings = settings
        self.redis = redis_client

    async def register_user(self, user_in: SignupRequest) -> User:
        email = user_in.email.lower()
        if not utils.validate_email(email):
            raise ValidationError("Invalid email address.")
        try:
            utils.assert_password_policy(user_in.password)
        except ValueError as e:
            raise ValidationError(str(e))

        existing = await self.repo.get_by_email(email)
        if existing:
            logger.info("register_email_exists")
            raise ConflictError("This email address is already registered.")

        user = User(
            email=email,
            hashed_password=utils.hash_password(user_in.password),
            name=f"{user_in.first_name} {user_in.last_name}",
            first_name=user_in.first_name,
            last_name=user_in.last_name,
            company=user_in.company,
        )
        created = await self.repo.create(user)
        logger.info("user_registered", user_id=created.id)
        return created

    async def authenticate_user(self, email: str, password: str) -> User:
        user = await self.repo.get_by_email(email)
        if not user:
            logger.info("auth_failed_unknown_email")
            raise AuthError(INVALID_CREDENTIALS)

        if not utils.verify_password(password, user.hashed_password):
            logger.info("auth_failed_wrong_password", user_id=user.id)
            raise AuthError(INVALID_CREDENTIALS)

        logger.info("auth_success", user_id=user.id)
        return user

    def issue_token(self, user: User) -> str:
        access = utils.create_access_token(
            user.id,
            self.settings.JWT_SECRET,
            self.settings.JWT_ALGORITHM,
            timedelta(minutes=self.settings.JWT_EXPIRE_MINUTES),
        )
        logger.info("token_issued", user_id=user.id, jti=access["jti"])
        return access["token"]

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            payload = utils.decode_token(token, self.settings.JWT_SECRET, self.settings.JWT_ALGORITHM)
        except ExpiredSignatureError:
            raise AuthError("Token expired. Please log in again.")
        except JWTError:
            raise AuthError("Invalid token. Please log in again.")
        if not payload.get("userId"):
            raise AuthError("Invalid token. Please log in again.")
        return payload

    async def verify_token(self, token: str) -> str:
        """Return the user id carried by a valid, unrevoked token."""
        payload = self.decode(token)
        jti = payload.get("jti")
        if jti and self.redis is not None and await utils.is_access_jti_blacklisted(self.redis, jti):
            raise AuthError("Token has been revoked. Please log in again.")
        return payload["userId"]

    async def logout(self, token: str) -> None:
        payload = self.decode(token)
        jti = payload.get("jti")
        exp = payload.get("exp")
        if jti and exp and self.redis is not None:
            await utils.blacklist_access_jti(self.redis, jti, exp)
        logger.info("user_logged_out", user_id=payload["userId"])
