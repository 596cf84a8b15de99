# weconnect/services/connection_service.py
from typing import Any, Dict, List, Optional

import structlog
from cryptography.fernet import Fernet
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..infrastructure.connections_repo import ConnectionsRepository
from ..models.base import to_naive_utc, utcnow
from ..models.connection import PLATFORMS, Connection
from ..schemas.connection_schema import ConnectionCreate, ConnectionUpdate, ReconnectRequest
from ..UAA.utils import encrypt_token

logger = structlog.get_logger(__name__)


class ConnectionService:
    def __init__(self, session: AsyncSession, fernet: Fernet):
        self.repo = ConnectionsRepository(session)
        self.fernet = fernet

    async def get_owned_connection(self, connection_id: str, user_id: str) -> Connection:
        connection = await self.repo.get_by_id(connection_id)
        if not connection:
            raise NotFoundError("Connection not found.")
        if connection.user_id != user_id:
            raise ForbiddenError("You do not have permission to access this connection.")
        return connection

    async def list_connections(self, user_id: str) -> List[Connection]:
        return await self.repo.list_by_user(user_id)

    def _token_fields(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # plaintext credentials never reach the row
        fields = {}
        if "access_token" in data:
            fields["access_token_enc"] = encrypt_token(self.fernet, data.pop("access_token"))
        if "refresh_token" in data:
            fields["refresh_token_enc"] = encrypt_token(self.fernet, data.pop("refresh_token"))
        if "token_expires_at" in data:
            data["token_expires_at"] = to_naive_utc(data["token_expires_at"])
        return fields

    async def create_connection(self, user_id: str, payload: ConnectionCreate) -> Connection:
        """
        Create the user's connection for a platform, or overwrite it when one
        already exists.
        """
        if not payload.platform:
            raise ValidationError("Platform is required.")
        if payload.platform not in PLATFORMS:
            raise ValidationError(f"Invalid platform. Allowed: {', '.join(PLATFORMS)}")

        data = payload.model_dump(exclude={"platform"})
        token_fields = self._token_fields(data)
        fields = {**data, **token_fields}
        connected = bool(payload.access_token)
        fields["status"] = "connected" if connected else "pending"
        fields["connected_at"] = utcnow() if connected else None
        fields["error_message"] = None

        connection = await self.repo.upsert(user_id, payload.platform, fields)
        logger.info("connection_saved", connection_id=connection.id, platform=connection.platform, status=connection.status)
        return connection

    async def update_connection(self, connection_id: str, user_id: str, payload: ConnectionUpdate) -> Connection:
        connection = await self.get_owned_connection(connection_id, user_id)
        data = payload.model_dump(exclude_unset=True)
        if "status" in data and data["status"] is None:
            raise ValidationError("status must not be null.")
        token_fields = self._token_fields(data)
        changes = {**data, **token_fields}
        updated = await self.repo.write_merged(connection, changes)
        logger.info("connection_updated", connection_id=connection_id, fields=sorted(changes))
        return updated

    async def delete_connection(self, connection_id: str, user_id: str) -> Connection:
        connection = await self.get_owned_connection(connection_id, user_id)
        await self.repo.delete(connection)
        logger.info("connection_deleted", connection_id=connection_id, platform=connection.platform)
        return connection

    async def reconnect(self, connection_id: str, user_id: str, payload: Optional[ReconnectRequest]) -> Connection:
        connection = await self.get_owned_connection(connection_id, user_id)
        payload = payload or ReconnectRequest()
        data = payload.model_dump()
        now = utcnow()
        changes = {
            **self._token_fields(data),
            "token_expires_at": data["token_expires_at"],
            "status": "connected",
            "connected_at": now,
            "last_sync": now,
            "error_message": None,
        }
        updated = await self.repo.write_merged(connection, changes)
        logger.info("connection_reconnected", connection_id=connection_id, platform=updated.platform)
        return updated
