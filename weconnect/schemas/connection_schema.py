# weconnect/schemas/connection_schema.py
from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Literal, Optional
from datetime import datetime

from ..models.connection import Connection

ConnectionStatus = Literal["connected", "disconnected", "error", "pending"]

_input_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# the original clients send `expiresAt`; `tokenExpiresAt` is the stored name
_expires_alias = AliasChoices("tokenExpiresAt", "expiresAt", "token_expires_at")


class ConnectionCreate(BaseModel):
    model_config = _input_config

    platform: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    account_name: Optional[str] = Field(default=None, max_length=255)
    account_id: Optional[str] = Field(default=None, max_length=255)
    platform_user_id: Optional[str] = Field(default=None, max_length=255)
    platform_username: Optional[str] = Field(default=None, max_length=255)
    token_expires_at: Optional[datetime] = Field(default=None, validation_alias=_expires_alias)


class ConnectionUpdate(BaseModel):
    """Partial update; the platform of a connection cannot change."""

    model_config = _input_config

    status: Optional[ConnectionStatus] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    account_name: Optional[str] = Field(default=None, max_length=255)
    account_id: Optional[str] = Field(default=None, max_length=255)
    platform_user_id: Optional[str] = Field(default=None, max_length=255)
    platform_username: Optional[str] = Field(default=None, max_length=255)
    token_expires_at: Optional[datetime] = Field(default=None, validation_alias=_expires_alias)
    error_message: Optional[str] = None


class ReconnectRequest(BaseModel):
    model_config = _input_config

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = Field(default=None, validation_alias=_expires_alias)


class ConnectionRead(BaseModel):
    """Connection as exposed by the API; raw tokens are replaced by presence flags."""

    model_config = ConfigDict(from_attributes=True, alias_generator=AliasGenerator(serialization_alias=to_camel))

    id: str
    user_id: str
    platform: str
    status: ConnectionStatus
    account_name: Optional[str] = None
    account_id: Optional[str] = None
    platform_user_id: Optional[str] = None
    platform_username: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    connected_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    error_message: Optional[str] = None
    has_access_token: bool = False
    has_refresh_token: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, cp: Connection) -> "ConnectionRead":
        data = cp.model_dump(exclude={"access_token_enc", "refresh_token_enc"})
        data["has_access_token"] = bool(cp.access_token_enc)
        data["has_refresh_token"] = bool(cp.refresh_token_enc)
        return cls.model_validate(data)

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
