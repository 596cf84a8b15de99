# weconnect/models/connection.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
from sqlalchemy import Text, UniqueConstraint

from .base import new_id, utcnow

PLATFORMS = ("instagram", "linkedin", "facebook", "instagram-feed", "instagram-reels")
CONNECTION_STATUSES = ("connected", "disconnected", "error", "pending")


class Connection(SQLModel, table=True):
    __tablename__ = "connections"
    __table_args__ = (UniqueConstraint("user_id", "platform", name="uq_connections_user_platform"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=255)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    platform: str = Field(max_length=100)
    status: str = Field(default="pending", max_length=50)
    account_name: Optional[str] = Field(default=None, max_length=255)
    account_id: Optional[str] = Field(default=None, max_length=255)
    platform_user_id: Optional[str] = Field(default=None, max_length=255)
    platform_username: Optional[str] = Field(default=None, max_length=255)
    # Fernet ciphertext, see UAA.utils.encrypt_token
    access_token_enc: Optional[str] = Field(default=None, sa_column=Column(Text))
    refresh_token_enc: Optional[str] = Field(default=None, sa_column=Column(Text))
    token_expires_at: Optional[datetime] = None
    connected_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
