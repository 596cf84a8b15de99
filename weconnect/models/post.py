# weconnect/models/post.py
from sqlmodel import SQLModel, Field, Column
from typing import List, Optional
from datetime import datetime
from sqlalchemy import JSON, Text

from .base import new_id, utcnow

POST_STATUSES = ("draft", "scheduled", "published", "failed", "review")
CONTENT_TYPES = ("text", "article", "carousel", "video", "image")
TONES = ("professional", "casual", "friendly", "formal", "creative", "humorous")


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=255)
    user_id: str = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    title: Optional[str] = Field(default=None, max_length=500)
    content: str = Field(sa_column=Column(Text, nullable=False))
    platforms: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    status: str = Field(default="draft", max_length=50, index=True)
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    media_urls: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    hashtags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    video_url: Optional[str] = Field(default=None, max_length=500)
    topic: Optional[str] = Field(default=None, max_length=500)
    content_type: str = Field(default="text", max_length=50)
    tone: Optional[str] = Field(default=None, max_length=50)
    image_prompt: Optional[str] = Field(default=None, sa_column=Column(Text))
    # characterCount / wordCount / hashtags / mentions, recomputed on content change
    meta: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON))
    engagement_likes: int = Field(default=0)
    engagement_comments: int = Field(default=0)
    engagement_shares: int = Field(default=0)
    engagement_impressions: int = Field(default=0)
    engagement_reach: int = Field(default=0)
    engagement_clicks: int = Field(default=0)
    error_message: Optional[str] = Field(default=None, sa_column=Column(Text))
    post_url: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
