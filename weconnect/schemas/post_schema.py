# weconnect/schemas/post_schema.py
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Literal, Optional
from datetime import datetime

from ..models.post import Post

PostStatus = Literal["draft", "scheduled", "published", "failed", "review"]
ContentType = Literal["text", "article", "carousel", "video", "image"]
Tone = Literal["professional", "casual", "friendly", "formal", "creative", "humorous"]

_input_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
_output_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))


class PostCreate(BaseModel):
    model_config = _input_config

    topic: Optional[str] = Field(default=None, max_length=500)
    title: Optional[str] = Field(default=None, max_length=500)
    content: Optional[str] = None
    platforms: List[str] = Field(default_factory=list)
    content_type: Optional[ContentType] = None
    tone: Optional[Tone] = None
    image_prompt: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    media_urls: List[str] = Field(default_factory=list)
    hashtags: List[str] = Field(default_factory=list)
    video_url: Optional[str] = Field(default=None, max_length=500)


class PostUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    model_config = _input_config

    title: Optional[str] = Field(default=None, max_length=500)
    content: Optional[str] = None
    platforms: Optional[List[str]] = None
    status: Optional[PostStatus] = None
    scheduled_at: Optional[datetime] = None
    media_urls: Optional[List[str]] = None
    hashtags: Optional[List[str]] = None
    video_url: Optional[str] = Field(default=None, max_length=500)
    topic: Optional[str] = Field(default=None, max_length=500)
    content_type: Optional[ContentType] = None
    tone: Optional[Tone] = None
    image_prompt: Optional[str] = None


class PostMetadata(BaseModel):
    model_config = _output_config

    character_count: int
    word_count: int
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)


class Engagement(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0
    impressions: int = 0
    reach: int = 0
    clicks: int = 0


class EngagementUpdate(BaseModel):
    likes: Optional[int] = Field(default=None, ge=0)
    comments: Optional[int] = Field(default=None, ge=0)
    shares: Optional[int] = Field(default=None, ge=0)
    impressions: Optional[int] = Field(default=None, ge=0)
    reach: Optional[int] = Field(default=None, ge=0)
    clicks: Optional[int] = Field(default=None, ge=0)


class PostRead(BaseModel):
    model_config = _output_config

    id: str
    user_id: str
    title: Optional[str] = None
    content: str
    platforms: List[str]
    status: PostStatus
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    media_urls: List[str]
    hashtags: List[str]
    video_url: Optional[str] = None
    topic: Optional[str] = None
    content_type: Optional[ContentType] = None
    tone: Optional[Tone] = None
    image_prompt: Optional[str] = None
    metadata: Optional[PostMetadata] = None
    engagement: Optional[Engagement] = None
    error_message: Optional[str] = None
    post_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, post: Post) -> "PostRead":
        engagement = None
        if post.engagement_likes > 0 or post.engagement_comments > 0 or post.engagement_shares > 0:
            engagement = Engagement(
                likes=post.engagement_likes,
                comments=post.engagement_comments,
                shares=post.engagement_shares,
                impressions=post.engagement_impressions,
                reach=post.engagement_reach,
                clicks=post.engagement_clicks,
            )
        data = post.model_dump(exclude={"meta"})
        data["metadata"] = post.meta
        data["engagement"] = engagement
        return cls.model_validate(data)

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Pagination(BaseModel):
    model_config = _output_config

    page: int
    limit: int
    total: int
    total_pages: int


class N8nCallback(BaseModel):
    model_config = _input_config

    post_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    post_url: Optional[str] = Field(default=None, max_length=500)
    engagement: Optional[EngagementUpdate] = None
