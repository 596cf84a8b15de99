# weconnect/schemas/analytics_schema.py
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_output_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))


class DashboardMetrics(BaseModel):
    model_config = _output_config

    scheduled_posts: int
    pending_approvals: int
    published_posts: int
    connected_accounts: int
    total_reach: str
    engagement_rate: str


class PostAnalytics(BaseModel):
    model_config = _output_config

    views: int = 0
    likes: int = 0
    shares: int = 0
    comments: int = 0
    click_through_rate: float = 0.0
    impressions: int = 0
