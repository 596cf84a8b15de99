# =============================================================================
# tests/test_analytics_api.py - Dashboard and per-post analytics
# =============================================================================

import random

import pytest
from sqlmodel.ext.asyncio.session import AsyncSession

from weconnect.services.analytics_service import AnalyticsService

from tests.test_posts_api import create_post
from tests.test_publish import connect
from tests.test_webhook_api import send_callback


async def set_status(client, headers, post_id, status):
    response = await client.put(f"/api/posts/{post_id}", json={"status": status}, headers=headers)
    assert response.status_code == 200


class TestDashboard:

    async def test_empty_dashboard(self, client, alice):
        response = await client.get("/api/analytics/dashboard", headers=alice[0])

        assert response.status_code == 200
        assert response.json()["data"] == {
            "scheduledPosts": 0,
            "pendingApprovals": 0,
            "publishedPosts": 0,
            "connectedAccounts": 0,
            "totalReach": "0",
            "engagementRate": "0%",
        }

    @pytest.mark.parametrize("method", ["get", "post"])
    async def test_counts_and_reach(self, client, alice, bob, method):
        headers, _ = alice
        for status in ("published", "published", "review"):
            post = await create_post(client, headers)
            await set_status(client, headers, post["id"], status)
        await create_post(client, headers, scheduledAt="2030-05-01T10:00:00Z")
        await connect(client, headers, platform="linkedin")
        await connect(client, headers, platform="facebook")
        # other users' data is not counted
        await connect(client, bob[0], platform="instagram")

        response = await getattr(client, method)("/api/analytics/dashboard", headers=headers)

        assert response.json()["data"] == {
            "scheduledPosts": 1,
            "pendingApprovals": 1,
            "publishedPosts": 2,
            "connectedAccounts": 2,
            "totalReach": "1.3k",
            "engagementRate": "3.2%",
        }


class TestPostAnalytics:

    async def test_unpublished_post_has_zeros(self, client, alice):
        post = await create_post(client, alice[0])

        response = await client.get(f"/api/analytics/posts/{post['id']}", headers=alice[0])

        assert response.status_code == 200
        assert response.json()["data"] == {
            "views": 0,
            "likes": 0,
            "shares": 0,
            "comments": 0,
            "clickThroughRate": 0.0,
            "impressions": 0,
        }

    async def test_published_post_uses_reported_engagement(self, client, alice):
        post = await create_post(client, alice[0])
        await send_callback(
            client,
            {
                "postId": post["id"],
                "status": "published",
                "engagement": {"likes": 7, "comments": 3, "shares": 1, "impressions": 200, "clicks": 5},
            },
        )

        data = (await client.get(f"/api/analytics/posts/{post['id']}", headers=alice[0])).json()["data"]

        assert data == {
            "views": 200,
            "likes": 7,
            "shares": 1,
            "comments": 3,
            "clickThroughRate": 2.5,
            "impressions": 200,
        }

    async def test_published_post_without_engagement_is_sampled(self, client, alice):
        post = await create_post(client, alice[0])
        await set_status(client, alice[0], post["id"], "published")

        data = (await client.get(f"/api/analytics/posts/{post['id']}", headers=alice[0])).json()["data"]

        assert 100 <= data["views"] <= 1099
        assert 10 <= data["likes"] <= 109
        assert 1 <= data["shares"] <= 20
        assert 0 <= data["comments"] <= 14
        assert 0 <= data["clickThroughRate"] <= 5
        assert 200 <= data["impressions"] <= 2199

    async def test_ownership(self, client, alice, bob):
        post = await create_post(client, alice[0])

        assert (await client.get(f"/api/analytics/posts/{post['id']}", headers=bob[0])).status_code == 403
        assert (await client.get("/api/analytics/posts/missing", headers=bob[0])).status_code == 404


class TestAnalyticsService:

    async def test_seeded_sampling_is_reproducible(self, client, alice, engine):
        post = await create_post(client, alice[0])
        await set_status(client, alice[0], post["id"], "published")
        user_id = alice[1]["id"]

        async with AsyncSession(engine, expire_on_commit=False) as session:
            first = await AnalyticsService(session, rng=random.Random(7)).post_analytics(post["id"], user_id)
            second = await AnalyticsService(session, rng=random.Random(7)).post_analytics(post["id"], user_id)

        assert first == second
