# =============================================================================
# tests/test_webhook_api.py - n8n status callbacks
# =============================================================================

import json
import time

from tests.test_posts_api import create_post

CALLBACK_URL = "/api/webhook/n8n/callback"


async def send_callback(client, body, timestamp=None, signature=None):
    verifier = client.app.state.webhook_verifier
    ts = str(timestamp if timestamp is not None else int(time.time()))
    headers = {
        "Content-Type": "application/json",
        "X-Webhook-Timestamp": ts,
        "X-Webhook-Signature": signature if signature is not None else verifier.sign(body, ts),
    }
    return await client.post(CALLBACK_URL, content=json.dumps(body), headers=headers)


class TestSignedCallback:

    async def test_callback_updates_post(self, client, alice):
        headers, _ = alice
        post = await create_post(client, headers)

        response = await send_callback(
            client,
            {
                "postId": post["id"],
                "status": "published",
                "postUrl": "https://linkedin.test/p/1",
                "engagement": {"likes": 4, "comments": 2, "impressions": 120},
            },
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"received": True, "postId": post["id"], "status": "published"},
        }
        current = (await client.get(f"/api/posts/{post['id']}", headers=headers)).json()["data"]
        assert current["status"] == "published"
        assert current["postUrl"] == "https://linkedin.test/p/1"
        assert current["publishedAt"] is not None
        assert current["engagement"]["likes"] == 4
        assert current["engagement"]["impressions"] == 120

    async def test_failure_callback_records_error(self, client, alice):
        headers, _ = alice
        post = await create_post(client, headers)

        await send_callback(client, {"postId": post["id"], "status": "failed", "error": "LinkedIn rejected the image"})

        current = (await client.get(f"/api/posts/{post['id']}", headers=headers)).json()["data"]
        assert current["status"] == "failed"
        assert current["errorMessage"] == "LinkedIn rejected the image"

    async def test_body_is_not_sanitized(self, client, alice):
        headers, _ = alice
        post = await create_post(client, headers)

        response = await send_callback(client, {"postId": post["id"], "status": "failed", "error": "<b>bold</b>"})

        assert response.status_code == 200
        current = (await client.get(f"/api/posts/{post['id']}", headers=headers)).json()["data"]
        assert current["errorMessage"] == "<b>bold</b>"


class TestRejectedCallback:

    async def test_bad_signature(self, client, alice):
        post = await create_post(client, alice[0])

        response = await send_callback(client, {"postId": post["id"], "status": "published"}, signature="0" * 64)

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid webhook signature."

    async def test_stale_timestamp(self, client):
        response = await send_callback(client, {"postId": "x", "status": "published"}, timestamp=int(time.time()) - 3600)

        assert response.status_code == 401

    async def test_missing_headers(self, client):
        response = await client.post(CALLBACK_URL, json={"postId": "x"})

        assert response.status_code == 401

    async def test_missing_post_id(self, client):
        response = await send_callback(client, {"status": "published"})
        assert response.status_code == 400

    async def test_unknown_post(self, client):
        response = await send_callback(client, {"postId": "missing", "status": "published"})
        assert response.status_code == 404

    async def test_invalid_status(self, client, alice):
        post = await create_post(client, alice[0])

        response = await send_callback(client, {"postId": post["id"], "status": "exploded"})

        assert response.status_code == 400

    async def test_overlong_post_url(self, client, alice):
        post = await create_post(client, alice[0])

        response = await send_callback(client, {"postId": post["id"], "postUrl": "https://x.test/" + "p" * 500})

        assert response.status_code == 400

    async def test_no_secret_lets_unsigned_requests_through(self, make_client, alice):
        open_client = make_client(WEBHOOK_SECRET="")
        post = await create_post(open_client, alice[0])

        response = await open_client.post(CALLBACK_URL, json={"postId": post["id"], "status": "review"})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "review"
