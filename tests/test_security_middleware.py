# =============================================================================
# tests/test_security_middleware.py - Headers, sanitization, rate limits
# =============================================================================

import pytest

from weconnect.middleware.security import sanitize_text, sanitize_value

from tests.conftest import STRONG_PASSWORD, signup


class TestSanitizeText:

    @pytest.mark.parametrize(
        "raw, clean",
        [
            ("<script>alert('x')</script>Hello", "Hello"),
            ("<b>bold</b> move", "bold move"),
            ("javascript:alert(1)", "alert(1)"),
            ('<img src=x onerror="steal()">', ""),
            ("x onclick = run()", "x  run()"),
            ("  padded  ", "padded"),
            ("Hello #world @friend", "Hello #world @friend"),
        ],
    )
    def test_patterns(self, raw, clean):
        assert sanitize_text(raw) == clean

    def test_nested_values_and_password_key(self):
        body = {
            "title": "<i>t</i>",
            "password": "<Secret>1!",
            "tags": ["<b>a</b>", 3, None],
            "nested": {"note": "javascript:go()"},
        }

        assert sanitize_value(body) == {
            "title": "t",
            "password": "<Secret>1!",
            "tags": ["a", 3, None],
            "nested": {"note": "go()"},
        }


class TestSecurityHeaders:

    async def test_headers_on_every_response(self, client):
        for path in ("/api/health", "/api/does-not-exist"):
            response = await client.get(path)

            assert response.headers["x-content-type-options"] == "nosniff"
            assert response.headers["x-frame-options"] == "SAMEORIGIN"
            assert response.headers["strict-transport-security"] == "max-age=31536000; includeSubDomains; preload"
            assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
            assert "object-src 'none'" in response.headers["content-security-policy"]

    async def test_request_id_is_echoed(self, client):
        generated = await client.get("/api/health")
        assert generated.headers["x-request-id"]

        supplied = await client.get("/api/health", headers={"X-Request-ID": "req-42"})
        assert supplied.headers["x-request-id"] == "req-42"

    async def test_cors_preflight(self, client):
        response = await client.options(
            "/api/posts",
            headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
        assert response.headers["access-control-allow-credentials"] == "true"


class TestBodySanitization:

    async def test_post_content_is_cleaned(self, client, alice):
        response = await client.post(
            "/api/posts",
            json={
                "content": "<script>alert(1)</script>Hello <b>world</b>",
                "title": "javascript:alert(1)",
                "platforms": ["linkedin"],
            },
            headers=alice[0],
        )

        assert response.status_code == 201
        post = response.json()["data"]
        assert post["content"] == "Hello world"
        assert post["title"] == "alert(1)"

    async def test_password_survives_intact(self, client):
        password = "Ab1!<x>yz12"
        await signup(client, email="erin@weconnect.io", password=password)

        response = await client.post("/api/auth/login", json={"email": "erin@weconnect.io", "password": password})

        assert response.status_code == 200


class TestRateLimits:

    async def test_failed_logins_trip_auth_limiter(self, client):
        await signup(client)
        for _ in range(5):
            response = await client.post("/api/auth/login", json={"email": "alice@weconnect.io", "password": "Wr0ng!Pass"})
            assert response.status_code == 401

        response = await client.post("/api/auth/login", json={"email": "alice@weconnect.io", "password": STRONG_PASSWORD})

        assert response.status_code == 429
        assert response.json()["error"] == "Too Many Requests"
        assert response.json()["statusCode"] == 429

    async def test_successful_logins_are_not_counted(self, client):
        await signup(client)
        for _ in range(7):
            response = await client.post("/api/auth/login", json={"email": "alice@weconnect.io", "password": STRONG_PASSWORD})
            assert response.status_code == 200

    async def test_general_limit(self, make_client):
        limited = make_client(RATE_LIMIT_MAX_REQUESTS=3)

        statuses = [(await limited.get("/api/posts")).status_code for _ in range(4)]

        assert statuses == [401, 401, 401, 429]
        # health checks are exempt
        assert (await limited.get("/api/health")).status_code == 200

    async def test_limited_response_uses_error_envelope(self, make_client):
        limited = make_client(RATE_LIMIT_MAX_REQUESTS=1)
        await limited.get("/api/posts")

        response = await limited.get("/api/posts")

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": "Too Many Requests",
            "message": "Too many requests. Please try again later.",
            "statusCode": 429,
        }

    async def test_disabled(self, make_client):
        unlimited = make_client(RATE_LIMIT_ENABLED=False, RATE_LIMIT_MAX_REQUESTS=1)

        statuses = [(await unlimited.get("/api/posts")).status_code for _ in range(3)]

        assert statuses == [401, 401, 401]


class TestErrorEnvelope:

    async def test_unknown_route(self, client):
        response = await client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "error": "Not Found",
            "message": "Route GET /api/nope not found.",
            "statusCode": 404,
        }

    async def test_method_not_allowed(self, client):
        response = await client.patch("/api/health")

        assert response.status_code == 405
        assert response.json()["success"] is False

    async def test_health(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["environment"] == "development"
        assert body["timestamp"]
