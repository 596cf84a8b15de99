# weconnect/middleware/webhook_signature.py
import hashlib
import hmac
import json
import time
from typing import Any, Callable, Optional

import structlog
from fastapi import Request

from ..errors import AuthError, ValidationError

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"


def canonical_json(body: Any) -> str:
    # same bytes as JSON.stringify on the sender's side
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


class WebhookSignatureVerifier:
    """
    HMAC-SHA256 check for inbound n8n callbacks. The signature covers the
    compact JSON body followed by the timestamp header. Timestamps further
    than `tolerance_seconds` from now are refused.
    """

    def __init__(self, secret: str, tolerance_seconds: int = 300, clock: Callable[[], float] = time.time):
        self.secret = secret
        self.tolerance_seconds = tolerance_seconds
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self.secret)

    def sign(self, body: Any, timestamp: str) -> str:
        message = canonical_json(body) + str(timestamp)
        return hmac.new(self.secret.encode(), message.encode(), hashlib.sha256).hexdigest()

    def verify(self, signature: Optional[str], timestamp: Optional[str], body: Any) -> None:
        if not self.enabled:
            logger.warning("webhook_secret_not_configured")
            return

        if not signature or not timestamp:
            raise AuthError("Webhook signature missing.")

        try:
            sent_at = int(timestamp)
        except ValueError:
            raise AuthError("Invalid webhook timestamp.")

        if abs(int(self.clock()) - sent_at) > self.tolerance_seconds:
            logger.info("webhook_request_expired", timestamp=sent_at)
            raise AuthError("Webhook request expired.")

        expected = self.sign(body, timestamp)
        if not hmac.compare_digest(signature.encode(), expected.encode()):
            logger.warning("webhook_signature_mismatch")
            raise AuthError("Invalid webhook signature.")


async def verified_webhook_body(request: Request) -> Any:
    """FastAPI dependency: parse the JSON body and check its signature."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        raise ValidationError("Request body must be valid JSON.")

    verifier: WebhookSignatureVerifier = request.app.state.webhook_verifier
    verifier.verify(
        request.headers.get(SIGNATURE_HEADER),
        request.headers.get(TIMESTAMP_HEADER),
        body,
    )
    return body
