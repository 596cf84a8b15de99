# weconnect/infrastructure/n8n_client.py
from typing import Any, Dict, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


class PublishWebhookError(Exception):
    pass


class N8nClient:
    """Forwards publish requests to the n8n automation webhook."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def publish_url(self) -> str:
        return f"{self.base_url}/publish"

    async def publish(self, payload: Dict[str, Any]) -> Optional[Any]:
        logger.info("n8n_publish_request", url=self.publish_url, post_id=payload.get("post", {}).get("id"))
        try:
            response = await self._client.post(self.publish_url, json=payload)
        except httpx.HTTPError as exc:
            raise PublishWebhookError(f"n8n webhook unreachable: {exc.__class__.__name__}") from exc

        if response.status_code >= 300:
            raise PublishWebhookError(f"n8n webhook error ({response.status_code})")

        try:
            return response.json()
        except ValueError:
            return None

    async def aclose(self) -> None:
        await self._client.aclose()
