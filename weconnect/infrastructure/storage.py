# weconnect/infrastructure/storage.py
import re
import time
from typing import List, Optional

import structlog
from starlette.concurrency import run_in_threadpool
from supabase import Client, create_client

from ..config import Settings

logger = structlog.get_logger(__name__)


class SupabaseStorage:
    """
    Image storage on a Supabase Storage bucket. The SDK is synchronous, so
    calls are pushed to the threadpool.
    """

    def __init__(self, client: Optional[Client], bucket: str = "post-images"):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStorage":
        if not settings.storage_configured:
            logger.warning("storage_not_configured")
            return cls(None, settings.STORAGE_BUCKET)
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        logger.info("storage_initialized", bucket=settings.STORAGE_BUCKET)
        return cls(client, settings.STORAGE_BUCKET)

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    @staticmethod
    def build_path(user_id: str, filename: str) -> str:
        sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "upload")
        return f"{user_id}/{int(time.time() * 1000)}-{sanitized}"

    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "cache-control": "3600", "upsert": "false"},
        )
        return bucket.get_public_url(path)

    async def upload(self, user_id: str, filename: str, data: bytes, content_type: str) -> Optional[str]:
        """Store one file; returns its public URL, or None if the upload failed."""
        if not self.is_configured:
            return None
        path = self.build_path(user_id, filename)
        try:
            url = await run_in_threadpool(self._upload_sync, path, data, content_type)
        except Exception as e:
            logger.error("storage_upload_failed", path=path, error=str(e))
            return None
        logger.info("storage_file_uploaded", path=path)
        return url

    async def upload_many(self, user_id: str, files: List[tuple]) -> List[str]:
        """`files` holds (filename, bytes, content_type) tuples; failed uploads are skipped."""
        urls = []
        for filename, data, content_type in files:
            url = await self.upload(user_id, filename, data, content_type)
            if url:
                urls.append(url)
        return urls
