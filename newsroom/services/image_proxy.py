"""
Server-side image fetcher used by the /images/proxy endpoint, so browsers can
load bucket or third-party images without running into CORS.
"""

from typing import Optional
from urllib.parse import urlparse

import httpx
import structlog

from ..config import Settings
from ..exceptions import ExternalServiceError, ValidationError
from .object_storage import ObjectStorage

logger = structlog.get_logger(__name__)


class ImageProxy:
    def __init__(self, settings: Settings, storage: ObjectStorage, client: Optional[httpx.AsyncClient] = None):
        self.storage = storage
        self.client = client if client is not None else httpx.AsyncClient(
            timeout=settings.image_proxy_timeout_seconds,
            follow_redirects=True
        )

    def target_for(self, key: Optional[str] = None, url: Optional[str] = None) -> str:
        """A storage key wins over a URL when both are given."""
        key = (key or "").strip()
        url = (url or "").strip()
        if not key and not url:
            raise ValidationError("key or url required", error_code="PROXY_TARGET_MISSING")

        if key:
            if not self.storage.enabled:
                raise ValidationError("Object storage not enabled", error_code="STORAGE_DISABLED")
            return self.storage.public_url(key.lstrip("/"))

        if urlparse(url).scheme not in ("http", "https"):
            raise ValidationError("Only http(s) URLs can be proxied", error_code="INVALID_PROXY_URL", details={"url": url})
        return url

    async def open(self, target: str) -> httpx.Response:
        """Streamed upstream response; the caller must close it."""
        request = self.client.build_request("GET", target)
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.warning("Image proxy fetch failed", target=target, error=str(e) or type(e).__name__)
            raise ExternalServiceError("Failed to fetch image", error_code="IMAGE_FETCH_FAILED")

        if response.status_code >= 400:
            await response.aclose()
            logger.warning("Image proxy upstream error", target=target, status=response.status_code)
            raise ExternalServiceError(
                "Failed to fetch image",
                error_code="IMAGE_FETCH_FAILED",
                details={"status": response.status_code}
            )
        return response

    async def close(self) -> None:
        await self.client.aclose()
