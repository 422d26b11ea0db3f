import datetime
import os
from urllib.parse import unquote, urlparse
from typing import Optional

import structlog
from google.cloud import storage
from google.oauth2 import service_account

from ..config import Settings
from ..exceptions import StorageUnavailableError
from ..utils.url_utils import encode_key, strip_trailing_slash

logger = structlog.get_logger(__name__)


class ObjectStorage:
    """
    Bucket-backed blob store for uploaded media.

    Every operation is gated by `enabled`; when storage is off, callers keep
    media on local disk instead.
    """

    def __init__(self, settings: Settings, client: Optional[storage.Client] = None):
        self.settings = settings
        self.bucket_name = settings.storage_bucket
        self.endpoint = strip_trailing_slash(settings.storage_endpoint)
        self.public_base = strip_trailing_slash(settings.storage_public_url)
        self.default_ttl_seconds = settings.signed_url_ttl_seconds
        self.enabled = settings.storage_configured
        self.client = client

        if self.enabled and self.client is None:
            self.client = self._build_client()
            if self.client is None:
                self.enabled = False

    def _build_client(self) -> Optional[storage.Client]:
        client_options = {"api_endpoint": self.endpoint} if self.endpoint else None
        project = self.settings.storage_project_id
        # Service account file first (needed for signing), fall back to ADC
        try:
            path = self.settings.storage_credentials_path
            if path and os.path.exists(path):
                logger.info("Loading storage credentials from service account file", path=path)
                credentials = service_account.Credentials.from_service_account_file(path)
                return storage.Client(credentials=credentials, project=project, client_options=client_options)
            logger.info("No service account file configured, using ADC for storage")
            return storage.Client(project=project, client_options=client_options)
        except Exception as e:
            logger.error("Failed to initialize storage client, object storage disabled", error=str(e))
            return None

    def _blob(self, key: str):
        if not self.enabled or self.client is None:
            raise StorageUnavailableError("Object storage not enabled", error_code="STORAGE_DISABLED")
        return self.client.bucket(self.bucket_name).blob(key)

    def exists(self, key: str) -> bool:
        if not self.enabled:
            return False
        try:
            return bool(self._blob(key).exists())
        except Exception as e:
            logger.warning("Failed to check object existence", key=key, error=str(e))
            return False

    def upload_buffer(self, data: bytes, key: str, content_type: Optional[str] = None) -> str:
        blob = self._blob(key)
        try:
            blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
        except Exception as e:
            logger.error("Failed to upload buffer to object storage", key=key, error=str(e))
            raise StorageUnavailableError(f"Upload failed for {key}", error_code="STORAGE_UPLOAD_FAILED", details={"error": str(e)})
        logger.info("Uploaded buffer to object storage", key=key, size=len(data))
        return key

    def public_url(self, key: str) -> str:
        safe_key = encode_key(key)
        if self.public_base:
            # the public base serves the bucket root, no bucket segment
            return f"{self.public_base}/{safe_key}"
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket_name}/{safe_key}"
        return f"https://{self.bucket_name}.storage.googleapis.com/{safe_key}"

    def signed_url(self, key: str, ttl_seconds: Optional[int] = None) -> str:
        blob = self._blob(key)
        try:
            return blob.generate_signed_url(
                version="v4",
                expiration=datetime.timedelta(seconds=ttl_seconds or self.default_ttl_seconds),
                method="GET",
            )
        except Exception as e:
            logger.error("Failed to generate signed URL", key=key, error=str(e))
            raise StorageUnavailableError(f"Could not sign {key}", error_code="STORAGE_SIGN_FAILED", details={"error": str(e)})

    def delete(self, key: str) -> bool:
        blob = self._blob(key)
        try:
            if blob.exists():
                blob.delete()
                logger.info("Deleted object from storage", key=key)
                return True
            logger.warning("Object not found in storage for deletion", key=key)
            return False
        except Exception as e:
            raise StorageUnavailableError(f"Delete failed for {key}", error_code="STORAGE_DELETE_FAILED", details={"error": str(e)})

    def matches_public_base(self, url: str) -> bool:
        return bool(self.public_base) and url.startswith(self.public_base + "/")

    def key_for_public_url(self, url: str) -> Optional[str]:
        """Inverse of public_url for URLs under the public base."""
        if not self.matches_public_base(url):
            return None
        key = unquote(urlparse(url[len(self.public_base):]).path).lstrip("/")
        return key or None
