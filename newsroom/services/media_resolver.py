"""
Media reference resolution.

Turns a stored MediaReference into the URL a client should use, and turns an
incoming upload into exactly one stored representation (object-store key when
storage is active, local path otherwise).
"""

import asyncio
import os
import random
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional
from urllib.parse import urlparse

import structlog

from ..config import Settings
from ..exceptions import StorageUnavailableError
from ..models.enums import MediaKind
from ..models.media import MediaReference, is_absolute_url
from .object_storage import ObjectStorage
from .slug_service import now_ms

logger = structlog.get_logger(__name__)

UPLOAD_PREFIX = "uploads"
UPLOAD_URL_SEGMENT = f"/{UPLOAD_PREFIX}/"


class ServeAction(str, Enum):
    REDIRECT = "redirect"
    FILE = "file"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ServeDecision:
    action: ServeAction
    target: str = ""  # URL for redirects, filesystem path for files

    @classmethod
    def redirect(cls, url: str) -> "ServeDecision":
        return cls(ServeAction.REDIRECT, url)

    @classmethod
    def file(cls, path: Path) -> "ServeDecision":
        return cls(ServeAction.FILE, str(path))

    @classmethod
    def not_found(cls) -> "ServeDecision":
        return cls(ServeAction.NOT_FOUND)


@dataclass
class IncomingMedia:
    filename: str
    data: bytes
    content_type: Optional[str] = None


class MediaResolver:
    def __init__(self, settings: Settings, storage: ObjectStorage):
        self.storage = storage
        self.static_dir = Path(settings.static_dir)
        self.upload_dir = Path(settings.upload_dir)
        self.placeholder = (settings.default_placeholder_image or "").strip()
        self.timeout = settings.storage_timeout_seconds
        self.signed_ttl = settings.signed_url_ttl_seconds

    @property
    def storage_active(self) -> bool:
        return bool(self.storage and self.storage.enabled)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def in_upload_namespace(self, url: str) -> bool:
        return UPLOAD_URL_SEGMENT in urlparse(url).path or self.storage.matches_public_base(url)

    def storage_key_for(self, ref: MediaReference) -> Optional[str]:
        """Object-store key a reference maps to, if any."""
        if ref.kind == MediaKind.STORAGE_KEY:
            return ref.value
        if ref.kind == MediaKind.ABSOLUTE_URL and not (self.storage_active and self.in_upload_namespace(ref.value)):
            return None
        if ref.kind in (MediaKind.ABSOLUTE_URL, MediaKind.LOCAL_PATH) and ref.filename:
            return f"{UPLOAD_PREFIX}/{ref.filename}"
        return None

    def owned_storage_key_for(self, ref: MediaReference) -> Optional[str]:
        """Key of a blob this service wrote itself; the only keys delete_media removes."""
        if ref.kind == MediaKind.STORAGE_KEY:
            return ref.value
        if ref.kind == MediaKind.ABSOLUTE_URL:
            return self.storage.key_for_public_url(ref.value)
        if ref.kind == MediaKind.LOCAL_PATH and ref.value.startswith(UPLOAD_URL_SEGMENT) and ref.filename:
            return f"{UPLOAD_PREFIX}/{ref.filename}"
        return None

    def local_file_for(self, ref: MediaReference) -> Optional[Path]:
        """Where the bytes would sit on local disk."""
        if ref.kind == MediaKind.LOCAL_PATH:
            if ref.value.startswith(UPLOAD_URL_SEGMENT):
                return self.upload_dir / ref.value[len(UPLOAD_URL_SEGMENT):]
            return self.static_dir / ref.value.lstrip("/")
        if ref.kind == MediaKind.STORAGE_KEY and ref.filename:
            return self.upload_dir / ref.filename
        return None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def resolve_for_listing(self, ref: MediaReference) -> str:
        """Unsigned URL for list and detail payloads. Performs no I/O."""
        if ref.is_empty:
            return ""
        if ref.kind == MediaKind.ABSOLUTE_URL:
            key = self.storage_key_for(ref)
            return self.storage.public_url(key) if key else ref.value
        if ref.kind == MediaKind.STORAGE_KEY:
            if not self.storage_active:
                return "/" + ref.value.lstrip("/")
            return self.storage.public_url(ref.value)
        # local path: rewritten to the store once storage has taken over uploads
        if self.storage_active and UPLOAD_URL_SEGMENT in ref.value and ref.filename:
            return self.storage.public_url(f"{UPLOAD_PREFIX}/{ref.filename}")
        return ref.value

    async def resolve_for_serving(self, ref: MediaReference, signed: bool = True) -> ServeDecision:
        """
        Decide how a raw media request is answered: redirect to the store or an
        external URL, stream a local file, or report not found. Keys are only
        handed out after the object is confirmed to exist.
        """
        if ref.is_empty:
            return ServeDecision.not_found()

        key = self.storage_key_for(ref) if self.storage_active else None
        if key and await self._object_exists(key):
            return ServeDecision.redirect(await self._servable_store_url(key, signed))

        if ref.kind == MediaKind.ABSOLUTE_URL:
            return ServeDecision.redirect(ref.value)

        local = self.local_file_for(ref)
        if local is not None and local.is_file():
            return ServeDecision.file(local)

        logger.warning("Media missing from every backend, using fallback", kind=ref.kind.value, ref=ref.value)
        return self.fallback_decision()

    def fallback_decision(self) -> ServeDecision:
        if not self.placeholder:
            return ServeDecision.not_found()
        if is_absolute_url(self.placeholder):
            return ServeDecision.redirect(self.placeholder)
        path = self.static_dir / self.placeholder.lstrip("/")
        if path.is_file():
            return ServeDecision.file(path)
        return ServeDecision.not_found()

    async def redirect_for_upload(self, filename: str) -> Optional[str]:
        """Store URL for a legacy /uploads/<filename> request, None when storage is off."""
        if not self.storage_active or not filename:
            return None
        key = f"{UPLOAD_PREFIX}/{filename.lstrip('/')}"
        if self.storage.public_base:
            return self.storage.public_url(key)
        return await self._servable_store_url(key, signed=True)

    async def _object_exists(self, key: str) -> bool:
        try:
            return await self._call(self.storage.exists, key)
        except asyncio.TimeoutError:
            logger.warning("Existence check timed out", key=key)
            return False

    async def _servable_store_url(self, key: str, signed: bool) -> str:
        if not signed:
            return self.storage.public_url(key)
        try:
            return await self._call(self.storage.signed_url, key, self.signed_ttl)
        except (StorageUnavailableError, asyncio.TimeoutError) as e:
            logger.warning("Signing failed, falling back to public URL", key=key, error=str(e))
            return self.storage.public_url(key)

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def unique_filename(self, original: str) -> str:
        ext = os.path.splitext(os.path.basename(original or ""))[1].lower()
        return f"{now_ms()}-{random.randint(0, 1_000_000_000)}{ext}"

    async def store_upload(self, media: IncomingMedia) -> MediaReference:
        """
        Persist one uploaded blob. The bytes always land on local disk first so
        a failed store upload still leaves a usable local reference.
        """
        filename = self.unique_filename(media.filename)
        local = self.upload_dir / filename
        await asyncio.to_thread(self._write_local, local, media.data)
        local_ref = MediaReference.local_path(f"{UPLOAD_URL_SEGMENT}{filename}")

        if not self.storage_active:
            return local_ref

        key = f"{UPLOAD_PREFIX}/{filename}"
        try:
            await self._call(self.storage.upload_buffer, media.data, key, media.content_type)
        except (StorageUnavailableError, asyncio.TimeoutError) as e:
            logger.warning("Upload to object storage failed, keeping local file", key=key, error=str(e) or type(e).__name__)
            return local_ref

        self._unlink_quietly(local)
        return MediaReference.storage_key(key)

    async def store_gallery(self, uploads: List[IncomingMedia]) -> List[MediaReference]:
        """Store gallery files concurrently; output order follows input order."""
        results = await asyncio.gather(*(self._store_gallery_element(index, media) for index, media in enumerate(uploads)))
        return [ref for ref in results if not ref.is_empty]

    async def _store_gallery_element(self, index: int, media: IncomingMedia) -> MediaReference:
        try:
            return await self.store_upload(media)
        except OSError as e:
            logger.warning("Failed to process gallery file", index=index, filename=media.filename, error=str(e))
            return MediaReference.empty()

    async def delete_media(self, ref: MediaReference) -> bool:
        """Best-effort removal of the blob behind a reference. Never raises."""
        removed = False
        key = self.owned_storage_key_for(ref) if self.storage_active else None
        if key:
            try:
                removed = bool(await self._call(self.storage.delete, key))
            except (StorageUnavailableError, asyncio.TimeoutError) as e:
                logger.warning("Failed to remove media from storage", key=key, error=str(e) or type(e).__name__)

        local = self.local_file_for(ref)
        if local is not None and local.is_file():
            try:
                await asyncio.to_thread(local.unlink)
                removed = True
            except OSError as e:
                logger.warning("Failed to unlink media file", path=str(local), error=str(e))
        return removed

    async def delete_all(self, refs: List[MediaReference]) -> int:
        results = await asyncio.gather(*(self.delete_media(ref) for ref in refs))
        return sum(1 for removed in results if removed)

    async def _call(self, fn: Callable[..., Any], *args) -> Any:
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)

    @staticmethod
    def _write_local(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as stored_file:
            stored_file.write(data)

    @staticmethod
    def _unlink_quietly(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove local copy after upload", path=str(path), error=str(e))
