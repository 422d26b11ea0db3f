import posixpath
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .enums import MediaKind


@dataclass(frozen=True)
class MediaReference:
    """
    A stored media field. One reference has exactly one representation, so an
    item can never carry both a URL and a local path for the same field.
    """
    kind: MediaKind = MediaKind.EMPTY
    value: str = ""

    def __post_init__(self):
        value = (self.value or "").strip()
        kind = MediaKind(self.kind)
        if not value:
            kind = MediaKind.EMPTY
        if kind == MediaKind.EMPTY:
            value = ""
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", value)

    @classmethod
    def empty(cls) -> "MediaReference":
        return cls()

    @classmethod
    def absolute_url(cls, url: str) -> "MediaReference":
        return cls(MediaKind.ABSOLUTE_URL, url)

    @classmethod
    def storage_key(cls, key: str) -> "MediaReference":
        return cls(MediaKind.STORAGE_KEY, key.lstrip("/"))

    @classmethod
    def local_path(cls, path: str) -> "MediaReference":
        path = path.strip()
        return cls(MediaKind.LOCAL_PATH, path if path.startswith("/") else "/" + path)

    @classmethod
    def parse(cls, raw: Optional[str]) -> "MediaReference":
        """Classify an untyped string as found in older records and imports."""
        raw = (raw or "").strip()
        if not raw:
            return cls.empty()
        if is_absolute_url(raw):
            return cls.absolute_url(raw)
        if raw.startswith("/"):
            return cls.local_path(raw)
        return cls.storage_key(raw)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MediaReference":
        if not data:
            return cls.empty()
        if isinstance(data, str):
            return cls.parse(data)
        return cls(MediaKind(data.get("kind", MediaKind.EMPTY)), data.get("value") or "")

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "value": self.value}

    @property
    def is_empty(self) -> bool:
        return self.kind == MediaKind.EMPTY

    @property
    def filename(self) -> str:
        path = self.value.split("?", 1)[0].split("#", 1)[0]
        return posixpath.basename(path.rstrip("/"))

    def as_fields(self) -> Tuple[Optional[str], Optional[str]]:
        """(url, path) view of the reference; at most one side is set."""
        if self.kind in (MediaKind.ABSOLUTE_URL, MediaKind.STORAGE_KEY):
            return self.value, None
        if self.kind == MediaKind.LOCAL_PATH:
            return None, self.value
        return None, None


def is_absolute_url(value: str) -> bool:
    return (value or "").lower().startswith(("http://", "https://"))
