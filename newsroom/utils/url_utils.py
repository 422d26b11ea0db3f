from typing import Optional
from urllib.parse import quote

from ..models.media import is_absolute_url


def strip_trailing_slash(value: Optional[str]) -> str:
    return (value or "").rstrip("/")


def encode_key(key: str) -> str:
    """Percent-encode each path segment of a storage key, keeping the slashes."""
    return "/".join(quote(segment, safe="") for segment in str(key or "").split("/"))


def make_absolute_url(origin: Optional[str], path: str) -> str:
    if not path:
        return ""
    if is_absolute_url(path) or not origin:
        return path
    return strip_trailing_slash(origin) + (path if path.startswith("/") else "/" + path)
