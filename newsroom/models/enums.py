"""Enums shared by the persisted entities"""

from enum import Enum


class ContentKind(str, Enum):
    """Type tag of a content item; an item is exactly one of these"""
    PLAIN = "plain"
    GALLERY = "gallery"
    EVENT = "event"

    @classmethod
    def from_form(cls, value: str) -> "ContentKind":
        """Map the upload form's free-text `type` field, unknown values are plain"""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.PLAIN


class MediaKind(str, Enum):
    """Where the bytes behind a media reference live"""
    EMPTY = "empty"
    ABSOLUTE_URL = "absolute_url"    # trusted URL outside our control (or a legacy one)
    STORAGE_KEY = "storage_key"      # key in the object store, e.g. uploads/123.jpg
    LOCAL_PATH = "local_path"        # server-relative path served from static_dir


class UserRole(str, Enum):
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    REPORTER = "reporter"
