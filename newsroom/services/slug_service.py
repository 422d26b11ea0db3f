"""
Slug and short-id generation for news items.

The pure helpers decide what a candidate looks like; SlugService owns the
existence checks against the news table.
"""

import random
import re
import string
import time
import unicodedata
from typing import Callable, Optional

import structlog

from ..repositories.news_repository import NewsRepository

logger = structlog.get_logger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase
MAX_SLUG_ATTEMPTS = 10
SLUG_SUFFIX_LENGTH = 4
SHORT_ID_LENGTH = 10
SHORT_ID_RANDOM_LENGTH = 6

_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_ASCII_DISALLOWED = re.compile(r"[^\w\s-]", re.ASCII)
_FOLDED_SCRIPTS = ("LATIN", "GREEK", "CYRILLIC")


def now_ms() -> int:
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int, rng: random.Random = random) -> str:
    return "".join(rng.choice(BASE36_ALPHABET) for _ in range(length))


def _collapse(text: str) -> str:
    text = _WHITESPACE.sub("-", text)
    text = _HYPHENS.sub("-", text)
    return text.strip("-")


def _strip_accents(text: str) -> str:
    # Marks on Latin, Greek and Cyrillic letters are dropped (é -> e). Marks
    # that belong to other scripts, like Devanagari vowel signs, stay.
    out = []
    base_folds = False
    for char in unicodedata.normalize("NFKD", unicodedata.normalize("NFC", text)):
        if unicodedata.combining(char):
            if base_folds:
                continue
        else:
            base_folds = unicodedata.name(char, "").startswith(_FOLDED_SCRIPTS)
        out.append(char)
    return "".join(out)


def _is_slug_char(char: str, previous: str) -> bool:
    category = unicodedata.category(char)
    if category[0] in ("L", "N") or char == "-" or char.isspace():
        return True
    # keep a mark only when it sits on a letter or another kept mark
    return category[0] == "M" and bool(previous) and unicodedata.category(previous)[0] in ("L", "M")


def slugify(title: str) -> str:
    """Unicode-aware slug; may return an empty string."""
    text = _strip_accents(str(title or "").lower())
    kept = []
    for char in text:
        if _is_slug_char(char, kept[-1] if kept else ""):
            kept.append(char)
    return _collapse("".join(kept))


def ascii_slugify(title: str) -> str:
    """ASCII word-character slug, compatible with slugify for ASCII titles."""
    text = _ASCII_DISALLOWED.sub("", str(title or "").lower())
    return _collapse(text)


def fallback_slug_base(rng: random.Random = random) -> str:
    return f"item-{now_ms()}-{rng.randint(0, 1_000_000)}"


def generate_slug(title: str, rng: random.Random = random) -> str:
    return slugify(title) or fallback_slug_base(rng)


def slug_candidate(base: str, attempt: int, rng: random.Random = random) -> str:
    """Attempt 0 is the base itself; later attempts carry a random suffix."""
    if attempt <= 0:
        return base
    suffix = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(SLUG_SUFFIX_LENGTH))
    return f"{base}-{suffix}"


def forced_slug(base: str) -> str:
    return f"{base}-{to_base36(now_ms())}"


def generate_short_id(rng: random.Random = random) -> str:
    return (to_base36(now_ms()) + random_base36(SHORT_ID_RANDOM_LENGTH, rng))[:SHORT_ID_LENGTH]


def find_unique(
    candidate_for: Callable[[int], str],
    is_taken: Callable[[str], bool],
    max_attempts: int,
    forced: Callable[[], str]
) -> str:
    """Try candidates in order until one is free, then fall back to `forced`."""
    for attempt in range(max_attempts):
        candidate = candidate_for(attempt)
        if not is_taken(candidate):
            return candidate
    return forced()


class SlugService:
    def __init__(self, news_repo: NewsRepository, rng: Optional[random.Random] = None):
        self.news_repo = news_repo
        self.rng = rng or random.Random()

    def ensure_unique_slug(self, base: str, self_id: Optional[str] = None) -> str:
        slug = find_unique(
            candidate_for=lambda attempt: slug_candidate(base, attempt, self.rng),
            is_taken=lambda candidate: self.news_repo.field_taken("slug", candidate, exclude_id=self_id),
            max_attempts=MAX_SLUG_ATTEMPTS,
            forced=lambda: forced_slug(base),
        )
        if slug != base:
            logger.info("Slug collision resolved", base=base, slug=slug)
        return slug

    def slug_for_title(self, title: str, self_id: Optional[str] = None) -> str:
        return self.ensure_unique_slug(generate_slug(title, self.rng), self_id=self_id)

    def new_short_id(self) -> str:
        return generate_short_id(self.rng)
