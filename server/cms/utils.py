from __future__ import annotations

import datetime as dt
import math
import secrets
from typing import Iterable, List, Optional

from slugify import slugify

from .config import settings


def estimate_reading_time(content: Optional[str], words_per_minute: Optional[int] = None) -> int:
    """Minutes to read ``content``, counting space-separated words."""
    wpm = words_per_minute or settings.words_per_minute
    return math.ceil(len((content or "").split(" ")) / wpm)


def normalize_tags(tags: Iterable[str]) -> List[str]:
    out: List[str] = []
    for tag in tags:
        t = (tag or "").strip()
        if t and t not in out:
            out.append(t)
    return out


def fallback_slug() -> str:
    return f"post-{secrets.token_hex(3)}"


def category_slug(name: str) -> str:
    return slugify(name, max_length=settings.slug_max_length) or f"category-{secrets.token_hex(3)}"


def as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    # SQLite hands datetimes back without tzinfo; everything is stored in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)
