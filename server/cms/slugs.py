from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .models import BlogPost

logger = logging.getLogger(__name__)

# ASCII word characters only; whitespace of any kind becomes a hyphen below
_DISALLOWED = re.compile(r"[^A-Za-z0-9_\s-]")
_WHITESPACE = re.compile(r"\s+")


class SlugUnavailableError(Exception):
    """Raised when no free suffixed variant of a slug was found."""

    def __init__(self, slug: str, attempts: int) -> None:
        super().__init__(f"No free slug for '{slug}' after {attempts} attempts")
        self.slug = slug
        self.attempts = attempts


def generate_slug(title: str, max_length: Optional[int] = None) -> str:
    """Derive a URL-safe slug from a title.

    Lowercases, strips everything but word characters, whitespace and
    hyphens, turns whitespace runs into single hyphens and truncates.
    A title made only of symbols gives an empty slug.

        >>> generate_slug("Hello, World!")
        'hello-world'
    """
    limit = settings.slug_max_length if max_length is None else max_length
    s = _DISALLOWED.sub("", (title or "").lower())
    s = _WHITESPACE.sub("-", s)
    return s[:limit]


def _owner_of(db: Session, slug: str) -> Optional[str]:
    return db.execute(select(BlogPost.id).where(BlogPost.slug == slug)).scalar_one_or_none()


def ensure_unique_slug(
    db: Session,
    slug: str,
    exclude_id: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """Return ``slug`` or the first free ``slug-N`` (N = 1, 2, ...).

    A slug held only by ``exclude_id`` counts as free so a post being edited
    keeps its own slug. Each candidate is looked up separately.
    """
    attempts = settings.slug_max_attempts if max_attempts is None else max_attempts
    owner = _owner_of(db, slug)
    if owner is None or (exclude_id and owner == exclude_id):
        return slug

    for counter in range(1, attempts + 1):
        candidate = f"{slug}-{counter}"
        owner = _owner_of(db, candidate)
        if owner is None or (exclude_id and owner == exclude_id):
            logger.debug("slug %s taken, using %s", slug, candidate)
            return candidate

    logger.warning("slug resolution gave up for %s after %d attempts", slug, attempts)
    raise SlugUnavailableError(slug, attempts)
