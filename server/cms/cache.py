import json
import logging
from typing import Any, Optional

import redis

from .config import settings

logger = logging.getLogger(__name__)


_redis: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """Shared connection, or None when caching is switched off."""
    global _redis
    if not settings.redis_url:
        return None
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


def cache_get(key: str) -> Optional[str]:
    r = get_redis()
    if r is None:
        return None
    try:
        return r.get(key)
    except Exception as e:  # noqa: BLE001
        logger.debug("cache_get error: %s", e)
        return None


def cache_set(key: str, value: str, ttl: Optional[int] = None) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        r.set(key, value, ex=ttl or settings.redis_cache_ttl_seconds)
    except Exception as e:  # noqa: BLE001
        logger.debug("cache_set error: %s", e)


def cache_json_get(key: str) -> Optional[Any]:
    s = cache_get(key)
    if not s:
        return None
    try:
        return json.loads(s)
    except Exception:  # noqa: BLE001
        return None


def cache_json_set(key: str, obj: Any, ttl: Optional[int] = None) -> None:
    cache_set(key, json.dumps(obj), ttl)


def cache_delete_prefix(prefix: str) -> None:
    r = get_redis()
    if r is None:
        return
    try:
        keys = list(r.scan_iter(match=f"{prefix}*"))
        if keys:
            r.delete(*keys)
    except Exception as e:  # noqa: BLE001
        logger.debug("cache_delete_prefix error: %s", e)


def invalidate_public_reads() -> None:
    """Drop every cached public view after a post or category changes."""
    for prefix in ("blog:", "feed:"):
        cache_delete_prefix(prefix)
