from __future__ import annotations

import datetime as dt
import logging
from email.utils import format_datetime
from typing import List
from xml.sax.saxutils import escape as _xml_escape

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..cache import cache_json_get, cache_json_set
from ..config import settings
from ..deps import get_repository
from ..models import BlogPost
from ..repository import PostRepository
from ..schemas import CategoryOut, PostOut
from ..utils import as_utc

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api", tags=["posts"])


def _dump_posts(rows: List[BlogPost]) -> list[dict]:
    return [PostOut.model_validate(r).model_dump(mode="json") for r in rows]


def _absolute_post_url(slug: str) -> str:
    base = settings.site_base_url.rstrip("/")
    return f"{base}/blog/{slug}"


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/posts", response_model=List[PostOut])
def list_published_posts(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    repo: PostRepository = Depends(get_repository),
):
    cache_key = f"blog:published:{limit}:{offset}"
    cached = cache_json_get(cache_key)
    if cached is not None:
        return cached
    out = _dump_posts(repo.list_published(limit=limit, offset=offset))
    cache_json_set(cache_key, out)
    return out


@router.get("/posts/search", response_model=List[PostOut])
def search_posts(
    q: str = Query(min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    repo: PostRepository = Depends(get_repository),
):
    return _dump_posts(repo.search(q, limit=limit))


@router.get("/posts/slug/{slug}", response_model=PostOut)
def get_post_by_slug(slug: str, repo: PostRepository = Depends(get_repository)):
    cache_key = f"blog:slug:{slug}"
    cached = cache_json_get(cache_key)
    if cached:
        return cached
    row = repo.get_by_slug(slug)
    if not row:
        raise HTTPException(status_code=404, detail="Not found")
    obj = PostOut.model_validate(row).model_dump(mode="json")
    cache_json_set(cache_key, obj)
    return obj


@router.get("/categories", response_model=List[CategoryOut])
def list_categories(repo: PostRepository = Depends(get_repository)):
    cache_key = "blog:categories"
    cached = cache_json_get(cache_key)
    if cached is not None:
        return cached
    out = [CategoryOut.model_validate(c).model_dump(mode="json") for c in repo.list_categories()]
    cache_json_set(cache_key, out)
    return out


@router.get("/feed/rss.xml")
def rss_feed(repo: PostRepository = Depends(get_repository)):
    cache_key = "feed:rss"
    cached = cache_json_get(cache_key)
    if cached:
        return Response(content=cached.get("xml", ""), media_type="application/rss+xml")

    rows = repo.list_published(limit=settings.feed_size)
    now = dt.datetime.now(dt.timezone.utc)
    items_xml = []
    for r in rows:
        link = _absolute_post_url(r.slug)
        pub = as_utc(r.published_at or r.created_at)
        desc = (r.meta_description or r.excerpt or r.content or "")[:500]
        items_xml.append(
            f"<item>\n<title>{_xml_escape(r.title)}</title>\n<link>{_xml_escape(link)}</link>\n<guid>{_xml_escape(link)}</guid>\n<pubDate>{format_datetime(pub)}</pubDate>\n<description>{_xml_escape(desc)}</description>\n</item>"
        )
    channel = (
        f"<channel>\n<title>{_xml_escape(settings.app_name)}</title>\n<link>{_xml_escape(settings.site_base_url)}</link>\n<lastBuildDate>{format_datetime(now)}</lastBuildDate>\n"
        + "\n".join(items_xml)
        + "\n</channel>"
    )
    xml = f"<?xml version=\"1.0\" encoding=\"UTF-8\"?><rss version=\"2.0\">{channel}</rss>"
    cache_json_set(cache_key, {"xml": xml})
    return Response(content=xml, media_type="application/rss+xml")


@router.get("/feed/atom.xml")
def atom_feed(repo: PostRepository = Depends(get_repository)):
    cache_key = "feed:atom"
    cached = cache_json_get(cache_key)
    if cached:
        return Response(content=cached.get("xml", ""), media_type="application/atom+xml")

    rows = repo.list_published(limit=settings.feed_size)
    updated = dt.datetime.now(dt.timezone.utc).isoformat()
    entries = []
    for r in rows:
        link = _absolute_post_url(r.slug)
        up = as_utc(r.updated_at or r.created_at).isoformat()
        summary = (r.meta_description or r.excerpt or r.content or "")[:500]
        entries.append(
            f"<entry>\n<title>{_xml_escape(r.title)}</title>\n<link href=\"{_xml_escape(link)}\"/>\n<id>{_xml_escape(link)}</id>\n<updated>{up}</updated>\n<summary>{_xml_escape(summary)}</summary>\n</entry>"
        )
    feed = (
        f"<feed xmlns=\"http://www.w3.org/2005/Atom\">\n<title>{_xml_escape(settings.app_name)}</title>\n<link href=\"{_xml_escape(settings.site_base_url)}\"/>\n<updated>{updated}</updated>\n"
        + "\n".join(entries)
        + "\n</feed>"
    )
    cache_json_set(cache_key, {"xml": feed})
    return Response(content=feed, media_type="application/atom+xml")
