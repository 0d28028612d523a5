import datetime as dt
import fnmatch

import pytest

from server.cms import cache
from server.cms import repository as repository_module
from server.cms.config import settings

AUTHOR = {"X-Author-Id": "author-1"}
OTHER = {"X-Author-Id": "author-2"}


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]


@pytest.fixture
def fake_redis(monkeypatch):
    r = FakeRedis()
    monkeypatch.setattr(cache, "get_redis", lambda: r)
    return r


def _create(client, publish=False, headers=AUTHOR, **fields):
    body = {"title": "Hello, World!", "content": "one two three"}
    body.update(fields)
    resp = client.post("/api/admin/posts", json=body, params={"publish": publish}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_admin_requires_author_header(client):
    assert client.get("/api/admin/posts").status_code == 401
    resp = client.post("/api/admin/posts", json={"title": "x", "content": "y"}, headers={"X-Author-Id": "  "})
    assert resp.status_code == 401


def test_create_draft_then_publish_via_flag(client):
    post = _create(client, status="draft")
    assert post["slug"] == "hello-world"
    assert post["status"] == "draft"
    assert post["published_at"] is None
    assert client.get("/api/posts/slug/hello-world").status_code == 404

    resp = client.patch(f"/api/admin/posts/{post['id']}", json={}, params={"publish": True}, headers=AUTHOR)
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"
    assert resp.json()["published_at"] is not None

    public = client.get("/api/posts/slug/hello-world")
    assert public.status_code == 200
    assert public.json()["id"] == post["id"]


def test_publish_flag_overrides_form_status(client):
    post = _create(client, publish=True, status="archived")
    assert post["status"] == "published"
    assert post["published_at"] is not None


def test_post_output_has_reader_fields(client):
    post = _create(client, publish=True, content="word " * 401, excerpt="Short", meta_title=None)
    assert post["reading_time"] == 3
    assert post["seo_title"] == "Hello, World!"
    assert post["seo_description"] == "Short"


def test_admin_lists_only_own_posts(client):
    mine = _create(client)
    _create(client, headers=OTHER, title="Theirs")

    rows = client.get("/api/admin/posts", headers=AUTHOR).json()

    assert [r["id"] for r in rows] == [mine["id"]]
    assert client.get(f"/api/admin/posts/{mine['id']}", headers=OTHER).status_code == 404
    assert client.get(f"/api/admin/posts/{mine['id']}", headers=AUTHOR).status_code == 200


def test_update_categories_and_tags(client, categories):
    post = _create(client, category_ids=[categories["python"]], tags=["a", "a", "b"])
    assert post["tags"] == ["a", "b"]
    assert [c["slug"] for c in post["categories"]] == ["python"]

    resp = client.patch(f"/api/admin/posts/{post['id']}", json={"category_ids": []}, headers=AUTHOR)

    assert resp.status_code == 200
    assert resp.json()["categories"] == []


def test_unknown_category_is_rejected(client):
    resp = client.post(
        "/api/admin/posts",
        json={"title": "t", "content": "c", "category_ids": ["missing"]},
        headers=AUTHOR,
    )
    assert resp.status_code == 400
    assert client.get("/api/admin/posts", headers=AUTHOR).json() == []


def test_null_title_in_patch_is_rejected(client):
    post = _create(client)
    resp = client.patch(f"/api/admin/posts/{post['id']}", json={"title": None}, headers=AUTHOR)
    assert resp.status_code == 422


def test_null_slug_in_patch_is_rejected(client):
    post = _create(client)
    resp = client.patch(f"/api/admin/posts/{post['id']}", json={"slug": None}, headers=AUTHOR)

    assert resp.status_code == 422
    assert client.get(f"/api/admin/posts/{post['id']}", headers=AUTHOR).json()["slug"] == "hello-world"


def test_exhausted_slug_suffixes_return_conflict(client, monkeypatch):
    monkeypatch.setattr(settings, "slug_max_attempts", 1)
    assert _create(client)["slug"] == "hello-world"
    assert _create(client)["slug"] == "hello-world-1"

    resp = client.post("/api/admin/posts", json={"title": "Hello, World!", "content": "x"}, headers=AUTHOR)

    assert resp.status_code == 409
    assert len(client.get("/api/admin/posts", headers=AUTHOR).json()) == 2


def test_duplicate_slug_on_insert_returns_conflict(client, monkeypatch):
    _create(client)
    # Resolver sees no clash, as when a concurrent editor wins the race
    monkeypatch.setattr(repository_module, "ensure_unique_slug", lambda db, slug, **kw: slug)

    resp = client.post("/api/admin/posts", json={"title": "Hello, World!", "content": "x"}, headers=AUTHOR)

    assert resp.status_code == 409


def test_timestamps_carry_utc_offset(client):
    post = _create(client, publish=True)

    for field in ("published_at", "created_at", "updated_at"):
        parsed = dt.datetime.fromisoformat(post[field].replace("Z", "+00:00"))
        assert parsed.utcoffset() == dt.timedelta(0)


def test_delete_both_methods(client):
    first = _create(client)
    second = _create(client)

    assert client.delete(f"/api/admin/posts/{first['id']}", headers=AUTHOR).status_code == 204
    assert client.post(f"/api/admin/posts/{second['id']}/delete", headers=AUTHOR).status_code == 204
    assert client.get("/api/admin/posts", headers=AUTHOR).json() == []
    assert client.delete(f"/api/admin/posts/{first['id']}", headers=AUTHOR).status_code == 404


def test_public_listing_excludes_drafts_and_archived(client):
    _create(client, title="Live", publish=True)
    _create(client, title="Draft")
    _create(client, title="Old", status="archived")

    rows = client.get("/api/posts").json()

    assert [r["title"] for r in rows] == ["Live"]


def test_public_listing_paginates(client):
    for i, year in enumerate((2020, 2021, 2022)):
        _create(client, title=f"Post {i}", status="published", published_at=f"{year}-01-01T00:00:00Z")

    rows = client.get("/api/posts", params={"limit": 2, "offset": 1}).json()

    assert [r["title"] for r in rows] == ["Post 1", "Post 0"]
    assert client.get("/api/posts", params={"limit": 0}).status_code == 422


def test_search_endpoint(client):
    _create(client, title="Async Python", publish=True)
    _create(client, title="Async drafts")

    rows = client.get("/api/posts/search", params={"q": "async"}).json()

    assert [r["title"] for r in rows] == ["Async Python"]


def test_categories_endpoint(client):
    resp = client.post("/api/admin/categories", json={"name": "Web Dev"}, headers=AUTHOR)
    assert resp.status_code == 201
    assert resp.json()["slug"] == "web-dev"
    assert client.post("/api/admin/categories", json={"name": "Web dev"}, headers=AUTHOR).status_code == 409

    rows = client.get("/api/categories").json()
    assert [c["name"] for c in rows] == ["Web Dev"]


def test_slug_preview(client):
    resp = client.get("/api/admin/slug", params={"title": "Hello, World!"}, headers=AUTHOR)
    assert resp.json() == {"slug": "hello-world"}


def test_feeds_only_include_published(client):
    _create(client, title="Feed & Friends", publish=True)
    _create(client, title="Secret draft")

    rss = client.get("/api/feed/rss.xml")
    atom = client.get("/api/feed/atom.xml")

    assert rss.headers["content-type"].startswith("application/rss+xml")
    assert "Feed &amp; Friends" in rss.text
    assert "/blog/feed-friends" in rss.text
    assert "Secret draft" not in rss.text
    assert atom.headers["content-type"].startswith("application/atom+xml")
    assert "Feed &amp; Friends" in atom.text
    assert "Secret draft" not in atom.text


def test_public_reads_are_cached_and_invalidated(client, fake_redis):
    _create(client, title="First", publish=True)

    assert [r["title"] for r in client.get("/api/posts").json()] == ["First"]
    assert "blog:published:10:0" in fake_redis.store

    _create(client, title="Second", publish=True)

    assert "blog:published:10:0" not in fake_redis.store
    titles = [r["title"] for r in client.get("/api/posts").json()]
    assert titles == ["Second", "First"]
