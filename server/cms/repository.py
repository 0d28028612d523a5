from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from .models import BlogCategory, BlogPost, BlogPostCategory, PostStatus, utcnow
from .schemas import CategoryCreate, PostCreate, PostUpdate
from .slugs import ensure_unique_slug, generate_slug
from .utils import category_slug, fallback_slug

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    pass


class PostNotFoundError(RepositoryError):
    def __init__(self, post_id: str) -> None:
        super().__init__(f"Post {post_id} not found")
        self.post_id = post_id


class CategoryNotFoundError(RepositoryError):
    def __init__(self, category_ids: Iterable[str]) -> None:
        self.category_ids = sorted(category_ids)
        super().__init__(f"Unknown categories: {', '.join(self.category_ids)}")


class PostRepository:
    """Posts, categories and their links, on top of one SQLAlchemy session.

    Writes commit as a single transaction: a post and its category links
    land together or not at all.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # Writes -----------------------------------------------------------------
    def create(self, payload: PostCreate, author_id: Optional[str]) -> BlogPost:
        base = generate_slug(payload.slug or payload.title) or fallback_slug()
        try:
            slug = ensure_unique_slug(self.db, base)
            category_ids = self._checked_category_ids(payload.category_ids)
            published_at = payload.published_at
            if published_at is None and payload.status == PostStatus.published:
                published_at = utcnow()
            post = BlogPost(
                title=payload.title,
                slug=slug,
                excerpt=payload.excerpt,
                content=payload.content,
                featured_image=payload.featured_image,
                status=payload.status.value,
                author_id=author_id,
                published_at=published_at,
                meta_title=payload.meta_title,
                meta_description=payload.meta_description,
                tags=list(payload.tags),
            )
            self.db.add(post)
            self.db.flush()
            self._link_categories(post.id, category_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(post)
        logger.info("created post %s (%s, %s)", post.id, post.slug, post.status)
        return post

    def update(self, post_id: str, payload: PostUpdate) -> BlogPost:
        post = self.db.get(BlogPost, post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        changes = payload.model_dump(exclude_unset=True)
        category_ids = changes.pop("category_ids", None)
        try:
            if "slug" in changes:
                base = generate_slug(changes["slug"] or "") or fallback_slug()
                changes["slug"] = ensure_unique_slug(self.db, base, exclude_id=post.id)
            if category_ids is not None:
                category_ids = self._checked_category_ids(category_ids)
            if (
                changes.get("status") == PostStatus.published
                and changes.get("published_at") is None
                and post.published_at is None
            ):
                changes["published_at"] = utcnow()
            if "status" in changes:
                changes["status"] = PostStatus(changes["status"]).value

            for field, value in changes.items():
                setattr(post, field, value)

            if category_ids is not None:
                self.db.execute(delete(BlogPostCategory).where(BlogPostCategory.post_id == post.id))
                self._link_categories(post.id, category_ids)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(post)
        logger.info("updated post %s fields=%s", post.id, sorted(changes) + (["category_ids"] if category_ids is not None else []))
        return post

    def delete(self, post_id: str) -> None:
        post = self.db.get(BlogPost, post_id)
        if post is None:
            raise PostNotFoundError(post_id)
        slug = post.slug
        try:
            self.db.delete(post)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("deleted post %s (%s)", post_id, slug)

    def create_category(self, payload: CategoryCreate) -> BlogCategory:
        category = BlogCategory(
            name=payload.name.strip(),
            slug=category_slug(payload.slug or payload.name),
            description=payload.description,
        )
        self.db.add(category)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(category)
        logger.info("created category %s (%s)", category.id, category.slug)
        return category

    # Reads ------------------------------------------------------------------
    def get(self, post_id: str) -> Optional[BlogPost]:
        return self.db.get(BlogPost, post_id)

    def list_by_author(self, author_id: str) -> List[BlogPost]:
        stmt = (
            select(BlogPost)
            .where(BlogPost.author_id == author_id)
            .order_by(BlogPost.created_at.desc())
        )
        return list(self.db.scalars(stmt))

    def list_published(self, limit: int = 10, offset: int = 0) -> List[BlogPost]:
        stmt = (
            select(BlogPost)
            .where(BlogPost.status == PostStatus.published.value)
            .order_by(BlogPost.published_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def get_by_slug(self, slug: str) -> Optional[BlogPost]:
        stmt = select(BlogPost).where(
            BlogPost.slug == slug,
            BlogPost.status == PostStatus.published.value,
        )
        return self.db.scalars(stmt).first()

    def list_categories(self) -> List[BlogCategory]:
        return list(self.db.scalars(select(BlogCategory).order_by(BlogCategory.name)))

    def search(self, query: str, limit: int = 10) -> List[BlogPost]:
        stmt = (
            select(BlogPost)
            .where(
                BlogPost.status == PostStatus.published.value,
                or_(
                    BlogPost.title.icontains(query, autoescape=True),
                    BlogPost.excerpt.icontains(query, autoescape=True),
                    BlogPost.content.icontains(query, autoescape=True),
                ),
            )
            .order_by(BlogPost.published_at.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    # Helpers ----------------------------------------------------------------
    def _checked_category_ids(self, category_ids: Iterable[str]) -> List[str]:
        wanted: List[str] = []
        for cid in category_ids:
            if cid not in wanted:
                wanted.append(cid)
        if not wanted:
            return wanted
        found = set(self.db.scalars(select(BlogCategory.id).where(BlogCategory.id.in_(wanted))))
        missing = set(wanted) - found
        if missing:
            raise CategoryNotFoundError(missing)
        return wanted

    def _link_categories(self, post_id: str, category_ids: List[str]) -> None:
        self.db.add_all(BlogPostCategory(post_id=post_id, category_id=cid) for cid in category_ids)
