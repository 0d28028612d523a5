from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from .models import PostStatus
from .utils import as_utc, estimate_reading_time, normalize_tags


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: Optional[str] = None
    description: Optional[str] = None

    class Config:
        frozen = True


class CategoryOut(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    @field_validator("created_at")
    @classmethod
    def _utc(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v)

    class Config:
        from_attributes = True


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=512)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: str
    featured_image: Optional[str] = None
    status: PostStatus = PostStatus.draft
    published_at: Optional[dt.datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category_ids: List[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: List[str]) -> List[str]:
        return normalize_tags(v)

    class Config:
        frozen = True


class PostUpdate(BaseModel):
    """Partial edit: only fields present in the request are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=512)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    featured_image: Optional[str] = None
    status: Optional[PostStatus] = None
    published_at: Optional[dt.datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    tags: Optional[List[str]] = None
    category_ids: Optional[List[str]] = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else normalize_tags(v)

    @model_validator(mode="after")
    def _no_null_required(self) -> "PostUpdate":
        for name in ("title", "slug", "content", "status", "tags", "category_ids"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    class Config:
        frozen = True


class PostOut(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    featured_image: Optional[str] = None
    status: PostStatus
    author_id: Optional[str] = None
    published_at: Optional[dt.datetime] = None
    created_at: dt.datetime
    updated_at: dt.datetime
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    categories: List[CategoryOut] = Field(default_factory=list)

    @field_validator("published_at", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: Optional[dt.datetime]) -> Optional[dt.datetime]:
        return as_utc(v)

    @computed_field  # type: ignore[misc]
    @property
    def reading_time(self) -> int:
        return estimate_reading_time(self.content)

    @computed_field  # type: ignore[misc]
    @property
    def seo_title(self) -> str:
        return self.meta_title or self.title

    @computed_field  # type: ignore[misc]
    @property
    def seo_description(self) -> Optional[str]:
        return self.meta_description or self.excerpt

    class Config:
        from_attributes = True
