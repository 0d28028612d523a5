from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..cache import invalidate_public_reads
from ..deps import get_author_id, get_repository
from ..models import PostStatus
from ..repository import CategoryNotFoundError, PostNotFoundError, PostRepository
from ..schemas import CategoryCreate, CategoryOut, PostCreate, PostOut, PostUpdate
from ..slugs import SlugUnavailableError, generate_slug

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/api/admin", tags=["admin"])


def _raise_for_write_error(exc: Exception, action: str) -> None:
    if isinstance(exc, PostNotFoundError):
        raise HTTPException(status_code=404, detail="Not found") from exc
    if isinstance(exc, CategoryNotFoundError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(exc, (SlugUnavailableError, IntegrityError)):
        raise HTTPException(status_code=409, detail=f"Failed to {action}: conflicting record") from exc
    logger.warning("%s failed: %s", action, exc)
    raise HTTPException(status_code=500, detail=f"Failed to {action}. Please try again.") from exc


def _own_post_or_404(repo: PostRepository, post_id: str, author_id: str):
    row = repo.get(post_id)
    if not row or row.author_id != author_id:
        raise HTTPException(status_code=404, detail="Not found")
    return row


@router.get("/posts", response_model=List[PostOut])
def list_my_posts(
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    return repo.list_by_author(author_id)


@router.get("/posts/{post_id}", response_model=PostOut)
def get_my_post(
    post_id: str,
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    return _own_post_or_404(repo, post_id, author_id)


@router.post("/posts", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    publish: bool = Query(default=False),
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    # "Publish" overrides whatever status the form carried
    if publish:
        payload = payload.model_copy(update={"status": PostStatus.published})
    try:
        post = repo.create(payload, author_id)
    except (CategoryNotFoundError, SlugUnavailableError, SQLAlchemyError) as e:
        _raise_for_write_error(e, "save post")
    invalidate_public_reads()
    return post


@router.patch("/posts/{post_id}", response_model=PostOut)
def update_post(
    post_id: str,
    payload: PostUpdate,
    publish: bool = Query(default=False),
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    _own_post_or_404(repo, post_id, author_id)
    if publish:
        payload = payload.model_copy(update={"status": PostStatus.published})
    try:
        post = repo.update(post_id, payload)
    except (PostNotFoundError, CategoryNotFoundError, SlugUnavailableError, SQLAlchemyError) as e:
        _raise_for_write_error(e, "save post")
    invalidate_public_reads()
    return post


def _delete_post_by_id(repo: PostRepository, post_id: str, author_id: str) -> None:
    _own_post_or_404(repo, post_id, author_id)
    try:
        repo.delete(post_id)
    except (PostNotFoundError, SQLAlchemyError) as e:
        _raise_for_write_error(e, "delete post")
    invalidate_public_reads()


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: str,
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    _delete_post_by_id(repo, post_id, author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/posts/{post_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
def delete_post_post_method(
    post_id: str,
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    """Convenience endpoint for clients that prefer POST over DELETE."""
    _delete_post_by_id(repo, post_id, author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    author_id: str = Depends(get_author_id),
    repo: PostRepository = Depends(get_repository),
):
    try:
        category = repo.create_category(payload)
    except SQLAlchemyError as e:
        _raise_for_write_error(e, "save category")
    logger.info("category %s added by %s", category.slug, author_id)
    invalidate_public_reads()
    return category


@router.get("/slug")
def preview_slug(title: str = Query(default=""), author_id: str = Depends(get_author_id)) -> dict:
    return {"slug": generate_slug(title)}
