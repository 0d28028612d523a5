from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .db import get_db
from .repository import PostRepository


def get_repository(db: Session = Depends(get_db)) -> PostRepository:
    return PostRepository(db)


def get_author_id(x_author_id: str | None = Header(default=None)) -> str:
    # Set by the auth proxy in front of the admin routes
    author_id = (x_author_id or "").strip()
    if not author_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Author-Id header")
    return author_id
