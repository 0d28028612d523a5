import os

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""

import pytest
from fastapi.testclient import TestClient

from server.cms.db import Base, SessionLocal, engine
from server.cms.main import app
from server.cms.models import BlogCategory
from server.cms.repository import PostRepository


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repo(db) -> PostRepository:
    return PostRepository(db)


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def categories(db):
    """Two categories, committed, returned as {slug: id}."""
    rows = [
        BlogCategory(name="Python", slug="python"),
        BlogCategory(name="Databases", slug="databases"),
    ]
    db.add_all(rows)
    db.commit()
    return {c.slug: c.id for c in rows}

