from __future__ import annotations

import os
from datetime import datetime
from typing import Callable, Generator

# Must be in place before any folio module is imported
os.environ["FOLIO_JWT_SECRET_KEY"] = "test-secret-key-0123456789-abcdefghijklmnop"
os.environ["FOLIO_DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from folio import models  # noqa: F401
from folio.db import Base, create_db_engine
from folio.deps import get_db
from folio.main import app
from folio.services import posts, users
from helpers import BASE_TIME


@pytest.fixture()
def engine(tmp_path) -> Generator[Engine, None, None]:
    """Fresh SQLite file per test with the full schema."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'folio.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    """API client bound to the per-test database. Startup tasks are not run; see test_startup.py."""

    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_post(db: Session) -> Callable[..., int]:
    """Create a post through the store; only ``title`` is required."""

    def _make(
        title: str,
        tags=(),
        post_time: datetime | None = None,
        uploader: str = "alice",
        unlisted: bool = False,
    ) -> int:
        return posts.create_post(
            db,
            title=title,
            content=f"{title} body",
            post_time=post_time or BASE_TIME,
            image=b"image-bytes",
            thumbnail=b"thumb-bytes",
            uploader=uploader,
            tags=tags,
            unlisted=unlisted,
        )

    return _make


@pytest.fixture()
def make_user(db: Session) -> Callable[..., str]:
    def _make(username: str, admin: bool = False, uploader: bool = False, password: str = "pw") -> str:
        users.create_user(db, username, password, admin=admin, uploader=uploader)
        return username

    return _make

