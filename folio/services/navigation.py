"""Chronological next/previous navigation, optionally scoped to a tag.

The timeline is ordered by (post_time, id): posts sharing a publish time are
ordered by id so every post has at most one successor and one predecessor.
In a tag-scoped walk only the candidate neighbors must carry the tag; the
post being viewed does not.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import storage_step
from ..errors import NotFound
from .queries import PostScope, after, before


def _current(db: Session, title: str) -> tuple:
    with storage_step("look up current post"):
        row = db.execute(
            select(models.Post.id, models.Post.post_time).where(models.Post.title == title)
        ).first()
    if row is None:
        raise NotFound(f"Post '{title}' not found")
    return row


def next_title(db: Session, title: str, tag: str | None = None, include_unlisted: bool = False) -> str | None:
    """Title of the earliest post later than ``title``, or None at the end of the timeline."""
    post_id, post_time = _current(db, title)
    scope = PostScope(tag=tag or None, include_unlisted=include_unlisted)
    stmt = (
        scope.select(models.Post.title)
        .where(after(post_time, post_id))
        .order_by(models.Post.post_time.asc(), models.Post.id.asc())
        .limit(1)
    )
    with storage_step("find next post"):
        return db.execute(stmt).scalar_one_or_none()


def previous_title(db: Session, title: str, tag: str | None = None, include_unlisted: bool = False) -> str | None:
    """Title of the latest post earlier than ``title``, or None at the start of the timeline."""
    post_id, post_time = _current(db, title)
    scope = PostScope(tag=tag or None, include_unlisted=include_unlisted)
    stmt = (
        scope.select(models.Post.title)
        .where(before(post_time, post_id))
        .order_by(models.Post.post_time.desc(), models.Post.id.desc())
        .limit(1)
    )
    with storage_step("find previous post"):
        return db.execute(stmt).scalar_one_or_none()


def neighbors(db: Session, title: str, tag: str | None = None, include_unlisted: bool = False) -> schemas.Neighbors:
    return schemas.Neighbors(
        next=next_title(db, title, tag, include_unlisted),
        previous=previous_title(db, title, tag, include_unlisted),
    )
