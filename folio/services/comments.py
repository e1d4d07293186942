"""Comment store: append-only comments keyed by post."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import storage_step, transaction
from ..errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


def add_comment(
    db: Session,
    post_id: int,
    username: str | None,
    content: str,
    post_time: datetime | None = None,
) -> int:
    """
    Append a comment to ``post_id`` and return its id.

    An empty or missing ``username`` is stored as NULL (anonymous) so the
    foreign key to users is never pointed at a blank name.
    """
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty")

    comment = models.Comment(
        post_id=post_id,
        username=username or None,
        content=content,
    )
    if post_time is not None:
        comment.post_time = models.as_utc(post_time)

    with transaction(db, "add comment"):
        with storage_step("look up post"):
            post_exists = db.execute(select(models.Post.id).where(models.Post.id == post_id)).first()
        if post_exists is None:
            raise NotFound(f"Post {post_id} not found")
        db.add(comment)
        db.flush()
        comment_id = comment.id

    logger.debug("Added comment %d on post %d", comment_id, post_id)
    return comment_id


def list_for_post(db: Session, post_id: int) -> list[schemas.Comment]:
    """Comments on ``post_id``, newest first."""
    with storage_step("list comments"):
        rows = db.execute(
            select(models.Comment)
            .where(models.Comment.post_id == post_id)
            .order_by(models.Comment.post_time.desc(), models.Comment.id.desc())
        ).scalars()
        return [schemas.Comment.model_validate(comment) for comment in rows]
