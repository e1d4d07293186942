"""Post store: transactional create/edit/delete plus post reads.

Every multi-statement write runs inside ``transaction()``: post row, tag
resolution and association rows commit together or not at all.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import storage_step, transaction
from ..errors import AlreadyExists, NotFound, ValidationError
from . import comments as comment_store
from . import tags as tag_registry
from .queries import PostScope

logger = logging.getLogger(__name__)

# Format produced by an HTML datetime-local input.
POST_TIME_FORMAT = "%Y-%m-%dT%H:%M"

_SUMMARY_COLUMNS = (
    models.Post.id,
    models.Post.title,
    models.Post.post_time,
    models.Post.thumbnail,
    models.Post.uploader,
    models.Post.unlisted,
    models.Post.views,
    models.Post.link_post,
    models.Post.url_link,
)


def parse_post_time(text: str | None, default: datetime | None) -> datetime | None:
    """Parse a ``YYYY-MM-DDTHH:MM`` value (read as UTC); blank input yields ``default``."""
    if text is None or not text.strip():
        return default
    try:
        parsed = datetime.strptime(text.strip(), POST_TIME_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid date format: {text!r}")
    return parsed.replace(tzinfo=timezone.utc)


def _require_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if "/" in title:
        # Titles are addressed as a single path segment: /posts/{title}
        raise ValidationError("Title cannot contain '/'")
    return title


def create_post(
    db: Session,
    *,
    title: str,
    content: str,
    post_time: datetime,
    image: bytes,
    thumbnail: bytes,
    uploader: str,
    tags: Iterable[str] = (),
    unlisted: bool = False,
    link_post: bool = False,
    url_link: str = "",
) -> int:
    """
    Publish a new post and link its tags. Returns the new post id.

    Raises:
        AlreadyExists: another post already uses ``title``.
        ValidationError: title or uploader is empty.
        StorageError: any lower-level failure; nothing is written.
    """
    title = _require_title(title)
    if not uploader:
        raise ValidationError("Uploader is required")
    if image is None or thumbnail is None:
        raise ValidationError("An image is required")

    with transaction(db, "create post"):
        with storage_step("check title"):
            taken = db.execute(select(models.Post.id).where(models.Post.title == title)).first()
        if taken is not None:
            raise AlreadyExists(f"'{title}' already exists")

        post = models.Post(
            title=title,
            content=content or "",
            post_time=models.as_utc(post_time),
            image=image,
            thumbnail=thumbnail,
            uploader=uploader,
            unlisted=unlisted,
            link_post=link_post,
            url_link=url_link or "",
        )
        db.add(post)
        try:
            db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent create of the same title
            raise AlreadyExists(f"'{title}' already exists") from exc

        tag_registry.attach_tags(db, post.id, tags)
        post_id = post.id

    logger.info("Created post %d '%s' by %s", post_id, title, uploader)
    return post_id


def edit_post(
    db: Session,
    original_title: str,
    *,
    title: str,
    content: str,
    post_time: datetime | None,
    unlisted: bool,
    link_post: bool,
    url_link: str,
    tags: Iterable[str],
    image: bytes | None = None,
    thumbnail: bytes | None = None,
) -> None:
    """
    Rewrite an existing post and replace its whole tag set.

    ``post_time=None`` keeps the current publish time. The image pair is only
    replaced when ``image`` is given. Tags dropped by the edit are swept if no
    other post still uses them; a failing sweep is logged and does not undo
    the edit.

    Raises:
        NotFound: no post is titled ``original_title``.
        AlreadyExists: ``title`` belongs to a different post.
        StorageError: any lower-level failure; the post keeps its prior state.
    """
    title = _require_title(title)
    if image is not None and thumbnail is None:
        raise ValidationError("A new image needs a matching thumbnail")

    with transaction(db, "edit post"):
        with storage_step("load post"):
            post = db.execute(
                select(models.Post).where(models.Post.title == original_title)
            ).scalar_one_or_none()
        if post is None:
            raise NotFound(f"Post '{original_title}' not found")

        if title != original_title:
            with storage_step("check title"):
                taken = db.execute(select(models.Post.id).where(models.Post.title == title)).first()
            if taken is not None:
                raise AlreadyExists(f"'{title}' already exists")

        post.title = title
        post.content = content or ""
        if post_time is not None:
            post.post_time = models.as_utc(post_time)
        post.unlisted = unlisted
        post.link_post = link_post
        post.url_link = url_link or ""
        if image is not None:
            post.image = image
            post.thumbnail = thumbnail

        try:
            db.flush()
        except IntegrityError as exc:
            raise AlreadyExists(f"'{title}' already exists") from exc

        tag_registry.detach_all(db, post.id)
        tag_registry.attach_tags(db, post.id, tags)
        tag_registry.sweep_orphans_best_effort(db)

    logger.info("Edited post '%s' -> '%s'", original_title, title)


def delete_post(db: Session, title: str) -> None:
    """
    Delete a post with its associations and comments, then sweep orphan tags.

    All steps share one transaction; a failure in any of them, the sweep
    included, leaves the post untouched.

    Raises:
        NotFound: no post matched ``title`` (decided by the delete's row count).
    """
    post_ids = select(models.Post.id).where(models.Post.title == title)

    with transaction(db, "delete post"):
        with storage_step("delete post tags"):
            db.execute(delete(models.post_tags).where(models.post_tags.c.post_id.in_(post_ids)))
        with storage_step("delete post comments"):
            db.execute(
                delete(models.Comment)
                .where(models.Comment.post_id.in_(post_ids))
                .execution_options(synchronize_session=False)
            )
        with storage_step("delete post"):
            result = db.execute(
                delete(models.Post)
                .where(models.Post.title == title)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount == 0:
            raise NotFound(f"Post '{title}' not found")
        tag_registry.sweep_orphans(db)

    logger.info("Deleted post '%s'", title)


def get_post(db: Session, title: str) -> schemas.Post:
    """Full post by title with tags and comments attached."""
    with storage_step("load post"):
        post = db.execute(select(models.Post).where(models.Post.title == title)).scalar_one_or_none()
        if post is None:
            raise NotFound(f"Post '{title}' not found")
        tags = tag_registry.tags_for_post(db, post.id)
        comments = comment_store.list_for_post(db, post.id)

    return schemas.Post(
        id=post.id,
        title=post.title,
        content=post.content,
        post_time=post.post_time,
        image=post.image,
        thumbnail=post.thumbnail,
        uploader=post.uploader,
        unlisted=post.unlisted,
        views=post.views,
        link_post=post.link_post,
        url_link=post.url_link,
        tags=tags,
        comments=comments,
    )


def get_post_id(db: Session, title: str) -> int:
    with storage_step("look up post"):
        post_id = db.execute(select(models.Post.id).where(models.Post.title == title)).scalar_one_or_none()
    if post_id is None:
        raise NotFound(f"Post '{title}' not found")
    return post_id


def get_uploader(db: Session, title: str) -> str:
    """Uploader of the post titled ``title``; callers use it for edit permission checks."""
    with storage_step("look up uploader"):
        uploader = db.execute(
            select(models.Post.uploader).where(models.Post.title == title)
        ).scalar_one_or_none()
    if uploader is None:
        raise NotFound(f"Post '{title}' not found")
    return uploader


def list_posts(db: Session, tag: str | None = None, include_unlisted: bool = False) -> list[schemas.PostSummary]:
    """Post summaries, newest first, optionally limited to posts tagged ``tag``."""
    scope = PostScope(tag=tag or None, include_unlisted=include_unlisted)
    stmt = scope.select(*_SUMMARY_COLUMNS).order_by(models.Post.post_time.desc(), models.Post.id.desc())

    with storage_step("list posts"):
        rows = db.execute(stmt).all()
        tags_by_post = tag_registry.tags_for_posts(db, [row.id for row in rows])

    return [
        schemas.PostSummary(**row._mapping, tags=tags_by_post[row.id])
        for row in rows
    ]
