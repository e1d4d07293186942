"""Tag registry: name -> id resolution, association links and orphan cleanup.

Every tag row must be referenced by at least one post. Tags are created on
first use by ``resolve_or_create`` and removed by ``sweep_orphans`` once the
last post referencing them lets go.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import delete, exists, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import storage_step
from ..errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def parse_tag_input(text: str | None) -> list[str]:
    """
    Split free-form tag input into distinct tag names.

    Commas count as whitespace, empty tokens are dropped and repeats collapse
    onto their first occurrence.

    Example:
        parse_tag_input("a,,  ,b a")  # ["a", "b"]
    """
    if not text:
        return []
    return normalize_tag_names(text.replace(",", " ").split())


def normalize_tag_names(names: Iterable[str]) -> list[str]:
    """Strip names, drop empty ones and collapse duplicates, keeping order."""
    seen: dict[str, None] = {}
    for name in names:
        name = name.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def resolve_or_create(db: Session, name: str) -> int:
    """
    Return the id of tag ``name``, inserting it if it does not exist yet.

    Expressed as a single upsert so two transactions racing on the same new
    name both end up with the one surviving row instead of a unique violation.
    """
    name = name.strip()
    if not name:
        raise ValidationError("Tag name cannot be empty")

    upsert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if upsert is None:
        existing = db.execute(select(models.Tag.id).where(models.Tag.name == name)).scalar_one_or_none()
        if existing is not None:
            return existing
        return db.execute(insert(models.Tag).values(name=name).returning(models.Tag.id)).scalar_one()

    stmt = upsert(models.Tag).values(name=name)
    stmt = stmt.on_conflict_do_update(
        index_elements=["name"],
        set_={"name": stmt.excluded.name},
    ).returning(models.Tag.id)
    return db.execute(stmt).scalar_one()


def attach_tags(db: Session, post_id: int, names: Iterable[str]) -> list[int]:
    """Resolve every name and link it to ``post_id``. Empty names are skipped."""
    tag_ids = []
    for name in normalize_tag_names(names):
        with storage_step(f"link tag {name!r}"):
            tag_id = resolve_or_create(db, name)
            db.execute(insert(models.post_tags).values(post_id=post_id, tag_id=tag_id))
        tag_ids.append(tag_id)
    return tag_ids


def detach_all(db: Session, post_id: int) -> int:
    """Remove every association of ``post_id``. Returns the number removed."""
    with storage_step("clear post tags"):
        result = db.execute(delete(models.post_tags).where(models.post_tags.c.post_id == post_id))
    return result.rowcount


def sweep_orphans(db: Session) -> int:
    """Delete every tag no post references. Returns the number of tags removed."""
    referenced = exists().where(models.post_tags.c.tag_id == models.Tag.id)
    with storage_step("sweep orphan tags"):
        result = db.execute(delete(models.Tag).where(~referenced).execution_options(synchronize_session=False))
    if result.rowcount:
        logger.info("Removed %d orphan tag(s)", result.rowcount)
    return result.rowcount


def sweep_orphans_best_effort(db: Session) -> int:
    """
    Run ``sweep_orphans`` inside a savepoint of the caller's transaction.

    A failing sweep is logged and undone on its own; the caller's primary
    change still commits. The orphan then lingers until the next sweep.
    """
    try:
        with db.begin_nested():
            return sweep_orphans(db)
    except (StorageError, SQLAlchemyError):
        logger.warning("Orphan tag cleanup failed; leaving it for the next sweep", exc_info=True)
        return 0


def tags_for_post(db: Session, post_id: int) -> list[schemas.Tag]:
    rows = db.execute(
        select(models.Tag)
        .join(models.post_tags, models.post_tags.c.tag_id == models.Tag.id)
        .where(models.post_tags.c.post_id == post_id)
        .order_by(models.Tag.name)
    ).scalars()
    return [schemas.Tag.model_validate(tag) for tag in rows]


def tags_for_posts(db: Session, post_ids: Iterable[int]) -> dict[int, list[schemas.Tag]]:
    """Batch version of ``tags_for_post`` for listings (avoids one query per post)."""
    post_ids = list(post_ids)
    grouped: dict[int, list[schemas.Tag]] = {post_id: [] for post_id in post_ids}
    if not post_ids:
        return grouped

    rows = db.execute(
        select(models.post_tags.c.post_id, models.Tag.id, models.Tag.name)
        .join(models.Tag, models.post_tags.c.tag_id == models.Tag.id)
        .where(models.post_tags.c.post_id.in_(post_ids))
        .order_by(models.Tag.name)
    )
    for post_id, tag_id, name in rows:
        grouped[post_id].append(schemas.Tag(id=tag_id, name=name))
    return grouped


def list_all(db: Session, selected: Iterable[str] | None = None) -> list[schemas.TagOption]:
    """All tags ordered by name, each flagged if its name is in ``selected``."""
    selected_names = set(normalize_tag_names(selected or []))
    rows = db.execute(select(models.Tag).order_by(models.Tag.name)).scalars()
    return [
        schemas.TagOption(id=tag.id, name=tag.name, selected=tag.name in selected_names)
        for tag in rows
    ]
