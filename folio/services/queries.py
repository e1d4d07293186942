"""Composable post selection shared by listings and navigation.

A ``PostScope`` is the base post query plus optional predicates (tag filter,
unlisted visibility). Scoped and unscoped reads run through the same code and
differ only in the scope's parameters.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Select, and_, exists, or_, select
from sqlalchemy.sql.elements import ColumnElement

from .. import models


@dataclass(frozen=True)
class PostScope:
    """Which posts a read may see."""

    tag: str | None = None
    include_unlisted: bool = False

    def predicates(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if not self.include_unlisted:
            clauses.append(models.Post.unlisted.is_(False))
        if self.tag:
            clauses.append(has_tag(self.tag))
        return clauses

    def select(self, *columns) -> Select:
        """Base SELECT over posts (or ``columns``) restricted to this scope."""
        stmt = select(*columns) if columns else select(models.Post)
        for clause in self.predicates():
            stmt = stmt.where(clause)
        return stmt


def has_tag(name: str) -> ColumnElement[bool]:
    """True for posts linked to the tag called ``name``."""
    return exists().where(
        models.post_tags.c.post_id == models.Post.id,
        models.post_tags.c.tag_id == models.Tag.id,
        models.Tag.name == name,
    )


def after(post_time, post_id: int) -> ColumnElement[bool]:
    """Posts strictly later than (post_time, post_id) on the timeline."""
    return or_(
        models.Post.post_time > post_time,
        and_(models.Post.post_time == post_time, models.Post.id > post_id),
    )


def before(post_time, post_id: int) -> ColumnElement[bool]:
    """Posts strictly earlier than (post_time, post_id) on the timeline."""
    return or_(
        models.Post.post_time < post_time,
        and_(models.Post.post_time == post_time, models.Post.id < post_id),
    )
