from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize to UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# ACCOUNTS
# ============================================================================


class User(Base):
    """Account with login credentials and publishing roles."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)

    # Roles
    admin = Column(Boolean, nullable=False, default=False)
    uploader = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Relationships
    comments = relationship("Comment", back_populates="author", passive_deletes=True)


# ============================================================================
# CONTENT
# ============================================================================


# Post <-> Tag association. Composite primary key makes it a set; rows vanish
# with either side.
post_tags = Table(
    "post_tags",
    Base.metadata,
    Column("post_id", Integer, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Post(Base):
    """Published blog post with its image payloads."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String(300), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    post_time = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Opaque encoded image blobs; never decoded by the store
    image = Column(LargeBinary, nullable=False)
    thumbnail = Column(LargeBinary, nullable=False)

    uploader = Column(String(100), nullable=False, index=True)
    unlisted = Column(Boolean, nullable=False, default=False)
    views = Column(Integer, nullable=False, default=0, server_default="0")

    # External-link posts
    link_post = Column(Boolean, nullable=False, default=False)
    url_link = Column(String(2000), nullable=False, default="")

    # Relationships
    tags = relationship("Tag", secondary=post_tags, back_populates="posts", order_by="Tag.name")
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_posts_post_time_id", post_time, id),)


class Tag(Base):
    """Tag name shared across posts. Exists only while some post references it."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)

    posts = relationship("Post", secondary=post_tags, back_populates="tags")


class Comment(Base):
    """Reader comment on a post. Anonymous when username is NULL."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    username = Column(
        String(100),
        ForeignKey("users.username", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    content = Column(Text, nullable=False)
    post_time = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Relationships
    post = relationship("Post", back_populates="comments")
    author = relationship("User", back_populates="comments", foreign_keys=[username])

    __table_args__ = (Index("ix_comments_post_time", post_id, post_time.desc()),)
