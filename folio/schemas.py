from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# BASE SCHEMAS
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# TAG SCHEMAS
# ============================================================================


class Tag(BaseModel):
    """Tag attached to a post."""

    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class TagOption(BaseModel):
    """Tag entry for a filter list, flagged when it is part of the current selection."""

    id: int
    name: str
    selected: bool = False


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class Comment(BaseModel):
    """Comment on a post. ``username`` is None for anonymous comments."""

    id: int
    post_id: int
    username: str | None = None
    content: str
    post_time: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


# ============================================================================
# POST SCHEMAS
# ============================================================================


class PostSummary(BaseModel):
    """Listing entry: everything but the body and full-size image."""

    id: int
    title: str
    post_time: datetime
    thumbnail: bytes
    uploader: str
    unlisted: bool
    views: int
    link_post: bool
    url_link: str
    tags: list[Tag] = []

    model_config = ConfigDict(from_attributes=True, ser_json_bytes="base64")


class Post(PostSummary):
    """Full post with its tags and comments (newest comment first)."""

    content: str
    image: bytes
    comments: list[Comment] = []


class Neighbors(BaseModel):
    """Chronological neighbors of a post. None marks the edge of the timeline."""

    next: str | None = None
    previous: str | None = None


class PostPage(BaseModel):
    """Single post view with navigation inside the followed tag."""

    post: Post
    neighbors: Neighbors
    follow_tag: str | None = None

    model_config = ConfigDict(ser_json_bytes="base64")


class PostListing(BaseModel):
    """Home page data: posts plus the tag filter list."""

    posts: list[PostSummary]
    tags: list[TagOption]
    selected_tag: str | None = None

    model_config = ConfigDict(ser_json_bytes="base64")


class PostCreated(BaseModel):
    id: int
    title: str


# ============================================================================
# USER SCHEMAS
# ============================================================================


class User(BaseModel):
    """Account as shown on the account management page."""

    username: str
    email: str
    admin: bool
    uploader: bool
    created: datetime
    last_login: datetime

    model_config = ConfigDict(from_attributes=True)


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field("", max_length=255)
    password: str = Field(..., min_length=1)
    password2: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    username: str
    admin: bool
    uploader: bool
