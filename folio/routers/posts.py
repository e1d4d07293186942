"""Post endpoints: browse, read, upload, edit and delete."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import AuthContext, get_auth_context
from ..deps import get_db
from ..errors import Unauthorized, ValidationError
from ..services import comments, navigation, posts, tags, views
from ..thumbnails import make_thumbnail, validate_upload_size

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


def _read_image(upload: UploadFile | None) -> tuple[bytes, bytes] | None:
    """Raw bytes plus generated thumbnail, or None when no file was sent."""
    if upload is None or not upload.filename:
        return None
    data = upload.file.read()
    validate_upload_size(len(data))
    return data, make_thumbnail(data)


@router.get("", response_model=schemas.PostListing)
def list_posts(
    tag: str | None = None,
    include_unlisted: bool = False,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> schemas.PostListing:
    """
    Home page data: posts newest first, optionally filtered by ``tag``, plus
    the full tag list with the active filter flagged.

    Unlisted posts are only included for admins who ask for them.
    """
    auth.current_username()
    return schemas.PostListing(
        posts=posts.list_posts(db, tag=tag, include_unlisted=include_unlisted and auth.is_admin),
        tags=tags.list_all(db, selected=[tag] if tag else []),
        selected_tag=tag or None,
    )


@router.get("/{title}", response_model=schemas.PostPage)
def read_post(
    title: str,
    tag: str | None = None,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> schemas.PostPage:
    """
    A single post with next/previous titles inside the followed ``tag``.
    Admins also step through unlisted posts.

    Counts a view; a failed count does not fail the page.
    """
    auth.current_username()
    post = posts.get_post(db, title)
    views.increment_views(db, post.id)
    return schemas.PostPage(
        post=post,
        neighbors=navigation.neighbors(db, post.title, tag=tag, include_unlisted=auth.is_admin),
        follow_tag=tag or None,
    )


@router.post("", response_model=schemas.PostCreated, status_code=status.HTTP_201_CREATED)
def upload_post(
    title: str = Form(...),
    description: str = Form(""),
    tags_text: str = Form("", alias="tags"),
    post_time: str = Form(""),
    unlisted: bool = Form(False),
    link_post: bool = Form(False),
    url_link: str = Form(""),
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> schemas.PostCreated:
    """Publish a post (uploaders only). A 300x300 thumbnail is derived from the image."""
    auth.require_uploader()
    uploader = auth.current_username()

    published_at = posts.parse_post_time(post_time, default=datetime.now(timezone.utc))
    image_pair = _read_image(image)
    if image_pair is None:
        raise ValidationError("No image found")
    image_bytes, thumbnail = image_pair

    post_id = posts.create_post(
        db,
        title=title,
        content=description,
        post_time=published_at,
        image=image_bytes,
        thumbnail=thumbnail,
        uploader=uploader,
        tags=tags.parse_tag_input(tags_text),
        unlisted=unlisted,
        link_post=link_post,
        url_link=url_link,
    )
    return schemas.PostCreated(id=post_id, title=title.strip())


@router.put("/{title}", status_code=status.HTTP_204_NO_CONTENT)
def edit_post(
    title: str,
    new_title: str = Form(..., alias="title"),
    description: str = Form(""),
    tags_text: str = Form("", alias="tags"),
    post_time: str = Form(""),
    unlisted: bool = Form(False),
    link_post: bool = Form(False),
    url_link: str = Form(""),
    image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> Response:
    """
    Rewrite a post (its uploader or an admin). The tag list replaces the
    current one; the image is only replaced when a file is sent.
    """
    auth.require_uploader()
    uploader = posts.get_uploader(db, title)
    if not auth.can_edit(uploader):
        raise Unauthorized("Insufficient permissions to edit page")

    image_pair = _read_image(image)
    posts.edit_post(
        db,
        title,
        title=new_title,
        content=description,
        post_time=posts.parse_post_time(post_time, default=None),
        unlisted=unlisted,
        link_post=link_post,
        url_link=url_link,
        tags=tags.parse_tag_input(tags_text),
        image=image_pair[0] if image_pair else None,
        thumbnail=image_pair[1] if image_pair else None,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{title}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    title: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> Response:
    """Delete a post with its comments (admins only)."""
    auth.require_admin()
    posts.delete_post(db, title)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{title}/comments", response_model=list[schemas.Comment])
def list_comments(
    title: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> list[schemas.Comment]:
    auth.current_username()
    return comments.list_for_post(db, posts.get_post_id(db, title))


@router.post(
    "/{title}/comments",
    response_model=list[schemas.Comment],
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    title: str,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> list[schemas.Comment]:
    """
    Comment on a post. Signed-in callers are recorded as the author; anyone
    else comments anonymously. Returns the refreshed comment list.
    """
    post_id = posts.get_post_id(db, title)
    comments.add_comment(db, post_id, auth.username, payload.content)
    return comments.list_for_post(db, post_id)
