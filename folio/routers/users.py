"""Account management endpoints (admins only)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import AuthContext, get_auth_context
from ..deps import get_db
from ..services import users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[schemas.User])
def list_users(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> list[schemas.User]:
    auth.require_admin()
    return users.list_users(db)


@router.post("/{username}/toggle-admin", response_model=schemas.User)
def toggle_admin(
    username: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> schemas.User:
    auth.require_admin()
    users.toggle_admin(db, username)
    return schemas.User.model_validate(users.get_user(db, username))


@router.post("/{username}/toggle-uploader", response_model=schemas.User)
def toggle_uploader(
    username: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> schemas.User:
    auth.require_admin()
    users.toggle_uploader(db, username)
    return schemas.User.model_validate(users.get_user(db, username))


@router.delete("/{username}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    username: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> Response:
    """
    Delete a non-admin account. Its comments stay, shown as anonymous.

    Admin accounts must be demoted first.
    """
    auth.require_admin()
    users.delete_user(db, username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
