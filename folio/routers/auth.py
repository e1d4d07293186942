"""Authentication endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import create_access_token
from ..deps import get_db
from ..errors import ValidationError
from ..services import users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token_for(user: schemas.User) -> schemas.TokenResponse:
    return schemas.TokenResponse(
        access_token=create_access_token(user.username),
        username=user.username,
        admin=user.admin,
        uploader=user.uploader,
    )


@router.post(
    "/signup",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    payload: schemas.SignupRequest,
    db: Session = Depends(get_db),
) -> schemas.TokenResponse:
    """
    Create an account and sign it in.

    New accounts have no roles; an admin grants uploader or admin later.
    """
    if payload.password != payload.password2:
        raise ValidationError("Passwords don't match")

    users.create_user(db, payload.username, payload.password, email=payload.email)
    return _token_for(users.authenticate(db, payload.username.strip(), payload.password))


@router.post("/login", response_model=schemas.TokenResponse)
def login(
    payload: schemas.LoginRequest,
    db: Session = Depends(get_db),
) -> schemas.TokenResponse:
    """Login with username and password."""
    return _token_for(users.authenticate(db, payload.username.strip(), payload.password))
