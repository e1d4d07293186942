from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models, settings
from .deps import get_db
from .errors import AuthenticationRequired, Unauthorized

logger = logging.getLogger(__name__)

# Security scheme for Bearer token
oauth2_scheme = HTTPBearer(auto_error=False)

JWT_SECRET_KEY = settings.JWT_SECRET_KEY
if not JWT_SECRET_KEY:
    raise RuntimeError(
        "FOLIO_JWT_SECRET_KEY environment variable is required but not set. "
        "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
    )
if len(JWT_SECRET_KEY) < 32:
    raise RuntimeError("FOLIO_JWT_SECRET_KEY is too short. Must be at least 32 characters long.")


@dataclass(frozen=True)
class AuthContext:
    """
    Identity and roles of the caller for one request.

    Built once per request from a verified token and passed explicitly to
    whatever needs it. ``username`` is None for anonymous callers.
    """

    username: str | None = None
    is_admin: bool = False
    is_uploader: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.username is not None

    def current_username(self) -> str:
        if self.username is None:
            raise AuthenticationRequired("Authentication required")
        return self.username

    def require_admin(self) -> None:
        if not self.is_admin:
            raise Unauthorized("Admin role required")

    def require_uploader(self) -> None:
        if not self.is_uploader:
            raise Unauthorized("Uploader role required")

    def can_edit(self, uploader: str) -> bool:
        """True if the caller uploaded the post or is an admin."""
        return self.is_admin or (self.username is not None and self.username == uploader)


ANONYMOUS = AuthContext()


def context_for(user: models.User) -> AuthContext:
    return AuthContext(username=user.username, is_admin=user.admin, is_uploader=user.uploader)


def create_access_token(username: str, expires_in_seconds: int | None = None) -> str:
    """
    Create a JWT access token carrying ``username``.
    """
    if expires_in_seconds is None:
        expires_in_seconds = settings.JWT_EXPIRE_MINUTES * 60

    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "exp": now + timedelta(seconds=expires_in_seconds),
        "iat": now,
        "type": "access",
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str | None:
    """Return the username in a valid token, None for expired or malformed ones."""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.InvalidTokenError:
        logger.debug("Rejected invalid token")
        return None

    if payload.get("type") != "access":
        return None
    return payload.get("sub")


def get_auth_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> AuthContext:
    """
    Resolve the caller's identity from the Bearer token.

    Roles are read from the users table on every request so a toggled role
    takes effect without a new login. Missing, invalid or stale tokens yield
    the anonymous context.
    """
    if credentials is None:
        return ANONYMOUS

    username = decode_access_token(credentials.credentials)
    if not username:
        return ANONYMOUS

    user = db.execute(select(models.User).where(models.User.username == username)).scalar_one_or_none()
    if user is None:
        return ANONYMOUS
    return context_for(user)
