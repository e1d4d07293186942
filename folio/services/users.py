"""Account management: sign-up, login checks and role toggles."""

from __future__ import annotations

import logging

from passlib.context import CryptContext
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import storage_step, transaction
from ..errors import AlreadyExists, AuthenticationRequired, NotFound, ValidationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user(db: Session, username: str) -> models.User:
    with storage_step("load user"):
        user = db.execute(select(models.User).where(models.User.username == username)).scalar_one_or_none()
    if user is None:
        raise NotFound(f"User '{username}' not found")
    return user


def create_user(
    db: Session,
    username: str,
    password: str,
    email: str = "",
    *,
    admin: bool = False,
    uploader: bool = False,
) -> None:
    """
    Register a new account, with no roles unless ``admin``/``uploader`` are set.

    Raises:
        AlreadyExists: the username is taken.
        ValidationError: username or password is empty.
    """
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required")

    with transaction(db, "create user"):
        with storage_step("check username"):
            taken = db.execute(select(models.User.id).where(models.User.username == username)).first()
        if taken is not None:
            raise AlreadyExists(f"'{username}' user already exists")

        db.add(
            models.User(
                username=username,
                email=email or "",
                password_hash=hash_password(password),
                admin=admin,
                uploader=uploader,
            )
        )
        try:
            db.flush()
        except IntegrityError as exc:
            raise AlreadyExists(f"'{username}' user already exists") from exc

    logger.info("Added user '%s'", username)


def authenticate(db: Session, username: str, password: str) -> schemas.User:
    """Check credentials and stamp the login time."""
    with storage_step("load user"):
        user = db.execute(select(models.User).where(models.User.username == username)).scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for '%s'", username)
        raise AuthenticationRequired("Invalid username or password")

    with transaction(db, "record login"):
        user = db.execute(select(models.User).where(models.User.username == username)).scalar_one()
        user.last_login = models.utcnow()
        db.flush()
        result = schemas.User.model_validate(user)
    return result


def _set_flag(db: Session, username: str, step: str, **values) -> None:
    with transaction(db, step):
        result = db.execute(
            update(models.User)
            .where(models.User.username == username)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(f"User '{username}' not found")


def set_admin(db: Session, username: str, admin: bool) -> None:
    _set_flag(db, username, "set admin", admin=admin)
    logger.info("Set admin=%s for '%s'", admin, username)


def set_uploader(db: Session, username: str, uploader: bool) -> None:
    _set_flag(db, username, "set uploader", uploader=uploader)
    logger.info("Set uploader=%s for '%s'", uploader, username)


def toggle_admin(db: Session, username: str) -> bool:
    """Flip the admin role. Returns the new value."""
    new_value = not get_user(db, username).admin
    set_admin(db, username, new_value)
    return new_value


def toggle_uploader(db: Session, username: str) -> bool:
    """Flip the uploader role. Returns the new value."""
    new_value = not get_user(db, username).uploader
    set_uploader(db, username, new_value)
    return new_value


def delete_user(db: Session, username: str) -> None:
    """
    Delete a non-admin account. Comments it wrote survive as anonymous.

    Raises:
        NotFound: no such user, or the user is an admin.
    """
    with transaction(db, "delete user"):
        with storage_step("detach comments"):
            db.execute(
                update(models.Comment)
                .where(models.Comment.username == username)
                .where(
                    select(models.User.id)
                    .where(models.User.username == username, models.User.admin.is_(False))
                    .exists()
                )
                .values(username=None)
                .execution_options(synchronize_session=False)
            )
        with storage_step("delete user"):
            result = db.execute(
                delete(models.User)
                .where(models.User.username == username, models.User.admin.is_(False))
                .execution_options(synchronize_session=False)
            )
        if result.rowcount == 0:
            raise NotFound(f"User '{username}' not deleted: either an admin or does not exist")

    logger.info("Deleted user '%s'", username)


def list_users(db: Session) -> list[schemas.User]:
    with storage_step("list users"):
        rows = db.execute(select(models.User).order_by(models.User.username)).scalars()
        return [schemas.User.model_validate(user) for user in rows]


def ensure_admin(db: Session, username: str | None, password: str | None) -> bool:
    """
    Create the bootstrap admin account if it does not exist yet.

    The account is written with both roles in a single transaction: either it
    exists as an admin afterwards or not at all.

    Returns True when an account was created.
    """
    if not username or not password:
        logger.info("ensure_admin: ADMIN_USERNAME/ADMIN_PASSWORD not set, skipping.")
        return False

    with transaction(db, "bootstrap admin"):
        with storage_step("check admin"):
            exists = db.execute(select(models.User.id).where(models.User.username == username)).first()
        if exists is not None:
            return False
        create_user(db, username, password, admin=True, uploader=True)

    logger.info("Created admin account '%s'", username)
    return True
