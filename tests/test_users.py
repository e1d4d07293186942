"""Account management."""

import pytest
from sqlalchemy.orm import Session

from folio.errors import AlreadyExists, AuthenticationRequired, NotFound, StorageError, ValidationError
from folio.services import users


def test_create_and_authenticate(db: Session):
    users.create_user(db, "alice", "s3cret", email="alice@example.com")

    user = users.authenticate(db, "alice", "s3cret")

    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.admin is False
    assert user.uploader is False


def test_password_is_hashed(db: Session, make_user):
    make_user("alice", password="s3cret")

    stored = users.get_user(db, "alice").password_hash
    assert stored != "s3cret"
    assert users.verify_password("s3cret", stored)


def test_wrong_password(db: Session, make_user):
    make_user("alice", password="s3cret")

    with pytest.raises(AuthenticationRequired):
        users.authenticate(db, "alice", "nope")
    with pytest.raises(AuthenticationRequired):
        users.authenticate(db, "nobody", "s3cret")


def test_duplicate_username(db: Session, make_user):
    make_user("alice")

    with pytest.raises(AlreadyExists):
        users.create_user(db, "alice", "other")


def test_create_user_requires_fields(db: Session):
    with pytest.raises(ValidationError):
        users.create_user(db, "  ", "pw")
    with pytest.raises(ValidationError):
        users.create_user(db, "alice", "")


def test_toggles(db: Session, make_user):
    make_user("alice")

    assert users.toggle_uploader(db, "alice") is True
    assert users.toggle_admin(db, "alice") is True
    assert users.toggle_uploader(db, "alice") is False

    user = users.get_user(db, "alice")
    assert user.admin is True
    assert user.uploader is False


def test_toggle_missing_user(db: Session):
    with pytest.raises(NotFound):
        users.toggle_admin(db, "ghost")


def test_delete_user(db: Session, make_user):
    make_user("alice")

    users.delete_user(db, "alice")

    with pytest.raises(NotFound):
        users.get_user(db, "alice")


def test_admins_cannot_be_deleted(db: Session, make_user):
    make_user("root", admin=True)

    with pytest.raises(NotFound):
        users.delete_user(db, "root")
    assert users.get_user(db, "root").admin is True


def test_list_users_sorted(db: Session, make_user):
    make_user("carol")
    make_user("alice", uploader=True)

    listed = users.list_users(db)
    assert [(u.username, u.uploader) for u in listed] == [("alice", True), ("carol", False)]


def test_ensure_admin(db: Session):
    assert users.ensure_admin(db, "root", "pw") is True
    assert users.ensure_admin(db, "root", "pw") is False
    assert users.ensure_admin(db, None, None) is False

    user = users.get_user(db, "root")
    assert user.admin is True
    assert user.uploader is True


def test_ensure_admin_failure_leaves_no_account(db: Session, monkeypatch):
    real_create_user = users.create_user

    def create_then_fail(db, *args, **kwargs):
        real_create_user(db, *args, **kwargs)
        raise StorageError("grant roles")

    monkeypatch.setattr(users, "create_user", create_then_fail)
    with pytest.raises(StorageError):
        users.ensure_admin(db, "root", "pw")

    with pytest.raises(NotFound):
        users.get_user(db, "root")

    # The next startup gets a clean retry
    monkeypatch.undo()
    assert users.ensure_admin(db, "root", "pw") is True
    user = users.get_user(db, "root")
    assert user.admin is True
    assert user.uploader is True


def test_create_user_with_roles(db: Session):
    users.create_user(db, "root", "pw", admin=True, uploader=True)

    user = users.get_user(db, "root")
    assert (user.admin, user.uploader) == (True, True)
