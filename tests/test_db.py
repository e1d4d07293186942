"""Transaction envelope."""

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from folio import models
from folio.db import storage_step, transaction
from folio.errors import NotFound, StorageError
from folio.services import tags

from helpers import tag_names


class Cancelled(BaseException):
    """Stands in for a request abandoned mid-transaction."""


def test_commits_on_clean_exit(db: Session):
    with transaction(db, "add tag"):
        tags.resolve_or_create(db, "kept")

    assert tag_names(db) == ["kept"]


def test_domain_error_rolls_back_and_propagates(db: Session):
    with pytest.raises(NotFound):
        with transaction(db, "add tag"):
            tags.resolve_or_create(db, "discarded")
            raise NotFound("nothing here")

    assert tag_names(db) == []


def test_cancellation_rolls_back(db: Session):
    with pytest.raises(Cancelled):
        with transaction(db, "add tag"):
            tags.resolve_or_create(db, "half-done")
            raise Cancelled()

    assert tag_names(db) == []


def test_sqlalchemy_errors_become_storage_errors(db: Session):
    with pytest.raises(StorageError) as excinfo:
        with transaction(db, "bogus write"):
            tags.resolve_or_create(db, "discarded")
            db.execute(text("INSERT INTO no_such_table VALUES (1)"))

    assert excinfo.value.step == "bogus write"
    assert excinfo.value.cause is not None
    assert tag_names(db) == []


def test_storage_step_names_the_step(db: Session):
    with pytest.raises(StorageError) as excinfo:
        with storage_step("read nothing"):
            db.execute(text("SELECT * FROM no_such_table"))

    assert str(excinfo.value).startswith("read nothing failed")
    db.rollback()


def test_write_after_open_read(db: Session):
    tags.list_all(db)
    assert db.in_transaction()

    with transaction(db, "add tag"):
        tags.resolve_or_create(db, "after-read")

    assert tag_names(db) == ["after-read"]


def test_nested_block_joins_outer(db: Session):
    with transaction(db, "outer"):
        with transaction(db, "inner"):
            tags.resolve_or_create(db, "a")
        assert db.in_transaction()
        tags.resolve_or_create(db, "b")

    assert tag_names(db) == ["a", "b"]


def test_nested_block_rolls_back_with_outer(db: Session):
    with pytest.raises(NotFound):
        with transaction(db, "outer"):
            with transaction(db, "inner"):
                tags.resolve_or_create(db, "inner-tag")
            tags.resolve_or_create(db, "outer-tag")
            raise NotFound("abort")

    assert tag_names(db) == []


def test_nested_storage_failure_names_inner_step(db: Session):
    with pytest.raises(StorageError) as excinfo:
        with transaction(db, "outer"):
            tags.resolve_or_create(db, "discarded")
            with transaction(db, "inner"):
                db.execute(text("SELECT * FROM no_such_table"))

    assert excinfo.value.step == "inner"
    assert tag_names(db) == []


def test_refuses_stray_pending_changes(db: Session):
    db.add(models.Tag(name="stray"))

    with pytest.raises(RuntimeError):
        with transaction(db, "add tag"):
            pass

    db.rollback()
    assert tag_names(db) == []
