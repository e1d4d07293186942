"""View counter."""

import threading
from contextlib import contextmanager

from sqlalchemy.orm import Session

from folio.errors import StorageError
from folio.services import posts, views


def test_increment_views(db: Session, make_post):
    post_id = make_post("P1")

    assert views.increment_views(db, post_id) is True
    assert views.increment_views(db, post_id) is True

    assert posts.get_post(db, "P1").views == 2


def test_increment_failure_is_swallowed(db: Session, make_post, monkeypatch):
    post_id = make_post("P1")

    @contextmanager
    def broken_transaction(db, step):
        raise StorageError(step)
        yield

    monkeypatch.setattr(views, "transaction", broken_transaction)

    assert views.increment_views(db, post_id) is False
    monkeypatch.undo()
    assert posts.get_post(db, "P1").views == 0


def test_concurrent_increments_are_not_lost(session_factory, make_post):
    post_id = make_post("P1")
    threads_n, per_thread = 4, 10

    def worker():
        session = session_factory()
        try:
            for _ in range(per_thread):
                views.increment_views(session, post_id)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    check = session_factory()
    try:
        assert posts.get_post(check, "P1").views == threads_n * per_thread
    finally:
        check.close()
