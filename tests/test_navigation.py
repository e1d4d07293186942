"""Next/previous navigation over the post timeline."""

import pytest
from sqlalchemy.orm import Session

from folio.errors import NotFound
from folio.services import navigation

from helpers import at


@pytest.fixture
def timeline(make_post):
    """P1 (a) -> P2 (b) -> P3 (a), one minute apart."""
    make_post("P1", tags=["a"], post_time=at(1))
    make_post("P2", tags=["b"], post_time=at(2))
    make_post("P3", tags=["a"], post_time=at(3))


def test_unscoped_walk(db: Session, timeline):
    assert navigation.next_title(db, "P1") == "P2"
    assert navigation.next_title(db, "P2") == "P3"
    assert navigation.previous_title(db, "P3") == "P2"
    assert navigation.previous_title(db, "P2") == "P1"


def test_boundaries_return_none(db: Session, timeline):
    assert navigation.next_title(db, "P3") is None
    assert navigation.previous_title(db, "P1") is None


def test_tag_scoped_walk_skips_other_tags(db: Session, timeline):
    assert navigation.next_title(db, "P1", tag="a") == "P3"
    assert navigation.previous_title(db, "P3", tag="a") == "P1"
    assert navigation.next_title(db, "P3", tag="a") is None


def test_current_post_need_not_carry_tag(db: Session, timeline):
    neighbors = navigation.neighbors(db, "P2", tag="a")

    assert neighbors.next == "P3"
    assert neighbors.previous == "P1"


def test_unknown_tag_has_no_neighbors(db: Session, timeline):
    neighbors = navigation.neighbors(db, "P2", tag="nope")

    assert neighbors.next is None
    assert neighbors.previous is None


def test_missing_post(db: Session, timeline):
    with pytest.raises(NotFound):
        navigation.next_title(db, "ghost")
    with pytest.raises(NotFound):
        navigation.previous_title(db, "ghost")


def test_equal_times_are_ordered_by_id(db: Session, make_post):
    make_post("first", post_time=at(0))
    make_post("second", post_time=at(0))
    make_post("third", post_time=at(0))

    assert navigation.next_title(db, "first") == "second"
    assert navigation.next_title(db, "second") == "third"
    assert navigation.next_title(db, "third") is None
    assert navigation.previous_title(db, "third") == "second"
    assert navigation.previous_title(db, "first") is None


def test_unlisted_posts_are_skipped(db: Session, make_post):
    make_post("P1", post_time=at(1))
    make_post("hidden", post_time=at(2), unlisted=True)
    make_post("P3", post_time=at(3))

    assert navigation.next_title(db, "P1") == "P3"
    assert navigation.previous_title(db, "P3") == "P1"
    assert navigation.next_title(db, "P1", include_unlisted=True) == "hidden"
    # An unlisted post itself can still be read and navigated from
    assert navigation.next_title(db, "hidden") == "P3"


def test_scenario_with_overlapping_tags(db: Session, make_post):
    make_post("P1", tags=["x"], post_time=at(1))
    make_post("P2", tags=["x", "y"], post_time=at(2))
    make_post("P3", tags=["x"], post_time=at(3))

    assert navigation.next_title(db, "P1", tag="") == "P2"
    assert navigation.previous_title(db, "P3", tag="") == "P2"
    assert navigation.next_title(db, "P2", tag="y") is None
    assert navigation.previous_title(db, "P1", tag="x") is None
