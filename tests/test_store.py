from datetime import datetime, timedelta, timezone

import pytest

from models import Reviewer
from store import DuplicateReviewError, ReviewStore

def test_upsert_merges_fields():
    st = ReviewStore()
    assert st.upsert_user({"name": "no email"}) is None
    st.upsert_user({"email": "ana@example.com", "id": "42", "name": "Ana", "picture": "p.png"})
    u = st.upsert_user({"email": "ana@example.com", "name": "Ana M.", "picture": None})
    assert u.id == "42"
    assert u.name == "Ana M."
    assert u.picture == "p.png"
    assert st.get_user("ana@example.com").name == "Ana M."
    assert st.get_user("nobody@example.com") is None

def test_one_review_per_email():
    st = ReviewStore()
    st.add_review("Nice", 5, Reviewer(email="ana@example.com", name="Ana"))
    with pytest.raises(DuplicateReviewError):
        st.add_review("Again", 4, Reviewer(email="ana@example.com", name="Ana"))
    _, total = st.list_reviews()
    assert total == 1

def test_review_registers_user():
    st = ReviewStore()
    st.add_review("Nice", 4, Reviewer(email="bo@example.com", name="Bo", picture="b.png"))
    u = st.get_user("bo@example.com")
    assert u.registered_with == "google"
    assert u.picture == "b.png"
    assert u.created_at > 0

def test_list_reviews_newest_first_and_paged():
    st = ReviewStore()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(7):
        st.add_review(f"r{i}", 3, Reviewer(email=f"u{i}@example.com"))
        st._reviews[-1].date = base + timedelta(days=i)

    page1, total = st.list_reviews(page=1, limit=5)
    page2, _ = st.list_reviews(page=2, limit=5)
    assert total == 7
    assert [r.text for r in page1] == ["r6", "r5", "r4", "r3", "r2"]
    assert [r.text for r in page2] == ["r1", "r0"]

    clamped, _ = st.list_reviews(page=0, limit=0)
    assert [r.text for r in clamped] == ["r6"]

def test_returned_reviews_are_copies():
    st = ReviewStore()
    r = st.add_review("Nice", 5, Reviewer(email="ana@example.com", name="Ana"))
    r.text = "changed"
    r.user.name = "Mallory"

    listed, _ = st.list_reviews()
    assert listed[0].text == "Nice"
    assert listed[0].user.name == "Ana"

    listed[0].rating = 1
    again, _ = st.list_reviews()
    assert again[0].rating == 5
