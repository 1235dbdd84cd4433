from __future__ import annotations
import logging
import threading
import time
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from models import Review, Reviewer, User

logger = logging.getLogger(__name__)

class StoreError(Exception):
    """Base class for review board storage failures."""

class DuplicateReviewError(StoreError):
    def __init__(self, email: str):
        super().__init__(f"User {email} already has a review")
        self.email = email

_USER_FIELDS = ("id", "name", "picture", "registered_with", "created_at")

def now_ms() -> int:
    return int(time.time() * 1000)

def _copy_review(r: Review) -> Review:
    return replace(r, user=replace(r.user))

class ReviewStore:
    """
    In-memory users and reviews.
    - Users are keyed by email; upserts merge the non-empty fields given.
    - One review per email; listing is newest first.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._reviews: List[Review] = []

    # ---------- Users ----------
    def upsert_user(self, fields: Dict[str, Any]) -> Optional[User]:
        email = fields.get("email")
        if not email:
            return None
        with self._lock:
            return self._upsert_locked(email, fields)

    def get_user(self, email: str) -> Optional[User]:
        with self._lock:
            u = self._users.get(email)
            return replace(u) if u else None

    def _upsert_locked(self, email: str, fields: Dict[str, Any]) -> User:
        current = self._users.get(email) or User(email=email)
        updates = {k: fields[k] for k in _USER_FIELDS if fields.get(k) not in (None, "")}
        user = replace(current, **updates)
        self._users[email] = user
        return replace(user)

    # ---------- Reviews ----------
    def add_review(self, text: str, rating: int, reviewer: Reviewer) -> Review:
        with self._lock:
            if any(r.user.email == reviewer.email for r in self._reviews):
                raise DuplicateReviewError(reviewer.email)
            review = Review(id=uuid.uuid4().hex, text=text, rating=int(rating), user=replace(reviewer))
            self._reviews.append(review)
            self._upsert_locked(reviewer.email, {
                "name": reviewer.name,
                "picture": reviewer.picture,
                "registered_with": "google",
                "created_at": now_ms(),
            })
        logger.info("Review %s stored for %s (rating=%d)", review.id, reviewer.email, review.rating)
        return _copy_review(review)

    def list_reviews(self, page: int = 1, limit: int = 10) -> Tuple[List[Review], int]:
        page = max(1, page)
        limit = max(1, limit)
        skip = (page - 1) * limit
        with self._lock:
            # stable sort keeps insertion order reversed for equal timestamps
            ordered = sorted(reversed(self._reviews), key=lambda r: r.date, reverse=True)
            return [_copy_review(r) for r in ordered[skip:skip + limit]], len(ordered)
