from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple

# ---------- Quiz ----------
@dataclass(frozen=True)
class Item:
    src: str
    name: str

@dataclass(frozen=True)
class Round:
    number: int
    question: Item
    options: Tuple[Item, ...]
    correct_index: int

    @property
    def correct_item(self) -> Item:
        return self.options[self.correct_index]

@dataclass(frozen=True)
class SessionSummary:
    rounds_played: int
    correct: int
    wrong: int
    tier: str
    message: str

# ---------- Review board ----------
@dataclass
class User:
    email: str
    id: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    registered_with: Optional[str] = None
    # epoch milliseconds
    created_at: Optional[int] = None

@dataclass
class Reviewer:
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None

@dataclass
class Review:
    id: str
    text: str
    rating: int
    user: Reviewer
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
