from __future__ import annotations
from typing import Tuple

from models import Item

# ---------- Game constants ----------
INITIAL_TIME = 30        # seconds on the clock at start
MAX_TIME = 180           # 3 minutes
ROUNDS_TOTAL = 10
OPTIONS_PER_ROUND = 3
ANSWER_BONUS = 30
ANSWER_PENALTY = 30
TICK_INTERVAL = 1.0
SETTLE_DELAY = 0.9       # pause so the UI can reveal the right answer

# ---------- Catalog ----------
ITEMS: Tuple[Item, ...] = tuple(
    Item(src=f"{i}.jpg", name=f"Sign {i}") for i in range(1, 16)
)

# ---------- End-of-game feedback ----------
TIER_MESSAGES = {
    "top": "You're amazing.",
    "mid": "You can do better.",
    "low": "There's still a lot to learn.",
}

def tier_for(correct: int) -> str:
    if correct >= 8:
        return "top"
    if correct >= 4:
        return "mid"
    return "low"

def tier_message(correct: int) -> str:
    return TIER_MESSAGES[tier_for(correct)]
