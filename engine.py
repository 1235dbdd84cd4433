from __future__ import annotations
import logging
import random
from typing import Optional, Sequence, Tuple

from catalog import (
    ANSWER_BONUS, ANSWER_PENALTY, INITIAL_TIME, ITEMS, MAX_TIME,
    OPTIONS_PER_ROUND, ROUNDS_TOTAL, SETTLE_DELAY, TICK_INTERVAL,
    tier_for, tier_message,
)
from models import Item, Round, SessionSummary
from scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

class RoundNotLiveError(ValueError):
    """Raised when an answer arrives while no round is accepting input."""

def _clamp_time(value: int) -> int:
    return max(0, min(MAX_TIME, value))

def rounds_played(round_number: int) -> int:
    # the counter overshoots by one when the last round completes
    return min(round_number - (1 if round_number > ROUNDS_TOTAL else 0), ROUNDS_TOTAL)

class QuizListener:
    """Presentation callbacks. Subclass and override what the UI needs."""
    def on_round_start(self, question: Item, options: Tuple[Item, ...]) -> None:
        pass

    def on_answer_result(self, correct: bool, correct_item: Item) -> None:
        pass

    def on_tick(self, remaining_seconds: int) -> None:
        pass

    def on_session_end(self, summary: SessionSummary) -> None:
        pass

class QuizSession:
    """
    Timed image-matching quiz.
    - Clock starts at 30s, +30s per correct answer (max 180), -30s per wrong one.
    - Up to 10 rounds of 3 distinct candidates, one of them the question item.
    - Ends when the clock hits 0 or the 10th round has been answered.
    """
    def __init__(
        self,
        scheduler: Scheduler,
        listener: Optional[QuizListener] = None,
        rng: Optional[random.Random] = None,
        catalog: Sequence[Item] = ITEMS,
    ):
        if len(catalog) < OPTIONS_PER_ROUND:
            raise ValueError(f"Catalog needs at least {OPTIONS_PER_ROUND} items")
        self.scheduler = scheduler
        self.listener = listener or QuizListener()
        self._rng = rng or random.Random()
        self._catalog = tuple(catalog)

        self._time = INITIAL_TIME
        self._round_number = 0
        self._correct = 0
        self._wrong = 0
        self._running = False
        self._ended = False
        self._current_round: Optional[Round] = None
        self._accepting = False
        self._summary: Optional[SessionSummary] = None

        self._tick_handle: Optional[TimerHandle] = None
        self._settle_handle: Optional[TimerHandle] = None

    # ---------- Read-only state ----------
    @property
    def time(self) -> int:
        return self._time

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def correct(self) -> int:
        return self._correct

    @property
    def wrong(self) -> int:
        return self._wrong

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def current_round(self) -> Optional[Round]:
        return self._current_round

    @property
    def is_round_live(self) -> bool:
        return self._running and self._accepting and self._current_round is not None

    @property
    def summary(self) -> Optional[SessionSummary]:
        return self._summary

    # ---------- Session lifecycle ----------
    def start(self) -> None:
        self._cancel_timers()
        self._round_number = 0
        self._correct = 0
        self._wrong = 0
        self._time = INITIAL_TIME
        self._current_round = None
        self._accepting = False
        self._summary = None
        self._ended = False
        self._running = True
        logger.info("Quiz session started (time=%ss)", self._time)

        self._tick_handle = self.scheduler.schedule_repeating(TICK_INTERVAL, self.tick)
        self.listener.on_tick(self._time)
        self.advance_round()

    def tick(self) -> None:
        if not self._running:
            return
        self._time = _clamp_time(self._time - 1)
        self.listener.on_tick(self._time)
        if self._time <= 0:
            self.end()

    def end(self) -> Optional[SessionSummary]:
        if not self._running:
            return self._summary

        self._cancel_timers()
        self._running = False
        self._ended = True
        self._accepting = False
        self._summary = SessionSummary(
            rounds_played=rounds_played(self._round_number),
            correct=self._correct,
            wrong=self._wrong,
            tier=tier_for(self._correct),
            message=tier_message(self._correct),
        )
        logger.info(
            "Quiz session ended: rounds=%d correct=%d wrong=%d time=%ds",
            self._summary.rounds_played, self._correct, self._wrong, self._time,
        )
        self.listener.on_session_end(self._summary)
        return self._summary

    # ---------- Round handling ----------
    def advance_round(self) -> Optional[Round]:
        if not self._running:
            return None
        # an explicit advance supersedes a pending settle
        self.scheduler.cancel(self._settle_handle)
        self._settle_handle = None
        self._round_number += 1
        if self._round_number > ROUNDS_TOTAL:
            self.end()
            return None

        pool = list(self._catalog)
        self._rng.shuffle(pool)
        options = tuple(pool[:OPTIONS_PER_ROUND])
        correct_index = self._rng.randrange(OPTIONS_PER_ROUND)

        rnd = Round(
            number=self._round_number,
            question=options[correct_index],
            options=options,
            correct_index=correct_index,
        )
        self._current_round = rnd
        self._accepting = True
        logger.debug("Round %d: question=%s", rnd.number, rnd.question.src)
        self.listener.on_round_start(rnd.question, rnd.options)
        return rnd

    def submit_answer(self, choice_index: int) -> bool:
        if not self.is_round_live:
            raise RoundNotLiveError("No round is accepting answers.")
        if not 0 <= choice_index < OPTIONS_PER_ROUND:
            raise ValueError(f"choice_index must be between 0 and {OPTIONS_PER_ROUND - 1}")

        rnd = self._current_round
        self._accepting = False
        is_correct = choice_index == rnd.correct_index
        if is_correct:
            self._correct += 1
            self._time = _clamp_time(self._time + ANSWER_BONUS)
        else:
            self._wrong += 1
            self._time = _clamp_time(self._time - ANSWER_PENALTY)

        self.listener.on_answer_result(is_correct, rnd.correct_item)
        self.listener.on_tick(self._time)

        if self._time <= 0:
            self.end()
        else:
            self._settle_handle = self.scheduler.schedule_once(SETTLE_DELAY, self._after_settle)
        return is_correct

    # ---------- helpers ----------
    def _after_settle(self) -> None:
        self._settle_handle = None
        if not self._running:
            return
        if self._time <= 0:
            self.end()
        else:
            self.advance_round()

    def _cancel_timers(self) -> None:
        self.scheduler.cancel(self._tick_handle)
        self.scheduler.cancel(self._settle_handle)
        self._tick_handle = None
        self._settle_handle = None
