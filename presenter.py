from __future__ import annotations
from typing import Callable, Optional, TextIO, Tuple
import sys

from catalog import MAX_TIME
from engine import QuizListener
from models import Item, SessionSummary

BAR_WIDTH = 20

# -----------------------------
# Timer display
# -----------------------------
def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"

def timer_bar_percent(time_left: int) -> float:
    return max(0.0, min(100.0, time_left / MAX_TIME * 100.0))

def render_timer(time_left: int) -> str:
    filled = round(timer_bar_percent(time_left) / 100.0 * BAR_WIDTH)
    return f"[{'#' * filled}{'.' * (BAR_WIDTH - filled)}] {format_time(time_left)}"

# -----------------------------
# Terminal adapter
# -----------------------------
class TerminalPresenter(QuizListener):
    """
    Prints quiz events to a text stream.
    Ticks are echoed every 10 seconds, during the last 5, and right after an answer.
    """
    def __init__(self, out: Optional[TextIO] = None, on_end: Optional[Callable[[SessionSummary], None]] = None):
        self.out = out or sys.stdout
        self.on_end = on_end
        self.round = 0
        self._show_next_tick = False

    def _print(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def on_round_start(self, question: Item, options: Tuple[Item, ...]) -> None:
        self.round += 1
        self._print(f"\n--- Round {self.round} ---")
        self._print(f"Which sign is this? [{question.src}]")
        for i, opt in enumerate(options, start=1):
            self._print(f"  {i}) {opt.name}")

    def on_answer_result(self, correct: bool, correct_item: Item) -> None:
        if correct:
            self._print("Correct!")
        else:
            self._print(f"Wrong answer. The right one was: {correct_item.name}")
        self._show_next_tick = True

    def on_tick(self, remaining_seconds: int) -> None:
        if self._show_next_tick or remaining_seconds % 10 == 0 or remaining_seconds <= 5:
            self._print(render_timer(remaining_seconds))
        self._show_next_tick = False

    def on_session_end(self, summary: SessionSummary) -> None:
        self._print("\n===== GAME OVER =====")
        self._print(f"Rounds played:   {summary.rounds_played}")
        self._print(f"Correct / Wrong: {summary.correct}  /  {summary.wrong}")
        self._print(summary.message)
        self._print("=" * 21)
        # a reused presenter counts the next game from round 1
        self.round = 0
        self._show_next_tick = False
        if self.on_end:
            self.on_end(summary)
