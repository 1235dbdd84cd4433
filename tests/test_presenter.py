import io
import random

import pytest

from engine import QuizSession
from models import Item, SessionSummary
from presenter import TerminalPresenter, format_time, render_timer, timer_bar_percent
from scheduler import ManualScheduler

@pytest.mark.parametrize("seconds,text", [(0, "00:00"), (9, "00:09"), (75, "01:15"), (180, "03:00"), (-3, "00:00")])
def test_format_time(seconds, text):
    assert format_time(seconds) == text

def test_timer_bar_percent_is_clamped():
    assert timer_bar_percent(90) == 50.0
    assert timer_bar_percent(180) == 100.0
    assert timer_bar_percent(400) == 100.0
    assert timer_bar_percent(-1) == 0.0

def test_render_timer():
    assert render_timer(90) == "[##########..........] 01:30"
    assert render_timer(0) == "[....................] 00:00"

def test_terminal_presenter_output():
    out = io.StringIO()
    ended = []
    p = TerminalPresenter(out=out, on_end=ended.append)
    opts = (Item("3.jpg", "Sign 3"), Item("7.jpg", "Sign 7"), Item("1.jpg", "Sign 1"))
    p.on_round_start(opts[1], opts)
    p.on_answer_result(False, opts[1])
    p.on_tick(37)   # echoed right after the answer
    p.on_tick(36)   # not echoed
    p.on_tick(30)
    summary = SessionSummary(rounds_played=1, correct=0, wrong=1, tier="low", message="There's still a lot to learn.")
    p.on_session_end(summary)

    text = out.getvalue()
    assert "Round 1" in text
    assert "[7.jpg]" in text
    assert "  2) Sign 7" in text
    assert "The right one was: Sign 7" in text
    assert "00:37" in text
    assert "00:36" not in text
    assert "00:30" in text
    assert "Rounds played:   1" in text
    assert ended == [summary]

def play_session(presenter, seed=4):
    sched = ManualScheduler()
    sess = QuizSession(sched, listener=presenter, rng=random.Random(seed))
    return sess, sched

def test_timer_shown_after_answer():
    out = io.StringIO()
    sess, sched = play_session(TerminalPresenter(out=out))
    sess.start()
    sched.advance(3)
    sess.submit_answer(sess.current_round.correct_index)
    assert sess.time == 57
    sched.advance(1)

    text = out.getvalue()
    assert "Correct!\n" + render_timer(57) in text
    # plain ticks go back to the sparse schedule
    assert "00:56" not in text

def test_reused_presenter_restarts_round_count():
    out = io.StringIO()
    presenter = TerminalPresenter(out=out)
    first, _ = play_session(presenter)
    first.start()
    first.end()
    second, _ = play_session(presenter, seed=5)
    second.start()

    text = out.getvalue()
    assert text.count("--- Round 1 ---") == 2
    assert "--- Round 2 ---" not in text
