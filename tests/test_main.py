import pytest

import main
from main import ReviewBoardError

class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload
    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

def test_post_review_without_session():
    with pytest.raises(ReviewBoardError) as exc:
        main.post_review("http://api.test", None, "text", 5)
    assert exc.value.category == "no_session"
    assert exc.value.message == "You must log in first."

def test_post_review_sends_default_avatar(monkeypatch):
    sent = {}
    def fake_post(url, json=None, timeout=None):
        sent["url"], sent["json"] = url, json
        return FakeResponse(200, {"ok": True, "review": {"id": "r1"}})
    monkeypatch.setattr(main.requests, "post", fake_post)

    review = main.post_review("http://api.test/", {"email": "ana@example.com", "name": "Ana Li"}, "Great", 4)
    assert review == {"id": "r1"}
    assert sent["url"] == "http://api.test/api/reviews"
    assert sent["json"]["user"]["picture"].startswith("https://ui-avatars.com/api/?name=Ana%20Li")

@pytest.mark.parametrize("status,payload,category", [
    (409, {"ok": False, "error": "user_has_review"}, "user_has_review"),
    (500, {"ok": False, "error": "db_error"}, "db_error"),
    (502, None, "server_error"),
])
def test_api_errors_map_to_categories(monkeypatch, status, payload, category):
    monkeypatch.setattr(main.requests, "post", lambda *a, **k: FakeResponse(status, payload))
    with pytest.raises(ReviewBoardError) as exc:
        main.post_review("http://api.test", {"email": "ana@example.com"}, "Great", 4)
    assert exc.value.category == category
    assert exc.value.status_code == status

def test_unknown_category_shows_generic_message():
    assert ReviewBoardError("db_error").message == main.ERROR_MESSAGES["server_error"]

def test_get_user_not_found(monkeypatch):
    monkeypatch.setattr(main.requests, "get", lambda *a, **k: FakeResponse(404, {"ok": False}))
    assert main.get_user("http://api.test", "nobody@example.com") is None

def test_star_string():
    assert main.star_string(5) == "★★★★★"
    assert main.star_string(3.5) == "★★★½☆"
    assert main.star_string(0) == "☆☆☆☆☆"

def test_rating_summary():
    assert main.rating_summary([], 0) == (0.0, "No reviews yet")
    reviews = [{"rating": 5}, {"rating": 4}, {"rating": 4}]
    assert main.rating_summary(reviews, 1) == (4.3, "Based on 1 review")
    assert main.rating_summary(reviews, 12) == (4.3, "Based on 12 reviews")

def test_session_file_roundtrip(tmp_path):
    path = str(tmp_path / "session.json")
    assert main.load_current_user(path) is None
    main.save_current_user({"email": "ana@example.com"}, path)
    assert main.load_current_user(path) == {"email": "ana@example.com"}
    main.clear_current_user(path)
    main.clear_current_user(path)
    assert main.load_current_user(path) is None

def test_review_command_without_login(tmp_path, capsys):
    args = main.parse_args(["--session-file", str(tmp_path / "none.json"), "review", "--text", "hi", "--rating", "5"])
    assert main.run_command(args) == 1
    assert "You must log in first." in capsys.readouterr().out

def test_auto_demo_finishes(capsys):
    summary = main.auto_demo_play(seed=3)
    assert summary is not None
    assert 1 <= summary.rounds_played <= 10
    assert summary.correct + summary.wrong >= summary.rounds_played - 1
    assert "GAME OVER" in capsys.readouterr().out

def test_auto_demo_perfect_player():
    summary = main.auto_demo_play(seed=1, accuracy=1.0)
    assert summary.rounds_played == 10
    assert summary.correct == 10
    assert summary.tier == "top"
