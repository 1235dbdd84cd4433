from __future__ import annotations
import argparse
import asyncio
import json
import os
import random
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, Tuple, List
from urllib.parse import quote

import requests
from dotenv import load_dotenv
load_dotenv()

from catalog import SETTLE_DELAY
from engine import QuizSession
from logging_config import configure_logging
from models import SessionSummary
from presenter import TerminalPresenter
from scheduler import AsyncioScheduler, ManualScheduler

# -----------------------------
# Config defaults
# -----------------------------
DEFAULT_BASE_URL = os.getenv("REVIEW_BOARD_BASE_URL", "http://127.0.0.1:8000")
DEFAULT_SESSION_FILE = os.getenv("REVIEW_BOARD_SESSION_FILE", ".review_session.json")
REVIEWS_PER_PAGE = 5

# -----------------------------
# Errors surfaced to the user
# -----------------------------
ERROR_MESSAGES = {
    "no_session": "You must log in first.",
    "user_has_review": "You have already posted a review.",
    "server_error": "Something went wrong talking to the server. Please try again.",
}

class ReviewBoardError(Exception):
    def __init__(self, category: str, status_code: Optional[int] = None):
        super().__init__(category)
        self.category = category
        self.status_code = status_code

    @property
    def message(self) -> str:
        return ERROR_MESSAGES.get(self.category, ERROR_MESSAGES["server_error"])

# -----------------------------
# Simple HTTP client helpers
# -----------------------------
def _raise_for_api_error(r: requests.Response, url: str) -> None:
    if r.status_code < 400:
        return
    print(f"\n[CLIENT] HTTP {r.status_code} from {url}", file=sys.stderr)
    try:
        body = r.json()
    except ValueError:
        body = {}
    category = body.get("error") if isinstance(body, dict) else None
    raise ReviewBoardError(category or "server_error", status_code=r.status_code)

def _post(base_url: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}{path}"
    try:
        r = requests.post(url, json=payload, timeout=30)
    except requests.RequestException as e:
        print(f"\n[CLIENT] {e}", file=sys.stderr)
        raise ReviewBoardError("server_error") from e
    _raise_for_api_error(r, url)
    return r.json()

def _get(base_url: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}{path}"
    try:
        r = requests.get(url, params=params, timeout=30)
    except requests.RequestException as e:
        print(f"\n[CLIENT] {e}", file=sys.stderr)
        raise ReviewBoardError("server_error") from e
    _raise_for_api_error(r, url)
    return r.json()

# -----------------------------
# API wrappers
# -----------------------------
def session_login(base_url: str, id_token: str) -> Dict[str, Any]:
    return _post(base_url, "/api/session_login", {"id_token": id_token})["user"]

def logout(base_url: str) -> None:
    _post(base_url, "/api/logout", {})

def list_reviews(base_url: str, page: int = 1, limit: int = REVIEWS_PER_PAGE) -> Tuple[List[Dict[str, Any]], int]:
    data = _get(base_url, "/api/reviews", params={"page": page, "limit": limit})
    if not data.get("ok"):
        return [], 0
    return data["reviews"], data["total"]

def post_review(base_url: str, user: Optional[Dict[str, Any]], text: str, rating: int) -> Dict[str, Any]:
    if not user or not user.get("email"):
        raise ReviewBoardError("no_session")
    payload = {
        "text": text,
        "rating": int(rating),
        "user": {
            "name": user.get("name") or "User",
            "email": user["email"],
            "picture": user.get("picture") or default_avatar(user.get("name")),
        },
    }
    return _post(base_url, "/api/reviews", payload)["review"]

def get_user(base_url: str, email: str) -> Optional[Dict[str, Any]]:
    try:
        return _get(base_url, f"/api/users/{quote(email, safe='')}")["user"]
    except ReviewBoardError as e:
        if e.status_code == 404:
            return None
        raise

# -----------------------------
# Local session (who is logged in)
# -----------------------------
def load_current_user(path: str = DEFAULT_SESSION_FILE) -> Optional[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None

def save_current_user(user: Dict[str, Any], path: str = DEFAULT_SESSION_FILE) -> None:
    Path(path).write_text(json.dumps(user, indent=2), encoding="utf-8")

def clear_current_user(path: str = DEFAULT_SESSION_FILE) -> None:
    Path(path).unlink(missing_ok=True)

# -----------------------------
# Review helpers
# -----------------------------
def default_avatar(name: Optional[str]) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name or 'U')}&background=4285F4&color=fff"

def format_timestamp(ms: Optional[int]) -> str:
    if not ms:
        return "Not available"
    try:
        return datetime.fromtimestamp(int(ms) / 1000).strftime("%Y-%m-%d %H:%M")
    except (TypeError, ValueError, OverflowError, OSError):
        return str(ms)

def star_string(rating: float) -> str:
    """Five stars with halves: ★ full, ½ half, ☆ empty."""
    out = ""
    for i in range(1, 6):
        if rating >= i:
            out += "★"
        elif rating >= i - 0.5:
            out += "½"
        else:
            out += "☆"
    return out

def rating_summary(reviews: List[Dict[str, Any]], total: int) -> Tuple[float, str]:
    """Average of the fetched reviews rounded to one decimal, plus a caption."""
    if total == 0 or not reviews:
        return 0.0, "No reviews yet"
    average = sum(float(r["rating"]) for r in reviews) / len(reviews)
    average = round(average * 10) / 10
    return average, f"Based on {total} review{'s' if total != 1 else ''}"

# -----------------------------
# Pretty printers
# -----------------------------
def print_review(rev: Dict[str, Any]) -> None:
    user = rev.get("user") or {}
    print(f"\n{user.get('name') or 'User'}  {star_string(rev['rating'])}  ({rev.get('date', '')[:10]})")
    print(f"  {rev['text']}")

def print_reviews(reviews: List[Dict[str, Any]], total: int, page: int, limit: int) -> None:
    average, caption = rating_summary(reviews, total)
    total_pages = max(1, -(-total // limit))
    print(f"\n===== REVIEWS  {average:.1f} {star_string(average)}  {caption} =====")
    for rev in reviews:
        print_review(rev)
    print(f"\nPage {page} of {total_pages}")

def print_profile(user: Dict[str, Any]) -> None:
    print("\n===== PROFILE =====")
    print(f"Name:    {user.get('name') or user.get('email') or 'User'}")
    print(f"Email:   {user.get('email', '')}")
    print(f"Picture: {user.get('picture') or default_avatar(user.get('name') or user.get('email'))}")
    print(f"Since:   {format_timestamp(user.get('createdAt'))}")
    print("=" * 19)

# -----------------------------
# Quiz play loops
# -----------------------------
async def _interactive_quiz(seed: Optional[int]) -> Optional[SessionSummary]:
    loop = asyncio.get_running_loop()
    finished = asyncio.Event()
    presenter = TerminalPresenter(on_end=lambda _summary: finished.set())
    session = QuizSession(AsyncioScheduler(loop), listener=presenter, rng=random.Random(seed))
    session.start()

    while session.running:
        read = loop.run_in_executor(None, input, "Your choice (1-3): ")
        ended = asyncio.ensure_future(finished.wait())
        done, _ = await asyncio.wait({read, ended}, return_when=asyncio.FIRST_COMPLETED)
        if ended in done:
            print("(press Enter to exit)")
            break
        ended.cancel()

        try:
            raw = read.result().strip()
        except EOFError:
            session.end()
            break
        if not session.is_round_live:
            print("Hold on, the next round is coming...")
            continue
        try:
            session.submit_answer(int(raw) - 1)
        except ValueError:
            print("Pick 1, 2 or 3.")
    return session.summary

def interactive_play(seed: Optional[int] = None) -> Optional[SessionSummary]:
    print("\n🚦 Match the sign! 30 seconds on the clock: +30s for a hit, -30s for a miss.")
    return asyncio.run(_interactive_quiz(seed))

def auto_demo_play(seed: Optional[int] = None, accuracy: float = 0.7, think_time: float = 2.0) -> SessionSummary:
    """
    Runs a simulated session on a virtual clock for quick verification.
    """
    print("\n🤖 Running auto-demo...")
    scheduler = ManualScheduler()
    player = random.Random(seed)
    session = QuizSession(scheduler, listener=TerminalPresenter(), rng=random.Random(seed))
    session.start()

    while session.running:
        scheduler.advance(think_time)
        if session.is_round_live:
            rnd = session.current_round
            if player.random() < accuracy:
                choice = rnd.correct_index
            else:
                choice = (rnd.correct_index + 1) % len(rnd.options)
            print(f"> {choice + 1}")
            session.submit_answer(choice)
        scheduler.advance(SETTLE_DELAY)
    return session.summary

# -----------------------------
# Run server (programmatically)
# -----------------------------
def run_server(port: int, host: str = "127.0.0.1", reload: bool = True) -> None:
    try:
        import uvicorn
    except ImportError:
        print("❌ uvicorn not installed. Run: pip install -e .")
        sys.exit(1)
    uvicorn.run("api:app", host=host, port=port, reload=reload)

# -----------------------------
# Health checker
# -----------------------------
def health_check(base_url: str) -> None:
    print(f"🔎 Checking server at {base_url} ...")
    try:
        r = requests.get(f"{base_url.rstrip('/')}/docs", timeout=10)
        r.raise_for_status()
        print("✅ /docs reachable")

        _, total = list_reviews(base_url, page=1, limit=1)
        print(f"✅ JSON API ok (reviews={total})")
    except (requests.RequestException, ReviewBoardError) as e:
        print(f"❌ Health check failed: {e}")
        sys.exit(1)

# -----------------------------
# CLI
# -----------------------------
def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Sign quiz + review board: server, client and game in one file")
    p.add_argument("--base-url", type=str, default=DEFAULT_BASE_URL, help="API base URL")
    p.add_argument("--session-file", type=str, default=DEFAULT_SESSION_FILE, help="Where the logged-in user is kept")

    sub = p.add_subparsers(dest="cmd", required=True)

    ps = sub.add_parser("serve", help="Start the FastAPI server (uvicorn)")
    ps.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")), help="Port to bind")
    ps.add_argument("--host", type=str, default=os.getenv("HOST", "127.0.0.1"), help="Host to bind")
    ps.add_argument("--no-reload", action="store_true", help="Disable auto-reload")

    pp = sub.add_parser("play", help="Play the timed sign-matching quiz in the terminal")
    pp.add_argument("--auto-demo", action="store_true", help="Simulate a player on a virtual clock")
    pp.add_argument("--seed", type=int, default=None, help="Seed for reproducible rounds")

    pl = sub.add_parser("login", help="Log in with a Google ID token")
    pl.add_argument("--id-token", type=str, required=True, help="Google Sign-In ID token")

    sub.add_parser("logout", help="Log out and forget the local session")

    pr = sub.add_parser("reviews", help="List reviews")
    pr.add_argument("--page", type=int, default=1)
    pr.add_argument("--limit", type=int, default=REVIEWS_PER_PAGE)

    pw = sub.add_parser("review", help="Post a review as the logged-in user")
    pw.add_argument("--text", type=str, required=True)
    pw.add_argument("--rating", type=int, required=True, choices=range(1, 6))

    pf = sub.add_parser("profile", help="Show a user profile (defaults to the logged-in user)")
    pf.add_argument("--email", type=str, default=None)

    sub.add_parser("health", help="Check server availability")

    return p.parse_args(argv)

def run_command(args: argparse.Namespace) -> int:
    if args.cmd == "serve":
        run_server(port=args.port, host=args.host, reload=(not args.no_reload))
        return 0

    if args.cmd == "play":
        summary = auto_demo_play(args.seed) if args.auto_demo else interactive_play(args.seed)
        return 0 if summary is not None else 1

    if args.cmd == "health":
        health_check(args.base_url)
        return 0

    try:
        if args.cmd == "login":
            user = session_login(args.base_url, args.id_token)
            save_current_user(user, args.session_file)
            print(f"✅ Logged in as {user.get('name') or user['email']}")
        elif args.cmd == "logout":
            logout(args.base_url)
            clear_current_user(args.session_file)
            print("👋 Logged out")
        elif args.cmd == "reviews":
            reviews, total = list_reviews(args.base_url, page=args.page, limit=args.limit)
            print_reviews(reviews, total, page=max(1, args.page), limit=max(1, args.limit))
        elif args.cmd == "review":
            user = load_current_user(args.session_file)
            post_review(args.base_url, user, args.text, args.rating)
            print("✅ Thanks for your review!")
        elif args.cmd == "profile":
            email = args.email or (load_current_user(args.session_file) or {}).get("email")
            if not email:
                raise ReviewBoardError("no_session")
            user = get_user(args.base_url, email)
            if user is None:
                print(f"❌ No user registered with {email}")
                return 1
            print_profile(user)
    except ReviewBoardError as e:
        print(f"❌ {e.message}")
        return 1
    return 0

def main() -> None:
    configure_logging()
    sys.exit(run_command(parse_args()))

if __name__ == "__main__":
    main()
