from __future__ import annotations
import logging
import os
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from google_client import GoogleTokenVerifier, InvalidTokenError
from logging_config import configure_logging
from models import Review, Reviewer, User
from store import DuplicateReviewError, ReviewStore, StoreError, now_ms

load_dotenv()
configure_logging()
logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = "http://localhost:5000,http://127.0.0.1:5000"

# ---------- Pydantic IO models ----------
class SessionLoginIn(BaseModel):
    id_token: Optional[str] = None

class ReviewerIn(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

class ReviewIn(BaseModel):
    text: Optional[str] = Field(None, examples=["Great way to learn the road signs!"])
    rating: Optional[int] = Field(None, examples=[5])
    user: Optional[ReviewerIn] = None

class UserOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    registered_with: Optional[str] = Field(None, alias="registeredWith")
    created_at: Optional[int] = Field(None, alias="createdAt")

class ReviewerOut(BaseModel):
    name: Optional[str] = None
    email: str
    picture: Optional[str] = None

class ReviewOut(BaseModel):
    id: str
    text: str
    rating: int
    date: datetime
    user: ReviewerOut

class SessionLoginOut(BaseModel):
    ok: bool = True
    user: UserOut

class OkOut(BaseModel):
    ok: bool = True

class ReviewListOut(BaseModel):
    ok: bool = True
    reviews: list[ReviewOut]
    total: int

class ReviewCreatedOut(BaseModel):
    ok: bool = True
    review: ReviewOut

class UserLookupOut(BaseModel):
    ok: bool = True
    user: UserOut

# ---------- Errors ----------
class ApiError(Exception):
    """Rendered as {"ok": false, "error": ...} with the given status."""
    def __init__(self, status_code: int, error: Optional[str] = None):
        super().__init__(error or str(status_code))
        self.status_code = status_code
        self.error = error

# ---------- App ----------
app = FastAPI(title="Sign Quiz Review Board API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("ALLOWED_ORIGINS", DEFAULT_ORIGINS).split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

_store = ReviewStore()
_verifier = GoogleTokenVerifier()

def get_store() -> ReviewStore:
    return _store

def get_verifier() -> GoogleTokenVerifier:
    return _verifier

@app.exception_handler(ApiError)
async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    body = {"ok": False}
    if exc.error:
        body["error"] = exc.error
    return JSONResponse(status_code=exc.status_code, content=body)

@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"ok": False, "error": "invalid"})

def _to_user_out(u: User) -> UserOut:
    return UserOut(
        id=u.id,
        email=u.email,
        name=u.name,
        picture=u.picture,
        registered_with=u.registered_with,
        created_at=u.created_at,
    )

def _to_review_out(r: Review) -> ReviewOut:
    return ReviewOut(
        id=r.id,
        text=r.text,
        rating=r.rating,
        date=r.date,
        user=ReviewerOut(name=r.user.name, email=r.user.email, picture=r.user.picture),
    )

# ---------- Session ----------
@app.post("/api/session_login", response_model=SessionLoginOut)
def session_login(
    payload: SessionLoginIn,
    store: ReviewStore = Depends(get_store),
    verifier: GoogleTokenVerifier = Depends(get_verifier),
):
    if not payload.id_token:
        raise ApiError(400, "Missing id_token")
    try:
        claims = verifier.verify(payload.id_token)
    except (InvalidTokenError, RuntimeError) as e:
        logger.warning("session_login rejected: %s", e)
        raise ApiError(401, "Invalid token")

    user = store.upsert_user({
        "email": claims["email"],
        "id": claims["sub"],
        "name": claims.get("name"),
        "picture": claims.get("picture"),
        "registered_with": "google",
        "created_at": now_ms(),
    })
    logger.info("User %s logged in", user.email)
    return SessionLoginOut(user=_to_user_out(user))

@app.post("/api/logout", response_model=OkOut)
def logout():
    return OkOut()

# ---------- Reviews ----------
@app.get("/api/reviews", response_model=ReviewListOut)
def list_reviews(page: int = 1, limit: int = 10, store: ReviewStore = Depends(get_store)):
    try:
        items, total = store.list_reviews(page=max(1, page), limit=max(1, limit))
    except StoreError as e:
        logger.error("Listing reviews failed: %s", e)
        raise ApiError(500, "db_error")
    return ReviewListOut(reviews=[_to_review_out(r) for r in items], total=total)

@app.post("/api/reviews", response_model=ReviewCreatedOut)
def create_review(payload: ReviewIn, store: ReviewStore = Depends(get_store)):
    u = payload.user
    if not payload.text or not payload.rating or not u or not u.email:
        raise ApiError(400, "invalid")
    if not 1 <= payload.rating <= 5:
        raise ApiError(400, "invalid")

    try:
        review = store.add_review(
            text=payload.text,
            rating=payload.rating,
            reviewer=Reviewer(email=u.email, name=u.name, picture=u.picture),
        )
    except DuplicateReviewError:
        raise ApiError(409, "user_has_review")
    except StoreError as e:
        logger.error("Saving review failed: %s", e)
        raise ApiError(500, "db_error")
    return ReviewCreatedOut(review=_to_review_out(review))

# ---------- Users ----------
@app.get("/api/users/{email}", response_model=UserLookupOut)
def get_user(email: str, store: ReviewStore = Depends(get_store)):
    u = store.get_user(email)
    if not u:
        raise ApiError(404)
    return UserLookupOut(user=_to_user_out(u))
