"""
story.py — Pydantic schemas for stories (called "posts" inside the spot engine).

Post               — a single geotagged, time-limited story as the engine sees it
StoryCreateRequest — what the client sends to publish a story
StoryListResponse  — active stories for the feed
LikeRequest / LikeResponse     — like toggle
ReportRequest / ReportResponse — moderation report

Timestamps are epoch milliseconds, the unit the web client and the
expiry sweep both work in.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


# ── Post ──────────────────────────────────────────────────────────────────────

class Post(BaseModel):
    """
    A story as supplied by the story store.

    Immutable once created except for like_count (changed by the like
    subsystem) and is_hidden (set by moderation). Posts that break the
    expires_at > created_at contract, or carry non-finite coordinates, are
    rejected here; the engine additionally skips any that slip through
    without validation.
    """

    id: str
    author_id: str

    latitude:  float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)

    created_at: int   # epoch ms
    expires_at: int   # epoch ms, strictly after created_at

    place_name: str = ""
    like_count: int = Field(default=0, ge=0)
    tags: list[str] = Field(default_factory=list)
    is_hidden: bool = False

    # ── Display fields (opaque to the engine) ─────────────────────────────────
    author_name:       str = ""
    author_avatar_url: str = ""
    media_url:         str = ""
    video_url:         Optional[str] = None
    caption:           str = ""
    country_code:      Optional[str] = None   # ISO 3166-1 alpha-2, e.g. "GN"

    @model_validator(mode="after")
    def _check_lifetime(self) -> "Post":
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        return self


# ── Requests ──────────────────────────────────────────────────────────────────

class StoryCreateRequest(BaseModel):
    """Payload for POST /api/v1/stories. The server stamps created_at / expires_at."""

    author_id: str = Field(..., min_length=1, max_length=128)
    author_name: str = Field(default="", max_length=64)
    author_avatar_url: str = Field(default="", max_length=2000)

    media_url: str = Field(..., min_length=1, max_length=3000)
    video_url: Optional[str] = Field(default=None, max_length=3000)
    caption: str = Field(default="Just vibing", max_length=500)
    tags: list[str] = Field(default_factory=lambda: ["#SpotLive"], max_length=20)

    latitude:  float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    place_name: str = Field(..., min_length=1, max_length=200)
    country_code: Optional[str] = Field(default=None, min_length=2, max_length=2)


class LikeRequest(BaseModel):
    """Payload for POST /api/v1/stories/{id}/like."""
    user_id: str = Field(..., min_length=1, max_length=128)


class ReportRequest(BaseModel):
    """Payload for POST /api/v1/stories/{id}/report."""
    user_id: str = Field(..., min_length=1, max_length=128)
    reason: str = Field(default="inappropriate", min_length=3, max_length=200)


# ── Responses ─────────────────────────────────────────────────────────────────

class StoryListResponse(BaseModel):
    items: list[Post]
    total: int


class LikeResponse(BaseModel):
    story_id: str
    liked: bool        # state after the toggle
    like_count: int


class ReportResponse(BaseModel):
    story_id: str
    reports_count: int
    is_hidden: bool
    already_reported: bool = False
