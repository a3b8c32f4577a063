"""
stories.py — Story CRUD, likes and reports.

Routes:
  GET    /api/v1/stories                 — active stories, newest first (?tag=, ?country=)
  POST   /api/v1/stories                 — publish a story (rate limited)
  DELETE /api/v1/stories/{id}            — author-only delete (?author_id=)
  POST   /api/v1/stories/{id}/like       — toggle the caller's like
  POST   /api/v1/stories/{id}/report     — report; auto-hides at the threshold (rate limited)

Identity is out of scope for this service: callers pass author_id /
user_id explicitly and the auth layer in front of it is trusted to have
checked them.

TESTING
─────────────────────
  pytest tests/test_stories.py -v
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from spotlive.core.config import settings
from spotlive.core.database import get_db
from spotlive.core.rate_limit import limiter
from spotlive.models.story import (
    LikeRequest,
    LikeResponse,
    Post,
    ReportRequest,
    ReportResponse,
    StoryCreateRequest,
    StoryListResponse,
)
from spotlive.services import story_store
from spotlive.services.expiry import filter_active, now_ms
from spotlive.services.view_projection import filter_posts_by_tag

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/stories", tags=["stories"])


def _require_db(db):
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return db


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=StoryListResponse)
async def list_stories(
    tag: Optional[str] = Query(default=None, description="Tag substring filter ('All' disables)"),
    country: Optional[str] = Query(default=None, min_length=2, max_length=2),
    db=Depends(get_db),
):
    """Return the active, non-hidden stories for the feed."""
    if db is None:
        return StoryListResponse(items=[], total=0)

    now = now_ms()
    try:
        posts = await story_store.list_active_stories(db, now, country)
    except Exception as exc:
        logger.warning("Story list query failed: %s", exc)
        posts = []

    items = filter_posts_by_tag(filter_active(posts, now), tag)
    return StoryListResponse(items=items, total=len(items))


@router.post("", response_model=Post, status_code=201)
@limiter.limit(settings.create_story_rate_limit)
async def create_story(request: Request, payload: StoryCreateRequest, db=Depends(get_db)):
    """Publish a story. It expires settings.story_lifetime_hours from now."""
    db = _require_db(db)
    return await story_store.create_story(
        db, payload, now_ms(), lifetime_hours=settings.story_lifetime_hours,
    )


@router.delete("/{story_id}", status_code=204)
async def delete_story(
    story_id: str,
    author_id: str = Query(..., min_length=1),
    db=Depends(get_db),
):
    """Delete a story. Only its author may do so."""
    db = _require_db(db)
    story = await story_store.get_story(db, story_id)
    if story is None:
        raise HTTPException(status_code=404, detail="Story not found")
    if story.get("author_id") != author_id:
        raise HTTPException(status_code=403, detail="Only the author can delete this story")

    await story_store.delete_story(db, story_id)
    return Response(status_code=204)


@router.post("/{story_id}/like", response_model=LikeResponse)
async def toggle_like(story_id: str, payload: LikeRequest, db=Depends(get_db)):
    """Like the story, or remove the like if the user already liked it."""
    db = _require_db(db)
    result = await story_store.toggle_like(db, story_id, payload.user_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Story not found")
    return result


@router.post("/{story_id}/report", response_model=ReportResponse)
@limiter.limit(settings.report_story_rate_limit)
async def report_story(request: Request, story_id: str, payload: ReportRequest, db=Depends(get_db)):
    """Report a story. Repeat reports from the same user are not counted."""
    db = _require_db(db)
    result = await story_store.report_story(
        db,
        story_id,
        payload.user_id,
        payload.reason,
        now_ms(),
        hide_threshold=settings.report_hide_threshold,
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Story not found")
    return result
