"""
story_store.py — MongoDB persistence for stories, likes and reports.

Collections
───────────
  stories        one document per story, _id is the story id
  story_likes    one document per (story_id, user_id)   ← unique index
  story_reports  one document per (story_id, user_id)   ← unique index

The unique indexes (created by scripts/seed_db.py) are what keep a user
from liking or reporting the same story twice when two requests race; the
code below treats a DuplicateKeyError as "already done".

Story document shape:
  {
    "_id": "story_1740000000000_a1b2c3d4e",
    "author_id": "u1", "author_name": "GlobalExplorer", "author_avatar_url": "...",
    "media_url": "...", "video_url": null, "caption": "Just vibing",
    "tags": ["#SpotLive"],
    "latitude": 9.515, "longitude": -13.71,
    "place_name": "Le Petit Bateau", "country_code": "GN",
    "created_at": 1740000000000, "expires_at": 1740086400000,   ← epoch ms
    "like_count": 0, "reports_count": 0,
    "is_hidden": false, "hidden_at": null, "hidden_reason": null
  }
"""

import logging
import uuid
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from spotlive.models.story import LikeResponse, Post, ReportResponse, StoryCreateRequest
from spotlive.services.expiry import DEFAULT_LIFETIME_HOURS, expires_at_for

logger = logging.getLogger(__name__)

STORIES = "stories"
LIKES = "story_likes"
REPORTS = "story_reports"

DEFAULT_REPORT_HIDE_THRESHOLD = 3


# ── Helpers ───────────────────────────────────────────────────────────────────

def _new_story_id(created_at: int) -> str:
    return f"story_{created_at}_{uuid.uuid4().hex[:9]}"


def _doc_to_post(doc: dict) -> Post:
    return Post(
        id=str(doc["_id"]),
        author_id=doc.get("author_id", ""),
        author_name=doc.get("author_name", ""),
        author_avatar_url=doc.get("author_avatar_url", ""),
        media_url=doc.get("media_url", ""),
        video_url=doc.get("video_url"),
        caption=doc.get("caption", ""),
        tags=doc.get("tags", []),
        latitude=doc["latitude"],
        longitude=doc["longitude"],
        place_name=doc.get("place_name", ""),
        country_code=doc.get("country_code"),
        created_at=doc["created_at"],
        expires_at=doc["expires_at"],
        like_count=max(0, doc.get("like_count", 0)),
        is_hidden=doc.get("is_hidden", False),
    )


# ── Reads ─────────────────────────────────────────────────────────────────────

def _active_query(now: int, country_code: Optional[str] = None) -> dict:
    query: dict = {"expires_at": {"$gt": now}, "is_hidden": {"$ne": True}}
    if country_code:
        query["country_code"] = country_code.upper()
    return query


async def list_active_stories(db, now: int, country_code: Optional[str] = None) -> list[Post]:
    """
    Stories that have not expired and are not hidden, newest first.

    Documents that fail Post validation are skipped with a warning rather
    than failing the whole feed.
    """
    query = _active_query(now, country_code)

    posts = []
    async for doc in db[STORIES].find(query).sort("created_at", -1):
        try:
            posts.append(_doc_to_post(doc))
        except Exception as exc:
            logger.warning("Skipping malformed story doc %s: %s", doc.get("_id"), exc)
    return posts


async def count_active_stories(db, now: int) -> int:
    return await db[STORIES].count_documents(_active_query(now))


async def get_story(db, story_id: str) -> Optional[dict]:
    return await db[STORIES].find_one({"_id": story_id})


# ── Writes ────────────────────────────────────────────────────────────────────

async def create_story(
    db,
    payload: StoryCreateRequest,
    now: int,
    lifetime_hours: float = DEFAULT_LIFETIME_HOURS,
) -> Post:
    """Insert a new story that expires `lifetime_hours` after `now`."""
    doc = {
        **payload.model_dump(),
        "_id": _new_story_id(now),
        "country_code": payload.country_code.upper() if payload.country_code else None,
        "created_at": now,
        "expires_at": expires_at_for(now, lifetime_hours),
        "like_count": 0,
        "reports_count": 0,
        "is_hidden": False,
        "hidden_at": None,
        "hidden_reason": None,
    }
    await db[STORIES].insert_one(doc)
    logger.info("Story %s created at %s by %s", doc["_id"], payload.place_name, payload.author_id)
    return _doc_to_post(doc)


async def delete_story(db, story_id: str) -> None:
    """Delete a story together with its like and report records."""
    await db[STORIES].delete_one({"_id": story_id})
    await db[LIKES].delete_many({"story_id": story_id})
    await db[REPORTS].delete_many({"story_id": story_id})
    logger.info("Story %s deleted", story_id)


async def toggle_like(db, story_id: str, user_id: str) -> Optional[LikeResponse]:
    """
    Like the story if `user_id` has not liked it yet, unlike it otherwise.

    Returns None when the story does not exist. The like count is only
    decremented while it is positive, so it never drops below zero.
    """
    story = await get_story(db, story_id)
    if story is None:
        return None

    key = {"story_id": story_id, "user_id": user_id}
    existing = await db[LIKES].find_one(key)

    if existing is None:
        try:
            await db[LIKES].insert_one(dict(key))
        except DuplicateKeyError:
            # A concurrent request recorded the like first.
            return LikeResponse(story_id=story_id, liked=True,
                                like_count=max(0, story.get("like_count", 0)))
        updated = await db[STORIES].find_one_and_update(
            {"_id": story_id},
            {"$inc": {"like_count": 1}},
            return_document=ReturnDocument.AFTER,
        )
        liked = True
    else:
        await db[LIKES].delete_one(key)
        updated = await db[STORIES].find_one_and_update(
            {"_id": story_id, "like_count": {"$gt": 0}},
            {"$inc": {"like_count": -1}},
            return_document=ReturnDocument.AFTER,
        )
        liked = False

    # No match on unlike means the count was already zero.
    count = updated.get("like_count", 0) if updated is not None else 0
    return LikeResponse(story_id=story_id, liked=liked, like_count=max(0, count))


async def report_story(
    db,
    story_id: str,
    user_id: str,
    reason: str,
    now: int,
    hide_threshold: int = DEFAULT_REPORT_HIDE_THRESHOLD,
) -> Optional[ReportResponse]:
    """
    Record one report per (story, user) and hide the story once it has
    `hide_threshold` reports. Returns None when the story does not exist.
    """
    story = await get_story(db, story_id)
    if story is None:
        return None

    key = {"story_id": story_id, "user_id": user_id}
    already_reported = await db[REPORTS].find_one(key) is not None
    if not already_reported:
        try:
            await db[REPORTS].insert_one({**key, "reason": reason, "created_at": now})
        except DuplicateKeyError:
            already_reported = True

    if already_reported:
        return ReportResponse(
            story_id=story_id,
            reports_count=story.get("reports_count", 0),
            is_hidden=story.get("is_hidden", False),
            already_reported=True,
        )

    updated = await db[STORIES].find_one_and_update(
        {"_id": story_id},
        {"$inc": {"reports_count": 1}},
        return_document=ReturnDocument.AFTER,
    ) or story
    count = updated.get("reports_count", 0)
    hidden = updated.get("is_hidden", False)

    if count >= hide_threshold and not hidden:
        await db[STORIES].update_one(
            {"_id": story_id},
            {"$set": {
                "is_hidden": True,
                "hidden_at": now,
                "hidden_reason": f"Auto-hidden: {count} reports",
            }},
        )
        hidden = True
        logger.info("Story %s hidden after %d reports", story_id, count)

    return ReportResponse(story_id=story_id, reports_count=count, is_hidden=hidden)
