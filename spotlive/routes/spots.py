"""
spots.py — Spot views over the active stories.

Routes:
  GET  /api/v1/spots                — clustered, scored and ordered spots
  GET  /api/v1/spots/neighborhoods  — map labels (known + derived neighborhoods)
  WS   /api/v1/spots/stream         — live spot snapshots

Every request recomputes spots from the stories currently in MongoDB;
nothing is cached between requests, so a like or a new story is visible
on the next call.

Query parameters for GET /api/v1/spots:
  sort     all | near | trending        (default all)
  lat,lng  reference point for sort=near; without both, near keeps clustering order
  tag      tag substring filter; "All" disables it
  country  ISO 3166-1 alpha-2 story filter
  city     fallback neighborhood label for spots outside the known table

TESTING
─────────────────────
  pytest tests/test_spots.py -v

  curl "http://localhost:8000/api/v1/spots?sort=trending"
  curl "http://localhost:8000/api/v1/spots?sort=near&lat=9.52&lng=-13.70&tag=beach"
"""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from spotlive.core.config import settings
from spotlive.core.database import get_db
from spotlive.models.spot import GeoPoint, NeighborhoodLabel, SortMode, Spot, SpotsResponse
from spotlive.models.story import Post
from spotlive.services import story_store
from spotlive.services.clustering import compute_spots, neighborhood_labels
from spotlive.services.expiry import filter_active, now_ms
from spotlive.services.feed import SpotFeed, StoryLoader, engine_options
from spotlive.services.view_projection import project_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/spots", tags=["spots"])


async def _load_stories(db, now: int, country: Optional[str]) -> list[Post]:
    """Active stories from the store, or [] when the DB is down or failing."""
    if db is None:
        return []
    try:
        return await story_store.list_active_stories(db, now, country)
    except Exception as exc:
        logger.warning("Spot story query failed: %s", exc)
        return []


def _reference_point(lat: Optional[float], lng: Optional[float]) -> Optional[GeoPoint]:
    if lat is None or lng is None:
        return None
    return GeoPoint(lat=lat, lng=lng)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("", response_model=SpotsResponse)
async def get_spots(
    sort: SortMode = Query(default=SortMode.ALL),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    tag: Optional[str] = Query(default=None, max_length=100),
    country: Optional[str] = Query(default=None, min_length=2, max_length=2),
    city: Optional[str] = Query(default=None, max_length=100),
    db=Depends(get_db),
):
    """Cluster the active stories into spots and return them in the requested order."""
    now = now_ms()
    active = filter_active(await _load_stories(db, now, country), now)
    spots = compute_spots(active, **engine_options(city))
    view = project_view(spots, sort, _reference_point(lat, lng), tag)

    return SpotsResponse(
        spots=view,
        sort=sort,
        tag=tag,
        total_stories=len(active),
        generated_at=now,
    )


@router.get("/neighborhoods", response_model=list[NeighborhoodLabel])
async def get_neighborhoods(
    country: Optional[str] = Query(default=None, min_length=2, max_length=2),
    city: Optional[str] = Query(default=None, max_length=100),
    db=Depends(get_db),
):
    """Known neighborhood centres plus labels derived from current spots."""
    now = now_ms()
    active = filter_active(await _load_stories(db, now, country), now)
    return neighborhood_labels(compute_spots(active, **engine_options(city)))


# ── WebSocket live feed ────────────────────────────────────────────────────────

def _story_loader(db, country: Optional[str]) -> StoryLoader:
    """
    Loader for SpotFeed. Store errors propagate so a failed refresh keeps
    the feed's previous snapshot instead of publishing an empty list.
    """
    async def load() -> list[Post]:
        if db is None:
            return []
        return await story_store.list_active_stories(db, now_ms(), country)

    return load


@router.websocket("/stream")
async def spot_stream(
    websocket: WebSocket,
    sort: SortMode = Query(default=SortMode.ALL),
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    tag: Optional[str] = Query(default=None, max_length=100),
    country: Optional[str] = Query(default=None, min_length=2, max_length=2),
    city: Optional[str] = Query(default=None, max_length=100),
    db=Depends(get_db),
):
    """
    Push the projected spot list on connect and whenever it changes.

    Out-of-range query parameters close the socket with 1008 before accept.

    Message format (JSON string):
      {
        "type":      "spots",
        "spots":     [ ...Spot... ],
        "timestamp": "2026-02-21T18:00:00+00:00"
      }
    """
    await websocket.accept()
    reference = _reference_point(lat, lng)

    async def publish(spots: list[Spot]) -> None:
        view = project_view(spots, sort, reference, tag)
        payload = {
            "type":      "spots",
            "spots":     [s.model_dump(mode="json") for s in view],
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        }
        await websocket.send_text(json.dumps(payload))

    feed = SpotFeed(
        _story_loader(db, country),
        default_label=city,
        sweep_interval=settings.expiry_sweep_seconds,
        refresh_interval=settings.refresh_interval_seconds,
    )
    try:
        await feed.run(publish)
    except WebSocketDisconnect:
        logger.info("Spot stream client disconnected")
    except Exception as exc:
        logger.warning("Spot stream error: %s", exc)
