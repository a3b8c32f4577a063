"""
spot.py — Pydantic models for spots and the spot views.

A Spot is derived data: it only exists as the output of one clustering
pass and is rebuilt from scratch whenever the story set changes. Nothing
here is ever written to MongoDB.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from spotlive.models.story import Post
from spotlive.services.vibe_scorer import ActivityLevel, classify_activity


class SortMode(str, Enum):
    """Ordering applied by the view projection."""

    ALL = "all"             # clustering order
    NEAR = "near"           # closest centroid first
    TRENDING = "trending"   # highest vibe score first


class GeoPoint(BaseModel):
    """A reference location, usually the user's position."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Spot(BaseModel):
    """A spatial cluster of active stories."""

    id: str
    name: str                  # anchor story's place name
    neighborhood_label: str
    centroid_latitude: float
    centroid_longitude: float
    members: list[Post]        # most liked, then most recent, first
    vibe_score: int = Field(..., ge=0, le=100)
    description: str = ""

    @computed_field
    @property
    def activity_level(self) -> ActivityLevel:
        return classify_activity(self.vibe_score)

    @computed_field
    @property
    def story_count(self) -> int:
        return len(self.members)


class NeighborhoodLabel(BaseModel):
    """A named point drawn on the map (static or derived from spot centroids)."""

    name: str
    lat: float
    lng: float


class SpotsResponse(BaseModel):
    """Response body for GET /api/v1/spots."""

    spots: list[Spot]
    sort: SortMode
    tag: Optional[str] = None
    total_stories: int
    generated_at: int   # epoch ms the expiry filter ran with
