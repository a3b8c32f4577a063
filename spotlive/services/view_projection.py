"""
view_projection.py — Ordering and tag filtering of spot lists.

Sort mode and tag filter are independent: the sort only reorders (every
spot is kept), the tag filter only removes. Both sorts are stable, so a
client re-rendering the same spot list gets the same order every time.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from spotlive.models.spot import GeoPoint, SortMode, Spot
from spotlive.models.story import Post
from spotlive.services.neighborhoods import degree_distance

logger = logging.getLogger(__name__)

# Filter value that disables tag filtering (the "All" pill in the client).
SHOW_ALL = "All"


def _tag_matches(tags: Iterable[str], needle: str) -> bool:
    return any(needle in tag.lower() for tag in tags)


def _normalise_filter(tag_filter: Optional[str]) -> Optional[str]:
    if tag_filter is None:
        return None
    needle = tag_filter.strip().lower()
    if not needle or needle == SHOW_ALL.lower():
        return None
    return needle


def filter_spots_by_tag(spots: Iterable[Spot], tag_filter: Optional[str]) -> list[Spot]:
    """
    Keep spots where at least one member tag contains `tag_filter`
    (case-insensitive substring). None, "" and "All" keep everything.
    """
    needle = _normalise_filter(tag_filter)
    if needle is None:
        return list(spots)
    return [s for s in spots if any(_tag_matches(p.tags, needle) for p in s.members)]


def filter_posts_by_tag(posts: Iterable[Post], tag_filter: Optional[str]) -> list[Post]:
    """Same matching rule as filter_spots_by_tag, applied to individual stories."""
    needle = _normalise_filter(tag_filter)
    if needle is None:
        return list(posts)
    return [p for p in posts if _tag_matches(p.tags, needle)]


def sort_by_proximity(spots: Sequence[Spot], reference: Optional[GeoPoint]) -> list[Spot]:
    """Closest centroid first. Without a reference point the order is kept."""
    if reference is None:
        return list(spots)
    return sorted(
        spots,
        key=lambda s: degree_distance(s.centroid_latitude, s.centroid_longitude,
                                      reference.lat, reference.lng),
    )


def sort_by_vibe(spots: Sequence[Spot]) -> list[Spot]:
    """Highest vibe score first; equal scores keep their relative order."""
    return sorted(spots, key=lambda s: -s.vibe_score)


def project_view(
    spots: Sequence[Spot],
    mode: SortMode = SortMode.ALL,
    reference_point: Optional[GeoPoint] = None,
    tag_filter: Optional[str] = None,
) -> list[Spot]:
    """
    Produce the spot list a client displays.

    ALL keeps clustering order, NEAR orders by distance to
    `reference_point` (falling back to clustering order when it is
    missing), TRENDING orders by vibe score. The tag filter is applied
    first and never affects relative order.
    """
    visible = filter_spots_by_tag(spots, tag_filter)

    if mode == SortMode.NEAR:
        if reference_point is None:
            logger.debug("Proximity view requested without a reference point")
        return sort_by_proximity(visible, reference_point)
    if mode == SortMode.TRENDING:
        return sort_by_vibe(visible)
    return visible
