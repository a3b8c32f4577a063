"""
clustering.py — Spatial clustering of active stories into spots.

HOW A SPOT IS FORMED
────────────────────
Stories are visited once, in input order. Each story is compared with the
*anchor* (first member) of every cluster formed so far, using Euclidean
distance on raw degrees. The first cluster whose anchor is closer than
CLUSTER_THRESHOLD_DEG takes the story; if none does, the story anchors a
new cluster.

Only anchors are compared, never every member, so the result depends on
input order: A–B–C strung out 0.001° apart yields {A, B} and {C} when A
comes first, but a single {B, A, C}-style spot when B comes first. Output
for a given input order is fully reproducible.

Each cluster then becomes a Spot:
  centroid            mean of every member's coordinates
  id                  spot_<place slug>_<lat key>_<lng key> from the anchor
  members             most liked first, ties broken by most recent
  neighborhood_label  nearest known neighborhood or the caller's default
  vibe_score          see vibe_scorer.py

USAGE
─────
    from spotlive.services.expiry import filter_active
    from spotlive.services.clustering import compute_spots

    spots = compute_spots(filter_active(posts, now), default_label="Conakry")

TESTING
────────
    pytest tests/test_clustering.py -v
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from spotlive.models.spot import NeighborhoodLabel, Spot
from spotlive.models.story import Post
from spotlive.services.expiry import is_well_formed
from spotlive.services.neighborhoods import (
    KNOWN_NEIGHBORHOODS,
    NEIGHBORHOOD_RADIUS_DEG,
    degree_distance,
    resolve_neighborhood,
)
from spotlive.services.vibe_scorer import LIKE_WEIGHT, STORY_WEIGHT, score_members

logger = logging.getLogger(__name__)

# ≈150–200 m at city scale
CLUSTER_THRESHOLD_DEG = 0.0015

DEFAULT_LABEL = "World"

_NON_ALNUM = re.compile(r"[^a-z0-9]")


# ── Clustering ────────────────────────────────────────────────────────────────

def cluster_posts(
    posts: Iterable[Post],
    threshold: float = CLUSTER_THRESHOLD_DEG,
) -> list[list[Post]]:
    """
    Partition posts into clusters by anchor distance.

    Returns clusters in formation order, each holding its posts in
    assignment order (the anchor is always element 0). Hidden and
    malformed posts are skipped, so every returned cluster is non-empty
    and every eligible post lands in exactly one cluster.
    """
    clusters: list[list[Post]] = []
    for post in posts:
        if post.is_hidden or not is_well_formed(post):
            logger.debug("Skipping story %s during clustering", post.id)
            continue
        for cluster in clusters:
            anchor = cluster[0]
            if degree_distance(anchor.latitude, anchor.longitude,
                               post.latitude, post.longitude) < threshold:
                cluster.append(post)
                break
        else:
            clusters.append([post])
    return clusters


# ── Spot construction ─────────────────────────────────────────────────────────

def _coord_key(value: float) -> str:
    # Thousandths of a degree; "m" marks the southern / western hemisphere.
    key = round(value * 1000)
    return f"m{-key}" if key < 0 else str(key)


def spot_id_for(anchor: Post) -> str:
    """
    Identifier derived from the anchor story.

    Two anchors always sit at least one threshold apart, which is wider
    than the rounding step, so distinct clusters get distinct coordinate
    keys unless the threshold is configured below ~0.0015°.
    """
    slug = _NON_ALNUM.sub("", anchor.place_name.lower()) or "spot"
    return f"spot_{slug}_{_coord_key(anchor.latitude)}_{_coord_key(anchor.longitude)}"


def sort_members(members: Iterable[Post]) -> list[Post]:
    """Most liked first; among equal likes, the most recent first."""
    return sorted(members, key=lambda p: (-p.like_count, -p.created_at))


def build_spot(
    cluster: Sequence[Post],
    spot_id: str,
    default_label: str = DEFAULT_LABEL,
    known: Sequence[NeighborhoodLabel] = KNOWN_NEIGHBORHOODS,
    neighborhood_radius: float = NEIGHBORHOOD_RADIUS_DEG,
    story_weight: int = STORY_WEIGHT,
    like_weight: int = LIKE_WEIGHT,
) -> Spot:
    """Turn one non-empty cluster into a scored Spot."""
    count = len(cluster)
    lat = sum(p.latitude for p in cluster) / count
    lng = sum(p.longitude for p in cluster) / count

    return Spot(
        id=spot_id,
        name=cluster[0].place_name,
        neighborhood_label=resolve_neighborhood(lat, lng, default_label, known, neighborhood_radius),
        centroid_latitude=lat,
        centroid_longitude=lng,
        members=sort_members(cluster),
        vibe_score=score_members(cluster, story_weight, like_weight),
    )


def compute_spots(
    posts: Iterable[Post],
    *,
    default_label: str = DEFAULT_LABEL,
    known: Sequence[NeighborhoodLabel] = KNOWN_NEIGHBORHOODS,
    threshold: float = CLUSTER_THRESHOLD_DEG,
    neighborhood_radius: float = NEIGHBORHOOD_RADIUS_DEG,
    story_weight: int = STORY_WEIGHT,
    like_weight: int = LIKE_WEIGHT,
) -> list[Spot]:
    """
    Cluster and score `posts` in one pass. Never raises; no posts → no spots.

    Expected input is the output of filter_active(). When two clusters
    still derive the same id, later ones get a _2, _3, … suffix in
    formation order so ids stay unique and deterministic.
    """
    spots: list[Spot] = []
    seen: dict[str, int] = {}
    for cluster in cluster_posts(posts, threshold):
        base_id = spot_id_for(cluster[0])
        seen[base_id] = seen.get(base_id, 0) + 1
        spot_id = base_id if seen[base_id] == 1 else f"{base_id}_{seen[base_id]}"
        spots.append(build_spot(
            cluster,
            spot_id,
            default_label=default_label,
            known=known,
            neighborhood_radius=neighborhood_radius,
            story_weight=story_weight,
            like_weight=like_weight,
        ))
    return spots


# ── Lookups used by the map ───────────────────────────────────────────────────

def index_spots_by_story(spots: Iterable[Spot]) -> dict[str, Spot]:
    """Map every member story id to the spot that holds it."""
    return {post.id: spot for spot in spots for post in spot.members}


def neighborhood_labels(
    spots: Iterable[Spot],
    known: Sequence[NeighborhoodLabel] = KNOWN_NEIGHBORHOODS,
) -> list[NeighborhoodLabel]:
    """
    Map labels: every known neighborhood, plus one label per other
    neighborhood name in use, placed at the mean centroid of its spots.
    """
    labels = list(known)
    known_names = {place.name for place in known}

    groups: dict[str, list[Spot]] = {}
    for spot in spots:
        if spot.neighborhood_label not in known_names:
            groups.setdefault(spot.neighborhood_label, []).append(spot)

    for name, group in groups.items():
        labels.append(NeighborhoodLabel(
            name=name,
            lat=sum(s.centroid_latitude for s in group) / len(group),
            lng=sum(s.centroid_longitude for s in group) / len(group),
        ))
    return labels
