"""
neighborhoods.py — Known neighborhood centres and label resolution.

The web client launched in Conakry, so the built-in table lists its
communes. A spot whose centroid falls within NEIGHBORHOOD_RADIUS_DEG of a
centre takes that centre's name; everything else gets the caller's default
label (normally the city the user is browsing).
"""

from __future__ import annotations

import math
from typing import Sequence

from spotlive.models.spot import NeighborhoodLabel

# ≈2.5 km at Conakry's latitude
NEIGHBORHOOD_RADIUS_DEG = 0.025

KNOWN_NEIGHBORHOODS: tuple[NeighborhoodLabel, ...] = (
    NeighborhoodLabel(name="Kaloum",   lat=9.515, lng=-13.710),
    NeighborhoodLabel(name="Dixinn",   lat=9.545, lng=-13.690),
    NeighborhoodLabel(name="Taouyah",  lat=9.580, lng=-13.680),
    NeighborhoodLabel(name="Ratoma",   lat=9.605, lng=-13.650),
    NeighborhoodLabel(name="Kipe",     lat=9.620, lng=-13.630),
    NeighborhoodLabel(name="Lambanyi", lat=9.635, lng=-13.610),
)


def degree_distance(lat_a: float, lng_a: float, lat_b: float, lng_b: float) -> float:
    """
    Euclidean distance on raw degrees.

    Not a great-circle distance; at the sub-kilometre scale spots are built
    on the error is negligible and the comparison stays cheap.
    """
    return math.hypot(lat_a - lat_b, lng_a - lng_b)


def resolve_neighborhood(
    lat: float,
    lng: float,
    default_label: str,
    known: Sequence[NeighborhoodLabel] = KNOWN_NEIGHBORHOODS,
    radius: float = NEIGHBORHOOD_RADIUS_DEG,
) -> str:
    """Name of the first known centre within `radius`, else `default_label`."""
    for place in known:
        if degree_distance(place.lat, place.lng, lat, lng) < radius:
            return place.name
    return default_label
