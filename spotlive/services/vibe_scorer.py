"""
vibe_scorer.py — Spot activity ("vibe") scoring.

score = min(100, stories × STORY_WEIGHT + likes × LIKE_WEIGHT)

The map badge and the trending sort both read the score, and the badge
colour depends on the exact HOT / ACTIVE / CALM boundaries, so every
number here is a named constant.

USAGE
─────
    from spotlive.services.vibe_scorer import compute_vibe_score, classify_activity

    score = compute_vibe_score(story_count=2, total_likes=10)   # → 60
    classify_activity(score)                                    # → "HOT"

Two story weights (10 and 20) circulated in earlier versions of the web
client; 20 is canonical here, so a lone story with no likes scores 20 and
reads as ACTIVE rather than CALM.

TESTING
────────
    pytest tests/test_vibe_scorer.py -v
"""

from __future__ import annotations

from typing import Iterable, Literal

from spotlive.models.story import Post

# ── Weights ───────────────────────────────────────────────────────────────────

STORY_WEIGHT = 20
LIKE_WEIGHT  = 2

MIN_SCORE = 0
MAX_SCORE = 100

# ── Activity thresholds ───────────────────────────────────────────────────────
# score >= HOT_THRESHOLD        → HOT     (e.g. 2 stories + 10 likes)
# CALM_CEILING < score < HOT    → ACTIVE
# score <= CALM_CEILING         → CALM

HOT_THRESHOLD = 40
CALM_CEILING  = 10

ActivityLevel = Literal["HOT", "ACTIVE", "CALM"]


def compute_vibe_score(
    story_count: int,
    total_likes: int,
    story_weight: int = STORY_WEIGHT,
    like_weight: int = LIKE_WEIGHT,
) -> int:
    """
    Return the vibe score for a spot with `story_count` stories carrying
    `total_likes` likes in total. Always an integer in [0, 100].
    """
    raw = story_count * story_weight + total_likes * like_weight
    return max(MIN_SCORE, min(MAX_SCORE, raw))


def score_members(
    members: Iterable[Post],
    story_weight: int = STORY_WEIGHT,
    like_weight: int = LIKE_WEIGHT,
) -> int:
    """Score a spot from its member posts. Negative like counts count as zero."""
    count = 0
    likes = 0
    for post in members:
        count += 1
        likes += max(0, post.like_count or 0)
    return compute_vibe_score(count, likes, story_weight, like_weight)


def classify_activity(score: int) -> ActivityLevel:
    """Map a vibe score to the HOT / ACTIVE / CALM badge."""
    if score >= HOT_THRESHOLD:
        return "HOT"
    if score > CALM_CEILING:
        return "ACTIVE"
    return "CALM"
