"""
test_vibe_scorer.py — Unit tests for spot vibe scoring and activity badges.

Run:
    pytest tests/test_vibe_scorer.py -v
"""

import pytest

from spotlive.services.vibe_scorer import (
    CALM_CEILING,
    HOT_THRESHOLD,
    LIKE_WEIGHT,
    MAX_SCORE,
    STORY_WEIGHT,
    classify_activity,
    compute_vibe_score,
    score_members,
)


# ── compute_vibe_score ───────────────────────────────────────────────────────

class TestComputeVibeScore:

    def test_canonical_weights(self):
        assert STORY_WEIGHT == 20
        assert LIKE_WEIGHT == 2

    def test_single_story_no_likes(self):
        """One story, zero likes → exactly STORY_WEIGHT."""
        assert compute_vibe_score(1, 0) == 20

    def test_five_stories_fifteen_likes_clamps(self):
        """5×20 + 15×2 = 130 → clamped to 100."""
        assert compute_vibe_score(5, 15) == 100

    def test_mixed_below_cap(self):
        assert compute_vibe_score(2, 3) == 2 * 20 + 3 * 2

    def test_empty_scores_zero(self):
        assert compute_vibe_score(0, 0) == 0

    def test_negative_inputs_floor_at_zero(self):
        assert compute_vibe_score(0, -50) == 0

    @pytest.mark.parametrize("count,likes", [(0, 0), (1, 0), (3, 7), (50, 500), (10_000, 0)])
    def test_score_bounded(self, count, likes):
        assert 0 <= compute_vibe_score(count, likes) <= MAX_SCORE

    def test_more_stories_never_lowers_score(self):
        for likes in range(0, 40, 5):
            for count in range(0, 8):
                assert compute_vibe_score(count + 1, likes) >= compute_vibe_score(count, likes)

    def test_more_likes_never_lowers_score(self):
        for count in range(0, 6):
            for likes in range(0, 60, 3):
                assert compute_vibe_score(count, likes + 1) >= compute_vibe_score(count, likes)

    def test_custom_weights(self):
        assert compute_vibe_score(1, 0, story_weight=10) == 10


# ── score_members ────────────────────────────────────────────────────────────

class TestScoreMembers:

    def test_sums_likes_across_members(self, make_post):
        members = [make_post("a", likes=3), make_post("b", likes=2)]
        assert score_members(members) == 2 * 20 + 5 * 2

    def test_single_member(self, make_post):
        assert score_members([make_post("a")]) == 20


# ── classify_activity ────────────────────────────────────────────────────────

class TestClassifyActivity:

    @pytest.mark.parametrize("score,expected", [
        (100, "HOT"),
        (40,  "HOT"),
        (39,  "ACTIVE"),
        (20,  "ACTIVE"),
        (11,  "ACTIVE"),
        (10,  "CALM"),
        (0,   "CALM"),
    ])
    def test_threshold_boundaries(self, score, expected):
        assert classify_activity(score) == expected

    def test_threshold_constants(self):
        assert HOT_THRESHOLD == 40
        assert CALM_CEILING == 10

    def test_lone_story_is_active(self):
        assert classify_activity(compute_vibe_score(1, 0)) == "ACTIVE"

    def test_saturated_spot_is_hot(self):
        assert classify_activity(compute_vibe_score(5, 15)) == "HOT"
