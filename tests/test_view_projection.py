"""
test_view_projection.py — Unit tests for spot ordering and tag filtering.

Run:
    pytest tests/test_view_projection.py -v
"""

import pytest

from spotlive.models.spot import GeoPoint, SortMode, Spot
from spotlive.services.view_projection import (
    SHOW_ALL,
    filter_posts_by_tag,
    filter_spots_by_tag,
    project_view,
)


@pytest.fixture()
def make_spot(make_post):
    def _make(spot_id, lat, lng, score, tags=None):
        return Spot(
            id=spot_id,
            name=spot_id,
            neighborhood_label="World",
            centroid_latitude=lat,
            centroid_longitude=lng,
            members=[make_post(f"{spot_id}_p", lat, lng, tags=tags or ["#SpotLive"])],
            vibe_score=score,
        )
    return _make


@pytest.fixture()
def spots(make_spot):
    return [
        make_spot("far", 9.700, -13.500, 20, ["#Concert"]),
        make_spot("near", 9.516, -13.711, 40, ["#beach", "#sunset"]),
        make_spot("mid", 9.560, -13.680, 40, ["#Food"]),
        make_spot("calm", 9.600, -13.650, 10, ["#chill"]),
    ]


def _ids(spots):
    return [s.id for s in spots]


class TestUnfiltered:

    def test_preserves_order(self, spots):
        assert _ids(project_view(spots, SortMode.ALL)) == ["far", "near", "mid", "calm"]

    def test_returns_new_list(self, spots):
        result = project_view(spots, SortMode.ALL)
        assert result == spots and result is not spots


class TestProximity:

    def test_sorted_by_distance(self, spots):
        ref = GeoPoint(lat=9.515, lng=-13.710)
        assert _ids(project_view(spots, SortMode.NEAR, ref)) == ["near", "mid", "calm", "far"]

    def test_missing_reference_keeps_order(self, spots):
        assert _ids(project_view(spots, SortMode.NEAR, None)) == ["far", "near", "mid", "calm"]

    def test_all_spots_included(self, spots):
        ref = GeoPoint(lat=0, lng=0)
        assert sorted(_ids(project_view(spots, SortMode.NEAR, ref))) == sorted(_ids(spots))


class TestTrending:

    def test_sorted_by_score_desc_stable(self, spots):
        """near and mid tie at 40 and keep their relative order."""
        assert _ids(project_view(spots, SortMode.TRENDING)) == ["near", "mid", "far", "calm"]

    def test_repeatable(self, spots):
        first = project_view(spots, SortMode.TRENDING)
        second = project_view(spots, SortMode.TRENDING)
        assert _ids(first) == _ids(second)

    def test_empty(self):
        assert project_view([], SortMode.TRENDING) == []


class TestTagFilter:

    def test_case_insensitive_substring(self, spots):
        assert _ids(filter_spots_by_tag(spots, "BEACH")) == ["near"]
        assert _ids(filter_spots_by_tag(spots, "o")) == ["far", "mid"]

    @pytest.mark.parametrize("value", [None, "", SHOW_ALL, "all", "  All "])
    def test_show_all_disables_filter(self, spots, value):
        assert _ids(filter_spots_by_tag(spots, value)) == _ids(spots)

    def test_no_match_gives_empty(self, spots):
        assert filter_spots_by_tag(spots, "#nothing") == []

    def test_combined_with_trending(self, spots):
        result = project_view(spots, SortMode.TRENDING, tag_filter="#c")
        assert _ids(result) == ["far", "calm"]

    def test_filter_posts(self, make_post):
        posts = [
            make_post("a", tags=["#Beach"]),
            make_post("b", tags=["#food"]),
            make_post("c", tags=[]),
        ]
        assert [p.id for p in filter_posts_by_tag(posts, "beach")] == ["a"]
        assert [p.id for p in filter_posts_by_tag(posts, SHOW_ALL)] == ["a", "b", "c"]
