"""Tests for point hit-testing."""

import random

import pytest

from docview.models import NormalizedBox
from docview.viewer import RegionIndex


def _box(uid, x, y, w, h):
    return NormalizedBox(uid=uid, x=x, y=y, w=w, h=h, area=w * h)


class TestRegionIndex:
    """Tests for RegionIndex.pick and friends."""

    @pytest.fixture
    def index(self, page_one):
        return RegionIndex.build(page_one, page_key="ledger_page_1")

    def test_build_keeps_accepted_boxes(self, index):
        assert len(index) == 3
        assert index.uids == frozenset({"0-0", "1-0", "1-2"})
        assert {r.uid for r in index.rejections} == {"0-1", "1-1"}

    def test_boxes_sorted_by_area(self, index):
        assert [b.uid for b in index.boxes] == ["0-0", "1-2", "1-0"]

    def test_smallest_containing_box_wins(self, index):
        """Overlapping boxes resolve to the most specific line."""
        assert index.pick(0.2, 0.03) == "0-0"

    def test_only_larger_box_contains_point(self, index):
        assert index.pick(0.5, 0.05) == "1-0"

    def test_miss_returns_none(self, index):
        assert index.pick(0.9, 0.9) is None

    def test_edges_inclusive(self):
        index = RegionIndex([_box("a", 0.25, 0.25, 0.5, 0.25)])
        assert index.pick(0.25, 0.25) == "a"
        assert index.pick(0.75, 0.5) == "a"
        assert index.pick(0.7501, 0.5) is None

    def test_equal_area_keeps_reading_order(self):
        index = RegionIndex([
            _box("first", 0.1, 0.1, 0.2, 0.1),
            _box("second", 0.1, 0.1, 0.1, 0.2),
        ])
        assert index.pick(0.15, 0.15) == "first"

    def test_empty_index_never_hits(self):
        index = RegionIndex.empty()
        assert index.pick(0.5, 0.5) is None
        assert RegionIndex.build(None) == index

    def test_box_for(self, index):
        assert index.box_for("1-2").x == pytest.approx(0.4)
        assert index.box_for("0-1") is None
        assert index.box_for(None) is None
        assert "1-2" in index

    def test_rebuild_is_equal(self, page_one):
        assert RegionIndex.build(page_one) == RegionIndex.build(page_one)

    def test_pick_agrees_with_brute_force(self):
        """pick returns a containing box with the minimum area."""
        rng = random.Random(3)
        boxes = []
        for n in range(40):
            w, h = rng.uniform(0.01, 0.5), rng.uniform(0.01, 0.2)
            boxes.append(_box(f"b{n}", rng.uniform(0, 1 - w), rng.uniform(0, 1 - h), w, h))
        index = RegionIndex(boxes)

        for _ in range(300):
            u, v = rng.random(), rng.random()
            hits = [b for b in boxes if b.contains(u, v)]
            uid = index.pick(u, v)
            if not hits:
                assert uid is None
            else:
                assert index.box_for(uid).area == min(b.area for b in hits)
