"""Tests for line box normalization."""

import logging
import math
import random

import pytest

from docview.config import GeometryThresholds
from docview.models import NormalizedBox, PageTranscription
from docview.viewer.normalize import (
    BAD_PAGE_SIZE,
    DEGENERATE,
    DUPLICATE_UID,
    FULL_EXTENT,
    MALFORMED,
    MISSING_BBOX,
    NON_FINITE,
    PAGE_SIZED,
    TOO_LARGE,
    TOO_TALL,
    WIDE_AND_TALL,
    Rejection,
    normalize_bbox,
    normalize_page,
)
from docview.viewer.region_index import RegionIndex


class TestNormalizeBbox:
    """Tests for single-box normalization."""

    def test_line_box_example(self):
        """A typical line box maps onto the unit square and is kept."""
        box = normalize_bbox("0-0", (100, 50, 300, 90), 1000, 2000)

        assert isinstance(box, NormalizedBox)
        assert box.x == pytest.approx(0.10)
        assert box.y == pytest.approx(0.025)
        assert box.w == pytest.approx(0.20)
        assert box.h == pytest.approx(0.02)
        assert box.area == pytest.approx(0.004)

    def test_page_sized_box_rejected(self):
        """A box covering nearly the whole page is not a line."""
        result = normalize_bbox("0-1", (0, 0, 999, 1999), 1000, 2000)
        assert isinstance(result, Rejection)
        assert result.width == pytest.approx(0.999)
        assert result.height == pytest.approx(0.9995)

        only_extent = GeometryThresholds(
            max_height=1.0, max_area=1.0, wide_width=1.0, wide_max_height=1.0,
            page_width=1.0, page_height=1.0,
        )
        result = normalize_bbox("0-1", (0, 0, 999, 1999), 1000, 2000, only_extent)
        assert result.reason == FULL_EXTENT

    def test_reversed_corners_swapped(self):
        box = normalize_bbox("u", (300, 90, 100, 50), 1000, 2000)
        assert box.x == pytest.approx(0.1)
        assert box.y == pytest.approx(0.025)
        assert box.w == pytest.approx(0.2)

    def test_overshoot_clamped(self):
        """Boxes slightly past the page edge are clamped onto it."""
        box = normalize_bbox("u", (-20, 1950, 200, 2040), 1000, 2000)
        assert box.x == 0.0
        assert box.y2 == pytest.approx(1.0)
        assert box.y == pytest.approx(0.975)

    @pytest.mark.parametrize(
        "bbox", [(math.nan, 0, 10, 10), (0, math.inf, 10, 10), (0, None, 10, 10)]
    )
    def test_non_finite_rejected(self, bbox):
        result = normalize_bbox("u", bbox, 1000, 2000)
        assert result.reason == NON_FINITE

    def test_missing_bbox(self):
        assert normalize_bbox("u", None, 1000, 2000).reason == MISSING_BBOX

    @pytest.mark.parametrize("bbox", [(100, 50, 300), (1, 2, 3, 4, 5), (), 7, "0,0,10,10"])
    def test_malformed_rejected(self, bbox):
        result = normalize_bbox("u", bbox, 1000, 2000)
        assert result.reason == MALFORMED
        assert result.bbox == bbox

    @pytest.mark.parametrize("bbox", [(100, "x", 300, 90), (1, True, 3, 4), (1, [2], 3, 4)])
    def test_non_numeric_rejected(self, bbox):
        assert normalize_bbox("u", bbox, 1000, 2000).reason == NON_FINITE

    @pytest.mark.parametrize("width,height", [(0, 100), (100, -1)])
    def test_bad_page_size(self, width, height):
        assert normalize_bbox("u", (1, 1, 5, 5), width, height).reason == BAD_PAGE_SIZE

    def test_non_finite_page_size(self):
        assert normalize_bbox("u", (1, 1, 5, 5), math.nan, 100).reason == NON_FINITE

    def test_degenerate_rejected(self):
        """Zero width, including boxes entirely off the page."""
        assert normalize_bbox("u", (10, 10, 10, 50), 1000, 1000).reason == DEGENERATE
        assert normalize_bbox("u", (1100, 10, 1200, 50), 1000, 1000).reason == DEGENERATE

    def test_too_tall_rejected(self):
        assert normalize_bbox("u", (0, 0, 100, 210), 1000, 1000).reason == TOO_TALL

    def test_wide_short_line_kept(self):
        box = normalize_bbox("u", (0, 0, 900, 190), 1000, 1000)
        assert isinstance(box, NormalizedBox)
        assert box.area == pytest.approx(0.171)

    def test_filters_with_custom_thresholds(self):
        """Each filter rule fires on its own when the earlier ones are relaxed."""
        relaxed = dict(
            max_height=1.0, max_area=1.0, wide_width=1.0, wide_max_height=1.0,
            page_width=1.0, page_height=1.0, max_extent=1.0,
        )

        limits = GeometryThresholds(**{**relaxed, "max_area": 0.25})
        assert normalize_bbox("u", (0, 0, 600, 600), 1000, 1000, limits).reason == TOO_LARGE

        limits = GeometryThresholds(**{**relaxed, "wide_width": 0.98, "wide_max_height": 0.5})
        assert normalize_bbox("u", (0, 0, 990, 600), 1000, 1000, limits).reason == WIDE_AND_TALL

        limits = GeometryThresholds(**{**relaxed, "page_width": 0.95, "page_height": 0.95})
        assert normalize_bbox("u", (0, 0, 960, 960), 1000, 1000, limits).reason == PAGE_SIZED

        limits = GeometryThresholds(**{**relaxed, "max_extent": 0.999})
        assert normalize_bbox("u", (0, 0, 1000, 10), 1000, 1000, limits).reason == FULL_EXTENT

    def test_full_width_line_rejected_by_default(self):
        """A line spanning the full page width trips the extent rule."""
        assert normalize_bbox("u", (0, 0, 1000, 10), 1000, 1000).reason == FULL_EXTENT

    def test_default_thresholds(self):
        limits = GeometryThresholds()
        assert limits.max_height == 0.20
        assert limits.max_area == 0.25
        assert limits.max_extent == 0.999

    def test_output_inside_unit_square(self):
        """Any accepted box stays inside the page."""
        rng = random.Random(7)
        for _ in range(500):
            width = rng.uniform(1, 5000)
            height = rng.uniform(1, 5000)
            bbox = [rng.uniform(-0.2, 1.2) * d for d in (width, height, width, height)]
            result = normalize_bbox("u", bbox, width, height)
            if isinstance(result, NormalizedBox):
                assert result.x >= 0 and result.y >= 0
                assert result.x + result.w <= 1 + 1e-9
                assert result.y + result.h <= 1 + 1e-9


class TestNormalizePage:
    """Tests for whole-page normalization."""

    def test_malformed_boxes_do_not_block_page(self):
        """A short or non-numeric box is rejected on its own; the rest still index."""
        page = PageTranscription.model_validate(
            {
                "width": 1000,
                "height": 1000,
                "paragraphs": [
                    {
                        "lines": [
                            {"transcription": "ok", "bbox": [100, 50, 300, 90]},
                            {"transcription": "short", "bbox": [100, 50, 300]},
                            {"transcription": "text", "bbox": [100, "x", 300, 90]},
                        ]
                    }
                ],
            }
        )

        result = normalize_page(page)
        index = RegionIndex.from_result(result)

        assert result.uids == ["0-0"]
        assert {(r.uid, r.reason) for r in result.rejections} == {
            ("0-1", MALFORMED),
            ("0-2", NON_FINITE),
        }
        assert len(index) == 1
        assert index.pick(0.2, 0.07) == "0-0"

    def test_accepts_and_rejects(self, page_one):
        result = normalize_page(page_one)
        assert result.uids == ["0-0", "1-0", "1-2"]
        assert {(r.uid, r.reason) for r in result.rejections} == {
            ("0-1", TOO_TALL),  # first matching rule wins
            ("1-1", NON_FINITE),
        }

    def test_rejections_are_logged(self, page_one, caplog):
        with caplog.at_level(logging.WARNING, logger="docview.viewer.normalize"):
            normalize_page(page_one, page_key="ledger_page_1")

        messages = [r.getMessage() for r in caplog.records]
        assert len(messages) == 2
        assert any("uid=1-1" in m and "non_finite" in m for m in messages)
        assert all("ledger_page_1" in m for m in messages)

    def test_idempotent(self, page_one):
        first = normalize_page(page_one)
        second = normalize_page(page_one)
        assert first.boxes == second.boxes

    def test_duplicate_uid_keeps_first(self, page_one):
        """Two lines reporting the same uid never yield two boxes."""
        first = page_one.lines()[0]
        duplicated = [first, first.model_copy(update={"bbox": (500, 500, 600, 540)})]

        class DuplicatingPage(PageTranscription):
            def iter_lines(self):
                return iter(duplicated)

        page = DuplicatingPage(width=page_one.width, height=page_one.height)
        result = normalize_page(page)

        assert result.uids == ["0-0"]
        assert result.boxes[0].x == pytest.approx(0.1)
        assert result.rejections[0].reason == DUPLICATE_UID
