"""Geometry normalization - pixel line boxes to unit-square page coordinates.

Every line box coming out of OCR is mapped into ``[0, 1]`` page-relative
coordinates before hit-testing. Boxes that cannot describe a single text
line (non-finite values, degenerate extents, paragraph- or page-sized
regions) are dropped from hit-testing. The line text still renders in the
transcript pane; the drop is recorded as a Rejection and logged.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from docview.config import GeometryThresholds, settings
from docview.models import NormalizedBox, PageTranscription, is_finite_number

logger = logging.getLogger(__name__)


# Rejection reasons
NON_FINITE = "non_finite"
BAD_PAGE_SIZE = "bad_page_size"
MISSING_BBOX = "missing_bbox"
MALFORMED = "malformed_bbox"
DEGENERATE = "degenerate"
TOO_TALL = "too_tall"
TOO_LARGE = "too_large"
WIDE_AND_TALL = "wide_and_tall"
PAGE_SIZED = "page_sized"
FULL_EXTENT = "full_extent"
DUPLICATE_UID = "duplicate_uid"


@dataclass(frozen=True)
class Rejection:
    """A line box excluded from hit-testing, kept for diagnostics."""

    uid: str
    reason: str
    bbox: Any
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass
class NormalizationResult:
    """Accepted boxes (reading order) and rejections for one page."""

    boxes: list[NormalizedBox] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)

    @property
    def uids(self) -> list[str]:
        return [b.uid for b in self.boxes]


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def _filter_reason(w: float, h: float, area: float, limits: GeometryThresholds) -> Optional[str]:
    """Return why a box looks like a paragraph/page rather than a line."""
    if h > limits.max_height:
        return TOO_TALL
    if area > limits.max_area:
        return TOO_LARGE
    if w > limits.wide_width and h > limits.wide_max_height:
        return WIDE_AND_TALL
    if w > limits.page_width and h > limits.page_height:
        return PAGE_SIZED
    if w > limits.max_extent or h > limits.max_extent:
        return FULL_EXTENT
    return None


def normalize_bbox(
    uid: str,
    bbox: Any,
    page_width: float,
    page_height: float,
    limits: Optional[GeometryThresholds] = None,
) -> Union[NormalizedBox, Rejection]:
    """Map one pixel bbox onto the unit square.

    Args:
        uid: Line identifier (only used for the result/diagnostic)
        bbox: ``(x1, y1, x2, y2)`` in original page pixels, as read from JSON
        page_width: Page width the bbox is expressed in
        page_height: Page height the bbox is expressed in
        limits: Line-shape thresholds (default from settings)

    Returns:
        NormalizedBox if the box is a plausible text line, else Rejection
    """
    limits = limits or settings.geometry

    if bbox is None:
        return Rejection(uid=uid, reason=MISSING_BBOX, bbox=None)
    if not isinstance(bbox, (list, tuple)) or len(bbox) != 4:
        return Rejection(uid=uid, reason=MALFORMED, bbox=bbox)

    raw = tuple(bbox)
    if not all(is_finite_number(v) for v in (*raw, page_width, page_height)):
        return Rejection(uid=uid, reason=NON_FINITE, bbox=raw)
    if page_width <= 0 or page_height <= 0:
        return Rejection(uid=uid, reason=BAD_PAGE_SIZE, bbox=raw)

    x1p, y1p, x2p, y2p = raw
    x1 = _clamp01(x1p / page_width)
    x2 = _clamp01(x2p / page_width)
    y1 = _clamp01(y1p / page_height)
    y2 = _clamp01(y2p / page_height)

    if x2 < x1:
        x1, x2 = x2, x1
    if y2 < y1:
        y1, y2 = y2, y1

    w = x2 - x1
    h = y2 - y1
    area = w * h

    if w <= 0 or h <= 0:
        return Rejection(uid=uid, reason=DEGENERATE, bbox=raw, width=w, height=h)

    reason = _filter_reason(w, h, area, limits)
    if reason:
        return Rejection(uid=uid, reason=reason, bbox=raw, width=w, height=h)

    if h > limits.large_height or area > limits.large_area:
        logger.debug("Large bbox uid=%s bbox=%s w=%.4f h=%.4f area=%.4f", uid, raw, w, h, area)

    return NormalizedBox(uid=uid, x=x1, y=y1, w=w, h=h, area=area)


def normalize_page(
    page: PageTranscription,
    limits: Optional[GeometryThresholds] = None,
    page_key: Optional[str] = None,
) -> NormalizationResult:
    """Normalize every line box on a page.

    Lines are visited in paragraph/line order. A uid seen twice keeps its
    first box so the index never holds two boxes for one line.
    """
    result = NormalizationResult()
    seen: set[str] = set()

    for line in page.iter_lines():
        outcome = normalize_bbox(line.uid, line.bbox, page.width, page.height, limits)

        if isinstance(outcome, NormalizedBox) and outcome.uid in seen:
            outcome = Rejection(uid=line.uid, reason=DUPLICATE_UID, bbox=line.bbox)

        if isinstance(outcome, Rejection):
            logger.warning(
                "Line box rejected page=%s uid=%s reason=%s bbox=%s",
                page_key or "?",
                outcome.uid,
                outcome.reason,
                outcome.bbox,
            )
            result.rejections.append(outcome)
            continue

        seen.add(outcome.uid)
        result.boxes.append(outcome)

    return result
