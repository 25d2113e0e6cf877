"""Region index - point hit-testing over one page's normalized line boxes."""

from typing import Iterable, Optional

from docview.config import GeometryThresholds
from docview.models import NormalizedBox, PageTranscription

from .normalize import NormalizationResult, normalize_page


class RegionIndex:
    """Immutable set of line boxes for the displayed page.

    Boxes are kept in ascending area order so that, where boxes overlap, the
    smallest (most specific) one wins a pick. Equal areas keep their
    reading order. Rebuild the index when the page or its dimensions change;
    it is never mutated in place.
    """

    __slots__ = ("_boxes", "_by_uid", "rejections")

    def __init__(self, boxes: Iterable[NormalizedBox] = (), rejections=()):
        by_uid: dict[str, NormalizedBox] = {}
        for box in boxes:
            by_uid.setdefault(box.uid, box)
        self._by_uid = by_uid
        self._boxes = tuple(sorted(by_uid.values(), key=lambda b: b.area))
        self.rejections = tuple(rejections)

    @classmethod
    def empty(cls) -> "RegionIndex":
        """Index for a page without transcription: every pick misses."""
        return cls()

    @classmethod
    def from_result(cls, result: NormalizationResult) -> "RegionIndex":
        return cls(result.boxes, result.rejections)

    @classmethod
    def build(
        cls,
        page: Optional[PageTranscription],
        limits: Optional[GeometryThresholds] = None,
        page_key: Optional[str] = None,
    ) -> "RegionIndex":
        """Normalize a page's lines and index the accepted boxes."""
        if page is None:
            return cls.empty()
        return cls.from_result(normalize_page(page, limits, page_key=page_key))

    def pick(self, u: float, v: float) -> Optional[str]:
        """Return the uid of the smallest box containing ``(u, v)``, if any."""
        for box in self._boxes:
            if box.contains(u, v):
                return box.uid
        return None

    def box_for(self, uid: Optional[str]) -> Optional[NormalizedBox]:
        if uid is None:
            return None
        return self._by_uid.get(uid)

    @property
    def boxes(self) -> tuple[NormalizedBox, ...]:
        """Boxes in ascending-area order."""
        return self._boxes

    @property
    def uids(self) -> frozenset[str]:
        return frozenset(self._by_uid)

    def __len__(self) -> int:
        return len(self._boxes)

    def __contains__(self, uid: str) -> bool:
        return uid in self._by_uid

    def __eq__(self, other) -> bool:
        if not isinstance(other, RegionIndex):
            return NotImplemented
        return self._boxes == other._boxes

    __hash__ = None
