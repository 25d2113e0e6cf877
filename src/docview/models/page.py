"""Page-level transcription models.

Mirrors the document JSON shape produced by the transcription pipeline::

    {
      "<name>_page_1": {
        "width": 2480, "height": 3508,
        "paragraphs": [{"lines": [{"line_id": "...", "transcription": "...",
                                   "bbox": [x1, y1, x2, y2]}]}]
      }
    }
"""

import math
import re
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator

from docview.exceptions import PageKeyError

PAGE_KEY_PATTERN = re.compile(r"_page_(\d+)$")
PDF_ONLY_PAGE_PREFIX = "pdf_only_page_"


def page_key_to_number(page_key: str) -> Optional[int]:
    """Extract the 1-based page ordinal from a page key, or None."""
    match = PAGE_KEY_PATTERN.search(page_key)
    if not match:
        return None
    number = int(match.group(1))
    return number if number >= 1 else None


def require_page_number(page_key: str) -> int:
    """Like page_key_to_number, but raise PageKeyError for unparsable keys."""
    number = page_key_to_number(page_key)
    if number is None:
        raise PageKeyError(f"Bad page key: {page_key}")
    return number


def sort_page_keys(keys) -> list[str]:
    """Sort keys by page ordinal; keys without one go last in input order."""
    numbered = [k for k in keys if page_key_to_number(k) is not None]
    unnumbered = [k for k in keys if page_key_to_number(k) is None]
    return sorted(numbered, key=page_key_to_number) + unnumbered


def make_uid(paragraph_index: int, line_index: int) -> str:
    """Per-page line identifier."""
    return f"{paragraph_index}-{line_index}"


def is_finite_number(value) -> bool:
    """True for real, finite ints and floats (bools and strings excluded)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class Line(BaseModel):
    """One transcribed text line as it appears in the document JSON."""

    model_config = ConfigDict(extra="ignore")

    line_id: Optional[str] = None
    transcription: str = ""
    # Kept raw: may hold NaN, nulls, strings, reversed corners or the wrong
    # number of values. Bad geometry only drops the line from hit-testing.
    bbox: Any = None

    @field_validator("bbox", mode="before")
    @classmethod
    def _list_to_tuple(cls, value):
        return tuple(value) if isinstance(value, list) else value

    def finite_bbox(self) -> Optional[tuple[float, float, float, float]]:
        """The bbox as four finite numbers, or None when missing or malformed."""
        bbox = self.bbox
        if not isinstance(bbox, tuple) or len(bbox) != 4:
            return None
        if not all(is_finite_number(v) for v in bbox):
            return None
        return bbox


class LineWithUid(Line):
    """Line annotated with its per-page uid."""

    uid: str


class Paragraph(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lines: list[Line] = Field(default_factory=list)


class PageTranscription(BaseModel):
    """Transcription of one page, with the pixel size its boxes are in."""

    model_config = ConfigDict(extra="ignore")

    width: float
    height: float
    paragraphs: list[Paragraph] = Field(default_factory=list)

    def iter_lines(self) -> Iterator[LineWithUid]:
        """Yield every line in paragraph/line order with its uid."""
        for p_idx, paragraph in enumerate(self.paragraphs):
            for l_idx, line in enumerate(paragraph.lines):
                yield LineWithUid(**line.model_dump(), uid=make_uid(p_idx, l_idx))

    def lines(self) -> list[LineWithUid]:
        return list(self.iter_lines())

    def line(self, uid: str) -> Optional[LineWithUid]:
        """Look up a line by uid."""
        for line in self.iter_lines():
            if line.uid == uid:
                return line
        return None


class DocumentTranscription(RootModel[dict[str, PageTranscription]]):
    """All transcribed pages of one document, keyed by page key."""

    def __getitem__(self, page_key: str) -> PageTranscription:
        return self.root[page_key]

    def __contains__(self, page_key: str) -> bool:
        return page_key in self.root

    def __len__(self) -> int:
        return len(self.root)

    def get(self, page_key: str) -> Optional[PageTranscription]:
        return self.root.get(page_key)

    @property
    def page_keys(self) -> list[str]:
        """Page keys in page order, unnumbered keys last."""
        return sort_page_keys(list(self.root))

    def key_for_number(self, page_number: int) -> Optional[str]:
        """Find the transcription key for a page ordinal."""
        for key in self.root:
            if page_key_to_number(key) == page_number:
                return key
        return None

    def first_page_key(self) -> Optional[str]:
        """Key of the lowest-numbered page, or None when no key has a number."""
        numbered = [k for k in self.page_keys if page_key_to_number(k) is not None]
        return numbered[0] if numbered else None
