"""Data models for the document viewer core.

Pydantic models for the document JSON shape (pages, paragraphs, lines), the
derived unit-square line boxes used for hit-testing, and the community
suggestion records fed to the aggregator.

Model Hierarchy:
- DocumentTranscription → PageTranscription → Paragraph → Line
- Line → NormalizedBox (derived per render, never persisted)
- Suggestion → Vote (one per voter)
"""

from .base import (
    BaseRecord,
    HighlightSource,
    NormalizedBox,
    SortMode,
    utcnow,
)
from .page import (
    PDF_ONLY_PAGE_PREFIX,
    DocumentTranscription,
    Line,
    LineWithUid,
    PageTranscription,
    Paragraph,
    is_finite_number,
    make_uid,
    page_key_to_number,
    require_page_number,
    sort_page_keys,
)
from .suggestion import (
    UPVOTE,
    AuthoredVote,
    LeaderboardRow,
    NewSuggestion,
    Suggestion,
    SuggestionDraft,
    UserIdentity,
    Vote,
)

__all__ = [
    # Base types
    "BaseRecord",
    "HighlightSource",
    "NormalizedBox",
    "SortMode",
    "utcnow",
    # Pages
    "PDF_ONLY_PAGE_PREFIX",
    "DocumentTranscription",
    "Line",
    "LineWithUid",
    "PageTranscription",
    "Paragraph",
    "is_finite_number",
    "make_uid",
    "page_key_to_number",
    "require_page_number",
    "sort_page_keys",
    # Suggestions
    "UPVOTE",
    "AuthoredVote",
    "LeaderboardRow",
    "NewSuggestion",
    "Suggestion",
    "SuggestionDraft",
    "UserIdentity",
    "Vote",
]
