"""Collaborator interfaces consumed by the viewer core.

Concrete transports and storage live behind these protocols so the core
can be driven by files, a database or test doubles alike.
"""

from typing import Any, Optional, Protocol, Sequence
from uuid import UUID

from docview.models import (
    AuthoredVote,
    DocumentTranscription,
    NewSuggestion,
    Suggestion,
    UserIdentity,
)


class DocumentStore(Protocol):
    """Page-keyed transcription data and a title for a document."""

    async def fetch(self, document_id: str) -> tuple[DocumentTranscription, str]:
        """Raises DocumentFetchError when the document is unavailable."""
        ...


class PageRasterSource(Protocol):
    """Rasterizes pages of the scanned document."""

    @property
    def page_count(self) -> int: ...

    def native_size(self, page_number: int) -> tuple[float, float]:
        """Page size in native units at scale 1 (1-indexed page)."""
        ...

    async def render(self, page_number: int, scale: float, device_pixel_ratio: float) -> Any:
        """Raster of the page; may raise RenderCancelled or RenderError."""
        ...


class SuggestionStore(Protocol):
    """Community suggestions, votes and author profiles."""

    async def list(self, document_id: str, page_key: str) -> Sequence[Suggestion]:
        """Suggestions for a page with vote counts embedded."""
        ...

    async def insert(self, suggestion: NewSuggestion) -> Suggestion: ...

    async def upsert_vote(self, suggestion_id: UUID, voter_id: str, value: int) -> None:
        """One row per (suggestion_id, voter_id); a repeat vote overwrites."""
        ...

    async def list_votes(self, limit: int) -> Sequence[AuthoredVote]:
        """Votes joined with the author of the voted suggestion."""
        ...

    async def profile_usernames(self, user_ids: Sequence[str]) -> dict[str, str]:
        """Live usernames for the given ids; missing ids are omitted."""
        ...

    async def upsert_profile(self, user_id: str, username: str, email: Optional[str] = None) -> None: ...


class IdentityProvider(Protocol):
    """Current authenticated user; None means signed out."""

    def current_user(self) -> Optional[UserIdentity]: ...
