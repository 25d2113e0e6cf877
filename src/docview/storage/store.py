"""Database-backed implementations of the viewer's collaborator stores."""

import logging
from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Callable, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docview.exceptions import DocumentFetchError, StoreError
from docview.models import (
    AuthoredVote,
    DocumentTranscription,
    NewSuggestion,
    Suggestion,
)
from docview.sources import load_transcription

from .database import get_session
from .orm_models import SuggestionORM
from .repositories import DocumentRepository, ProfileRepository, SuggestionRepository

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _as_uuid(value, what: str = "id") -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as e:
        raise StoreError(f"Invalid {what}: {value!r}") from e


def to_suggestion(orm: SuggestionORM, vote_count: int) -> Suggestion:
    """Convert a suggestion row and its vote count to the domain model."""
    return Suggestion(
        id=orm.id,
        created_at=orm.created_at,
        document_id=str(orm.document_id),
        page_key=orm.page_key,
        uid=orm.uid,
        suggested_text=orm.suggested_text,
        comment=orm.comment,
        author_id=orm.user_id,
        author_username=orm.author_username,
        vote_count=vote_count or 0,
    )


class SqlSuggestionStore:
    """Suggestion store on PostgreSQL.

    Database and connection failures are raised as StoreError so callers can tell them
    apart from programming errors.
    """

    def __init__(self, session_scope: SessionScope = get_session):
        self._session_scope = session_scope

    async def list(self, document_id: str, page_key: str) -> list[Suggestion]:
        doc_id = _as_uuid(document_id, "document id")
        try:
            async with self._session_scope() as session:
                rows = await SuggestionRepository(session).list_for_page(doc_id, page_key)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Listing suggestions failed: {e}") from e
        return [to_suggestion(orm, count) for orm, count in rows]

    async def insert(self, suggestion: NewSuggestion) -> Suggestion:
        doc_id = _as_uuid(suggestion.document_id, "document id")
        try:
            async with self._session_scope() as session:
                orm = await SuggestionRepository(session).create(doc_id, suggestion)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Saving suggestion failed: {e}") from e
        logger.info("Suggestion %s stored for %s/%s", orm.id, suggestion.page_key, suggestion.uid)
        return to_suggestion(orm, 0)

    async def upsert_vote(self, suggestion_id: UUID, voter_id: str, value: int) -> None:
        try:
            async with self._session_scope() as session:
                await SuggestionRepository(session).upsert_vote(
                    _as_uuid(suggestion_id, "suggestion id"), voter_id, value
                )
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Saving vote failed: {e}") from e

    async def list_votes(self, limit: int) -> Sequence[AuthoredVote]:
        try:
            async with self._session_scope() as session:
                rows = await SuggestionRepository(session).list_votes_with_authors(limit)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Listing votes failed: {e}") from e
        return [
            AuthoredVote(value=vote, author_id=author_id, author_username=username)
            for vote, author_id, username in rows
        ]

    async def profile_usernames(self, user_ids: Sequence[str]) -> dict[str, str]:
        try:
            async with self._session_scope() as session:
                return await ProfileRepository(session).get_usernames(user_ids)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Profile lookup failed: {e}") from e

    async def upsert_profile(self, user_id: str, username: str, email: Optional[str] = None) -> None:
        try:
            async with self._session_scope() as session:
                await ProfileRepository(session).upsert(user_id, username, email)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Saving profile failed: {e}") from e


class SqlDocumentStore:
    """Document store reading titles from the database.

    Transcription JSON is read from ``json_root / documents.json_url``.
    """

    def __init__(self, json_root: Path, session_scope: SessionScope = get_session):
        self.json_root = Path(json_root)
        self._session_scope = session_scope

    async def fetch(self, document_id: str) -> tuple[DocumentTranscription, str]:
        try:
            doc_id = _as_uuid(document_id, "document id")
            async with self._session_scope() as session:
                row = await DocumentRepository(session).get_by_id(doc_id)
        except (SQLAlchemyError, OSError, StoreError) as e:
            raise DocumentFetchError(f"Document {document_id} unavailable: {e}") from e
        if row is None:
            raise DocumentFetchError(f"Document not found: {document_id}")

        doc = load_transcription(self.json_root / row.json_url)
        return doc, (row.title or "").strip()
