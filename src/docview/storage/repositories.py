"""Repository layer for database CRUD operations."""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from docview.models import UPVOTE, NewSuggestion

from .orm_models import (
    DocumentORM,
    LineORM,
    ProfileORM,
    SuggestionORM,
    SuggestionVoteORM,
)


class DocumentRepository:
    """Repository for Document operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, title: str, pdf_url: str, json_url: str) -> DocumentORM:
        """Create a new document record."""
        orm_doc = DocumentORM(title=title, pdf_url=pdf_url, json_url=json_url)
        self.session.add(orm_doc)
        await self.session.flush()
        return orm_doc

    async def get_by_id(self, doc_id: UUID) -> Optional[DocumentORM]:
        """Get document by ID."""
        result = await self.session.execute(
            select(DocumentORM).where(DocumentORM.id == doc_id)
        )
        return result.scalar_one_or_none()

    async def count_all(self) -> int:
        """Count total documents."""
        result = await self.session.execute(
            select(func.count()).select_from(DocumentORM)
        )
        return result.scalar_one()


class LineRepository:
    """Repository for ingested Line operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_batch(self, rows: list[dict]) -> None:
        """Batch insert line rows (dicts of LineORM columns)."""
        self.session.add_all([LineORM(**row) for row in rows])
        await self.session.flush()


class SuggestionRepository:
    """Repository for Suggestion and vote operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, doc_id: UUID, suggestion: NewSuggestion) -> SuggestionORM:
        """Create a new suggestion record."""
        orm_suggestion = SuggestionORM(
            document_id=doc_id,
            page_key=suggestion.page_key,
            uid=suggestion.uid,
            suggested_text=suggestion.suggested_text,
            comment=suggestion.comment,
            user_id=suggestion.author_id,
            author_username=suggestion.author_username,
        )
        self.session.add(orm_suggestion)
        await self.session.flush()
        await self.session.refresh(orm_suggestion)
        return orm_suggestion

    async def list_for_page(
        self, doc_id: UUID, page_key: str
    ) -> Sequence[tuple[SuggestionORM, int]]:
        """Get a page's suggestions paired with their upvote counts."""
        vote_count = (
            select(func.count(SuggestionVoteORM.id))
            .where(SuggestionVoteORM.suggestion_id == SuggestionORM.id)
            .where(SuggestionVoteORM.vote == UPVOTE)
            .correlate(SuggestionORM)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(SuggestionORM, vote_count.label("vote_count"))
            .where(SuggestionORM.document_id == doc_id)
            .where(SuggestionORM.page_key == page_key)
            .order_by(SuggestionORM.created_at)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def upsert_vote(self, suggestion_id: UUID, user_id: str, value: int) -> None:
        """Insert a vote or overwrite the voter's previous one."""
        stmt = pg_insert(SuggestionVoteORM).values(
            suggestion_id=suggestion_id, user_id=user_id, vote=value
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[SuggestionVoteORM.suggestion_id, SuggestionVoteORM.user_id],
            set_={"vote": stmt.excluded.vote},
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def list_votes_with_authors(self, limit: int) -> Sequence[tuple[int, str, Optional[str]]]:
        """Get (vote, suggestion author id, author username snapshot) rows."""
        result = await self.session.execute(
            select(
                SuggestionVoteORM.vote,
                SuggestionORM.user_id,
                SuggestionORM.author_username,
            )
            .join(SuggestionORM, SuggestionVoteORM.suggestion_id == SuggestionORM.id)
            .limit(limit)
        )
        return [tuple(row) for row in result.all()]


class ProfileRepository:
    """Repository for user Profile operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_usernames(self, user_ids: Sequence[str]) -> dict[str, str]:
        """Map user ids to non-empty usernames."""
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(ProfileORM.id, ProfileORM.username).where(ProfileORM.id.in_(list(user_ids)))
        )
        return {
            user_id: username.strip()
            for user_id, username in result.all()
            if username and username.strip()
        }

    async def upsert(self, user_id: str, username: str, email: Optional[str] = None) -> None:
        """Create or update a profile."""
        values = {"id": user_id, "username": username}
        if email is not None:
            values["email"] = email
        stmt = pg_insert(ProfileORM).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProfileORM.id],
            set_={k: v for k, v in values.items() if k != "id"},
        )
        await self.session.execute(stmt)
        await self.session.flush()
