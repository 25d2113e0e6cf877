"""SQLAlchemy ORM models for documents, lines and community suggestions.

Uses PostgreSQL. Vote totals are never stored on a suggestion row; they are
counted from ``suggestion_votes`` at query time.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class DocumentORM(Base):
    """Document table - one scanned document with its transcription."""

    __tablename__ = "documents"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)

    # Storage locations
    pdf_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    json_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    lines: Mapped[list["LineORM"]] = relationship(
        back_populates="document", cascade="all, delete-orphan"
    )
    suggestions: Mapped[list["SuggestionORM"]] = relationship(
        back_populates="document", cascade="all, delete-orphan"
    )


class LineORM(Base):
    """Line table - transcribed lines as ingested (ground truth)."""

    __tablename__ = "lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE")
    )
    page_key: Mapped[str] = mapped_column(String(255), nullable=False)
    uid: Mapped[str] = mapped_column(String(32), nullable=False)

    # Pixel bbox rounded to integers at ingestion
    bbox: Mapped[list[int]] = mapped_column(ARRAY(Integer), nullable=False)
    original_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    document: Mapped["DocumentORM"] = relationship(back_populates="lines")

    __table_args__ = (
        UniqueConstraint("document_id", "page_key", "uid", name="uq_lines_document_page_uid"),
        Index("ix_lines_document_page", "document_id", "page_key"),
    )


class ProfileORM(Base):
    """Profile table - display names for authenticated users."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("ix_profiles_username", "username"),)


class SuggestionORM(Base):
    """Suggestion table - community-proposed replacement transcriptions."""

    __tablename__ = "suggestions"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    document_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE")
    )
    page_key: Mapped[str] = mapped_column(String(255), nullable=False)
    uid: Mapped[str] = mapped_column(String(32), nullable=False)

    suggested_text: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Author, with the username as it was at submission time
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    author_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    document: Mapped["DocumentORM"] = relationship(back_populates="suggestions")
    votes: Mapped[list["SuggestionVoteORM"]] = relationship(
        back_populates="suggestion", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_suggestions_document_page", "document_id", "page_key"),
        Index("ix_suggestions_user", "user_id"),
    )


class SuggestionVoteORM(Base):
    """Vote table - one row per (suggestion, voter)."""

    __tablename__ = "suggestion_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    suggestion_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True), ForeignKey("suggestions.id", ondelete="CASCADE")
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    vote: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    suggestion: Mapped["SuggestionORM"] = relationship(back_populates="votes")

    __table_args__ = (
        UniqueConstraint("suggestion_id", "user_id", name="uq_suggestion_votes_suggestion_user"),
    )
