"""Initial schema: documents, lines, profiles, suggestions and votes.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""
    # Create documents table
    op.create_table(
        "documents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("pdf_url", sa.String(1024), nullable=False),
        sa.Column("json_url", sa.String(1024), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Create lines table
    op.create_table(
        "lines",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "document_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("page_key", sa.String(255), nullable=False),
        sa.Column("uid", sa.String(32), nullable=False),
        sa.Column("bbox", postgresql.ARRAY(sa.Integer), nullable=False),
        sa.Column("original_text", sa.Text, nullable=False, server_default=""),
        sa.UniqueConstraint("document_id", "page_key", "uid", name="uq_lines_document_page_uid"),
    )
    op.create_index("ix_lines_document_page", "lines", ["document_id", "page_key"])

    # Create profiles table
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_profiles_username", "profiles", ["username"])

    # Create suggestions table
    op.create_table(
        "suggestions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "document_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("page_key", sa.String(255), nullable=False),
        sa.Column("uid", sa.String(32), nullable=False),
        sa.Column("suggested_text", sa.Text, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("author_username", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_suggestions_document_page", "suggestions", ["document_id", "page_key"])
    op.create_index("ix_suggestions_user", "suggestions", ["user_id"])

    # Create suggestion_votes table (one vote per voter per suggestion)
    op.create_table(
        "suggestion_votes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "suggestion_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("suggestions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("vote", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "suggestion_id", "user_id", name="uq_suggestion_votes_suggestion_user"
        ),
    )


def downgrade() -> None:
    """Drop all tables."""
    # Drop tables in reverse order of creation
    op.drop_table("suggestion_votes")
    op.drop_table("suggestions")
    op.drop_table("profiles")
    op.drop_table("lines")
    op.drop_table("documents")
