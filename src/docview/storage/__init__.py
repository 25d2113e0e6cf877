"""Storage layer for documents, lines and community suggestions.

Provides database access via SQLAlchemy with PostgreSQL.
"""

from .database import (
    Base,
    async_session_factory,
    build_engine,
    close_db,
    engine,
    get_session,
    init_db,
)
from .ingest import build_line_rows, ingest_document
from .orm_models import (
    DocumentORM,
    LineORM,
    ProfileORM,
    SuggestionORM,
    SuggestionVoteORM,
)
from .repositories import (
    DocumentRepository,
    LineRepository,
    ProfileRepository,
    SuggestionRepository,
)
from .store import SqlDocumentStore, SqlSuggestionStore

__all__ = [
    # Database
    "Base",
    "engine",
    "build_engine",
    "async_session_factory",
    "get_session",
    "init_db",
    "close_db",
    # ORM Models
    "DocumentORM",
    "LineORM",
    "ProfileORM",
    "SuggestionORM",
    "SuggestionVoteORM",
    # Repositories
    "DocumentRepository",
    "LineRepository",
    "ProfileRepository",
    "SuggestionRepository",
    # Stores
    "SqlDocumentStore",
    "SqlSuggestionStore",
    # Ingestion
    "build_line_rows",
    "ingest_document",
]
