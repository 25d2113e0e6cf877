"""Community suggestion, vote and leaderboard models."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .base import BaseRecord

UPVOTE = 1


class UserIdentity(BaseModel):
    """The signed-in user as reported by the identity provider."""

    id: str
    email: Optional[str] = None


class NewSuggestion(BaseModel):
    """Validated suggestion ready to be inserted into the store."""

    document_id: str
    page_key: str
    uid: str
    suggested_text: str = Field(..., min_length=1)
    comment: Optional[str] = None
    author_id: str
    author_username: str = Field(..., description="Username snapshot at submission time")


class Suggestion(BaseRecord):
    """
    Proposed replacement transcription for one line.

    Immutable once created. ``vote_count`` is derived by the store from the
    vote rows, it is not a column on the suggestion itself.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    document_id: str
    page_key: str
    uid: str
    suggested_text: str
    comment: Optional[str] = None
    author_id: str
    author_username: Optional[str] = Field(
        None, description="Username snapshot taken at submission time"
    )
    vote_count: int = Field(default=0, ge=0)


class Vote(BaseModel):
    """One voter's vote on one suggestion; unique per (suggestion, voter)."""

    suggestion_id: UUID
    voter_id: str
    value: int = UPVOTE


class AuthoredVote(BaseModel):
    """Vote joined with the author of the suggestion it was cast on.

    Input row for the leaderboard.
    """

    value: int
    author_id: Optional[str] = None
    author_username: Optional[str] = None


class LeaderboardRow(BaseModel):
    author_id: str
    username: str
    upvotes: int = Field(..., ge=0)


class SuggestionDraft(BaseModel):
    """Open "suggest edit" form for one line."""

    uid: str
    text: str
    comment: str = ""
