"""Suggestion aggregation - per-line ranking, leaderboard and submission checks.

Everything here is a pure function of its inputs so ranking, name
resolution and validation can be tested without a store or identity
provider.
"""

import re
from collections import defaultdict
from typing import Iterable, Mapping, Optional, Sequence
from uuid import UUID

from docview.config import settings
from docview.exceptions import (
    DuplicateTranscriptionError,
    EmptySuggestionError,
    NotSignedInError,
    SubmissionError,
)
from docview.models import (
    UPVOTE,
    AuthoredVote,
    LeaderboardRow,
    NewSuggestion,
    SortMode,
    Suggestion,
    UserIdentity,
    Vote,
)

LEADERBOARD_ID_PREFIX = 8
SNAPSHOT_ID_PREFIX = 6

_WHITESPACE = re.compile(r"\s+")


# Ranking


def _created_key(s: Suggestion) -> float:
    return s.created_at.timestamp()


def rank(suggestions: Iterable[Suggestion], mode: SortMode = SortMode.TOP) -> list[Suggestion]:
    """Order suggestions for display.

    TOP sorts by votes descending, newest first among equal votes. NEWEST
    sorts by creation time only. The sort is stable, so exact ties keep
    their input order and identical input always renders identically.
    """
    if mode == SortMode.NEWEST:
        return sorted(suggestions, key=_created_key, reverse=True)
    return sorted(suggestions, key=lambda s: (-s.vote_count, -_created_key(s)))


def group_by_uid(suggestions: Iterable[Suggestion]) -> dict[str, list[Suggestion]]:
    """Group suggestion rows by line uid, each group ranked by TOP."""
    grouped: dict[str, list[Suggestion]] = defaultdict(list)
    for s in suggestions:
        grouped[s.uid].append(s)
    return {uid: rank(rows) for uid, rows in grouped.items()}


def visible(
    suggestions: Sequence[Suggestion],
    mode: SortMode = SortMode.TOP,
    limit: Optional[int] = None,
) -> list[Suggestion]:
    """Ranked suggestions capped to what is rendered by default."""
    limit = settings.suggestions_display_limit if limit is None else limit
    return rank(suggestions, mode)[:limit]


class SuggestionBoard:
    """Suggestions of the displayed page, grouped per line."""

    def __init__(self, page_key: Optional[str] = None, suggestions: Iterable[Suggestion] = ()):
        self.page_key = page_key
        self.by_uid = group_by_uid(suggestions)
        self.sort_modes: dict[str, SortMode] = {}

    def __len__(self) -> int:
        return sum(len(rows) for rows in self.by_uid.values())

    def sort_mode(self, uid: str) -> SortMode:
        return self.sort_modes.get(uid, SortMode.TOP)

    def set_sort_mode(self, uid: str, mode: SortMode) -> None:
        self.sort_modes[uid] = SortMode(mode)

    def ranked(self, uid: str) -> list[Suggestion]:
        """Full ranked list for a line under its current sort mode."""
        return rank(self.by_uid.get(uid, []), self.sort_mode(uid))

    def visible(self, uid: str, limit: Optional[int] = None) -> list[Suggestion]:
        return visible(self.by_uid.get(uid, []), self.sort_mode(uid), limit)

    def hidden_count(self, uid: str, limit: Optional[int] = None) -> int:
        limit = settings.suggestions_display_limit if limit is None else limit
        return max(0, len(self.by_uid.get(uid, [])) - limit)


# Usernames


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def fallback_username(author_id: str) -> str:
    """Placeholder shown when no username is known for an author."""
    return f"user:{author_id[:LEADERBOARD_ID_PREFIX]}"


def resolve_display_name(
    author_id: str,
    profile_username: Optional[str] = None,
    snapshot: Optional[str] = None,
) -> str:
    """Live profile name, else the submission-time snapshot, else a placeholder."""
    return _clean(profile_username) or _clean(snapshot) or fallback_username(author_id)


def snapshot_username(user: UserIdentity, profile_username: Optional[str] = None) -> str:
    """Username stored on a suggestion at submission time."""
    email_local = (user.email or "").split("@")[0].strip()
    return _clean(profile_username) or email_local or f"user_{user.id[:SNAPSHOT_ID_PREFIX]}"


# Leaderboard


def build_leaderboard(
    votes: Iterable[AuthoredVote],
    profiles: Optional[Mapping[str, str]] = None,
    limit: Optional[int] = None,
) -> list[LeaderboardRow]:
    """Top suggestion authors by upvotes received.

    Only votes with value exactly 1 count. Votes are credited to the author
    of the suggestion voted on, summed across all of their suggestions.
    """
    limit = settings.leaderboard_size if limit is None else limit
    profiles = profiles or {}

    totals: dict[str, int] = {}
    snapshots: dict[str, str] = {}
    for vote in votes:
        if vote.value != UPVOTE:
            continue
        author = _clean(vote.author_id)
        if not author:
            continue
        totals[author] = totals.get(author, 0) + 1
        snap = _clean(vote.author_username)
        if snap and not snapshots.get(author):
            snapshots[author] = snap

    ordered = sorted(totals.items(), key=lambda item: -item[1])[:limit]
    return [
        LeaderboardRow(
            author_id=author,
            username=resolve_display_name(author, profiles.get(author), snapshots.get(author)),
            upvotes=count,
        )
        for author, count in ordered
    ]


# Submission


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


def prepare_suggestion(
    user: Optional[UserIdentity],
    document_id: Optional[str],
    page_key: Optional[str],
    uid: str,
    text: str,
    original_text: str,
    comment: Optional[str] = None,
    profile_username: Optional[str] = None,
) -> NewSuggestion:
    """Validate a suggestion before anything is sent to the store.

    Raises:
        NotSignedInError: no signed-in user
        SubmissionError: no document or page selected
        EmptySuggestionError: text is blank
        DuplicateTranscriptionError: text equals the current transcription
    """
    if user is None:
        raise NotSignedInError("Please sign in to suggest edits.")
    if not document_id:
        raise SubmissionError("No document selected.")
    if not page_key:
        raise SubmissionError("No page selected.")

    cleaned = normalize_text(text)
    if not cleaned:
        raise EmptySuggestionError("Suggestion is empty.")
    if cleaned == normalize_text(original_text):
        raise DuplicateTranscriptionError(
            "Your suggestion is identical to the current transcription."
        )

    note = (comment or "").strip()
    return NewSuggestion(
        document_id=document_id,
        page_key=page_key,
        uid=uid,
        suggested_text=cleaned,
        comment=note or None,
        author_id=user.id,
        author_username=snapshot_username(user, profile_username),
    )


def prepare_vote(user: Optional[UserIdentity], suggestion_id: UUID) -> Vote:
    """Validate an upvote before anything is sent to the store."""
    if user is None:
        raise NotSignedInError("Please sign in to vote.")
    return Vote(suggestion_id=suggestion_id, voter_id=user.id, value=UPVOTE)
