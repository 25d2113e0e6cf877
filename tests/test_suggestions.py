"""Tests for suggestion ranking, leaderboard and submission checks."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from docview.exceptions import (
    DuplicateTranscriptionError,
    EmptySuggestionError,
    NotSignedInError,
    SubmissionError,
)
from docview.models import AuthoredVote, SortMode, Suggestion, UserIdentity
from docview.viewer import (
    SuggestionBoard,
    build_leaderboard,
    prepare_suggestion,
    prepare_vote,
    rank,
    resolve_display_name,
    snapshot_username,
)

T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_suggestion(text, votes=0, minutes=0, uid="0-0", author="author-1", username=None):
    return Suggestion(
        document_id="doc-1",
        page_key="ledger_page_1",
        uid=uid,
        suggested_text=text,
        author_id=author,
        author_username=username,
        vote_count=votes,
        created_at=T0 + timedelta(minutes=minutes),
    )


def texts(suggestions):
    return [s.suggested_text for s in suggestions]


class TestRanking:
    """Tests for per-line suggestion order."""

    @pytest.fixture
    def abc(self):
        return [
            make_suggestion("A", votes=3, minutes=0),
            make_suggestion("B", votes=3, minutes=5),
            make_suggestion("C", votes=1, minutes=10),
        ]

    def test_top_breaks_vote_ties_by_newest(self, abc):
        assert texts(rank(abc, SortMode.TOP)) == ["B", "A", "C"]

    def test_newest_ignores_votes(self, abc):
        assert texts(rank(abc, SortMode.NEWEST)) == ["C", "B", "A"]

    def test_exact_ties_keep_input_order(self):
        rows = [make_suggestion("x", votes=2), make_suggestion("y", votes=2)]
        assert texts(rank(rows)) == ["x", "y"]
        assert texts(rank(list(reversed(rows)))) == ["y", "x"]

    def test_ranking_is_deterministic(self, abc):
        assert rank(abc) == rank(abc)


class TestSuggestionBoard:
    """Tests for the per-page suggestion board."""

    @pytest.fixture
    def board(self):
        rows = [make_suggestion(f"s{n}", votes=n, minutes=n) for n in range(7)]
        rows.append(make_suggestion("other", uid="1-0"))
        return SuggestionBoard("ledger_page_1", rows)

    def test_grouped_by_line(self, board):
        assert len(board) == 8
        assert set(board.by_uid) == {"0-0", "1-0"}

    def test_visible_capped_at_five(self, board):
        assert texts(board.visible("0-0")) == ["s6", "s5", "s4", "s3", "s2"]
        assert board.hidden_count("0-0") == 2
        assert len(board.ranked("0-0")) == 7

    def test_sort_mode_per_line(self, board):
        board.set_sort_mode("0-0", "newest")
        assert board.sort_mode("0-0") is SortMode.NEWEST
        assert board.sort_mode("1-0") is SortMode.TOP

    def test_unknown_line(self, board):
        assert board.visible("9-9") == []
        assert board.hidden_count("9-9") == 0


class TestLeaderboard:
    """Tests for build_leaderboard."""

    def test_upvotes_summed_across_suggestions(self):
        """Three voters on two of X's suggestions count as three upvotes."""
        votes = [
            AuthoredVote(value=1, author_id="x", author_username="xavier"),
            AuthoredVote(value=1, author_id="x", author_username="xavier"),
            AuthoredVote(value=1, author_id="x", author_username="xavier"),
            AuthoredVote(value=1, author_id="y", author_username="yara"),
        ]
        board = build_leaderboard(votes)
        assert [(r.author_id, r.upvotes) for r in board] == [("x", 3), ("y", 1)]
        assert board[0].username == "xavier"

    def test_only_value_one_counts(self):
        votes = [
            AuthoredVote(value=1, author_id="x"),
            AuthoredVote(value=0, author_id="x"),
            AuthoredVote(value=-1, author_id="x"),
            AuthoredVote(value=2, author_id="x"),
        ]
        assert build_leaderboard(votes)[0].upvotes == 1

    def test_blank_authors_skipped(self):
        votes = [AuthoredVote(value=1, author_id="  "), AuthoredVote(value=1)]
        assert build_leaderboard(votes) == []

    def test_profile_name_preferred(self):
        votes = [AuthoredVote(value=1, author_id="x", author_username="old")]
        board = build_leaderboard(votes, profiles={"x": "new"})
        assert board[0].username == "new"

    def test_first_nonempty_snapshot_kept(self):
        votes = [
            AuthoredVote(value=1, author_id="x", author_username=""),
            AuthoredVote(value=1, author_id="x", author_username="first"),
            AuthoredVote(value=1, author_id="x", author_username="second"),
        ]
        assert build_leaderboard(votes)[0].username == "first"

    def test_limit_and_tie_order(self):
        votes = [AuthoredVote(value=1, author_id=a) for a in ["b", "a", "c", "a"]]
        board = build_leaderboard(votes, limit=2)
        assert [r.author_id for r in board] == ["a", "b"]


class TestUsernames:
    """Tests for the username fallback chain."""

    @pytest.mark.parametrize(
        "profile,snapshot,expected",
        [
            ("live", "snap", "live"),
            ("  ", "snap", "snap"),
            (None, None, "user:abcdef12"),
            ("", " ", "user:abcdef12"),
        ],
    )
    def test_resolve_display_name(self, profile, snapshot, expected):
        assert resolve_display_name("abcdef123456", profile, snapshot) == expected

    def test_snapshot_from_email(self):
        user = UserIdentity(id="abcdef123456", email="ada@example.org")
        assert snapshot_username(user) == "ada"
        assert snapshot_username(user, "lovelace") == "lovelace"

    def test_snapshot_from_id(self):
        assert snapshot_username(UserIdentity(id="abcdef123456")) == "user_abcdef"


class TestSubmission:
    """Tests for prepare_suggestion and prepare_vote."""

    @pytest.fixture
    def user(self):
        return UserIdentity(id="abcdef123456", email="ada@example.org")

    def _prepare(self, user, text, **kwargs):
        params = dict(
            document_id="doc-1",
            page_key="ledger_page_1",
            uid="0-0",
            text=text,
            original_text="Received of Mr.  Hudson",
        )
        params.update(kwargs)
        return prepare_suggestion(user, **params)

    def test_valid_suggestion(self, user):
        new = self._prepare(user, "  Received of  Mr. Hodson ", comment="  ")
        assert new.suggested_text == "Received of Mr. Hodson"
        assert new.comment is None
        assert new.author_id == user.id
        assert new.author_username == "ada"

    def test_signed_out(self):
        with pytest.raises(NotSignedInError, match="sign in to suggest"):
            self._prepare(None, "anything")

    @pytest.mark.parametrize("missing", ["document_id", "page_key"])
    def test_no_document_or_page(self, user, missing):
        with pytest.raises(SubmissionError):
            self._prepare(user, "text", **{missing: None})

    def test_blank(self, user):
        with pytest.raises(EmptySuggestionError):
            self._prepare(user, " \n\t ")

    def test_identical_after_whitespace(self, user):
        with pytest.raises(DuplicateTranscriptionError, match="identical"):
            self._prepare(user, "Received of Mr. Hudson")

    def test_comment_kept(self, user):
        assert self._prepare(user, "other", comment=" ink faded ").comment == "ink faded"

    def test_vote(self, user):
        suggestion_id = uuid4()
        vote = prepare_vote(user, suggestion_id)
        assert (vote.suggestion_id, vote.voter_id, vote.value) == (suggestion_id, user.id, 1)

    def test_vote_signed_out(self):
        with pytest.raises(NotSignedInError, match="sign in to vote"):
            prepare_vote(None, uuid4())
