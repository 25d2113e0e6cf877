"""Pytest configuration and fixtures."""

import asyncio
import math
from typing import Optional
from uuid import UUID

import pytest

from docview.exceptions import RenderCancelled, StoreError
from docview.models import (
    AuthoredVote,
    DocumentTranscription,
    NewSuggestion,
    Suggestion,
)


PAGE_ONE = {
    "width": 1000,
    "height": 2000,
    "paragraphs": [
        {
            "lines": [
                {"line_id": "a", "transcription": "Received of Mr. Hudson", "bbox": [100, 50, 300, 90]},
                {"line_id": "b", "transcription": "whole page", "bbox": [0, 0, 999, 1999]},
            ]
        },
        {
            "lines": [
                # Wider line overlapping the first one
                {"line_id": "c", "transcription": "the sum of ten pounds", "bbox": [50, 40, 600, 200]},
                {"line_id": "d", "transcription": "smudged", "bbox": [10, 300, math.nan, 340]},
                {"line_id": "e", "transcription": "reversed", "bbox": [700, 1000, 400, 960]},
            ]
        },
    ],
}

PAGE_TWO = {
    "width": 800,
    "height": 1000,
    "paragraphs": [
        {"lines": [{"transcription": "second page", "bbox": [80, 100, 400, 140]}]},
    ],
}


@pytest.fixture
def doc_json():
    """Raw document JSON keyed by page key (pages out of order)."""
    return {
        "ledger_page_2": PAGE_TWO,
        "cover": {"width": 100, "height": 100, "paragraphs": []},
        "ledger_page_1": PAGE_ONE,
    }


@pytest.fixture
def doc(doc_json):
    return DocumentTranscription.model_validate(doc_json)


@pytest.fixture
def page_one(doc):
    return doc["ledger_page_1"]


class ManualFrameScheduler:
    """Frame scheduler whose frames are run explicitly by the test."""

    def __init__(self):
        self.callbacks = {}
        self._next = 0

    def request_frame(self, callback):
        self._next += 1
        self.callbacks[self._next] = callback
        return self._next

    def cancel_frame(self, handle):
        self.callbacks.pop(handle, None)

    @property
    def pending(self) -> int:
        return len(self.callbacks)

    def run_frame(self) -> None:
        callbacks = list(self.callbacks.values())
        self.callbacks.clear()
        for callback in callbacks:
            callback()


@pytest.fixture
def scheduler():
    return ManualFrameScheduler()


class FakeSurface:
    """Scroll container stand-in."""

    def __init__(self, width=1000.0, height=2000.0, client_width=500.0, client_height=800.0):
        self.scroll_left = 0.0
        self.scroll_top = 0.0
        self.scroll_width = width
        self.scroll_height = height
        self.client_width = client_width
        self.client_height = client_height


@pytest.fixture
def surface():
    return FakeSurface()


class GatedRasterSource:
    """Raster source whose renders wait until the test opens the gate."""

    def __init__(self, page_count=3, size=(600.0, 800.0), gated=False):
        self._page_count = page_count
        self.size = size
        self.gated = gated
        self.gate: Optional[asyncio.Event] = None
        self.calls = []
        self.error: Optional[Exception] = None

    @property
    def page_count(self) -> int:
        return self._page_count

    def native_size(self, page_number):
        return self.size

    def open_gate(self):
        if self.gate is None:
            self.gate = asyncio.Event()
        self.gate.set()

    async def render(self, page_number, scale, device_pixel_ratio):
        self.calls.append((page_number, scale, device_pixel_ratio))
        if self.gated:
            if self.gate is None:
                self.gate = asyncio.Event()
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return f"raster-{page_number}"


@pytest.fixture
def raster():
    return GatedRasterSource()


class InMemorySuggestionStore:
    """Suggestion store keeping everything in dicts.

    Votes are keyed by (suggestion_id, voter_id), so a repeat vote
    overwrites the earlier one.
    """

    def __init__(self):
        self.suggestions: list[Suggestion] = []
        self.votes: dict[tuple[UUID, str], int] = {}
        self.profiles: dict[str, str] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _call(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise StoreError(f"{name} unavailable")

    def _count(self, suggestion_id):
        return sum(1 for (sid, _), v in self.votes.items() if sid == suggestion_id and v == 1)

    async def list(self, document_id, page_key):
        self._call("list")
        await asyncio.sleep(0)
        return [
            s.model_copy(update={"vote_count": self._count(s.id)})
            for s in self.suggestions
            if s.document_id == document_id and s.page_key == page_key
        ]

    async def insert(self, suggestion: NewSuggestion):
        self._call("insert")
        created = Suggestion(**suggestion.model_dump())
        self.suggestions.append(created)
        return created

    async def upsert_vote(self, suggestion_id, voter_id, value):
        self._call("upsert_vote")
        self.votes[(suggestion_id, voter_id)] = value

    async def list_votes(self, limit):
        self._call("list_votes")
        by_id = {s.id: s for s in self.suggestions}
        rows = [
            AuthoredVote(
                value=value,
                author_id=by_id[sid].author_id,
                author_username=by_id[sid].author_username,
            )
            for (sid, _), value in self.votes.items()
        ]
        return rows[:limit]

    async def profile_usernames(self, user_ids):
        self._call("profile_usernames")
        return {i: self.profiles[i] for i in user_ids if self.profiles.get(i)}

    async def upsert_profile(self, user_id, username, email=None):
        self._call("upsert_profile")
        self.profiles[user_id] = username


@pytest.fixture
def store():
    return InMemorySuggestionStore()


class DictDocumentStore:
    def __init__(self, doc, title="Ledger"):
        self.doc = doc
        self.title = title

    async def fetch(self, document_id):
        return self.doc, self.title


@pytest.fixture
def documents(doc):
    return DictDocumentStore(doc)
