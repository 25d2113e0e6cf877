"""Viewer session - the UI state layer tying the viewer components together.

Owns the selected page, its region index, the highlight synchronizer, the
render pipeline and the community suggestions of the page. Network
responses that arrive after the user has moved to another page are
discarded, keyed by the page requested at dispatch time.
"""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from docview.config import GeometryThresholds, settings
from docview.exceptions import StoreError
from docview.models import (
    PDF_ONLY_PAGE_PREFIX,
    DocumentTranscription,
    LeaderboardRow,
    PageTranscription,
    Suggestion,
    SuggestionDraft,
    UserIdentity,
    require_page_number,
)
from docview.sources import DocumentStore, IdentityProvider, PageRasterSource, SuggestionStore

from .frames import FrameScheduler
from .highlight import HighlightSynchronizer
from .region_index import RegionIndex
from .render import PanState, RenderPipeline, RenderResult, ScrollSurface, ZoomState
from .suggestions import (
    SuggestionBoard,
    build_leaderboard,
    prepare_suggestion,
    prepare_vote,
    snapshot_username,
)

logger = logging.getLogger(__name__)


class ViewerSession:
    """Side-by-side viewer state for one document."""

    def __init__(
        self,
        document_id: str,
        documents: DocumentStore,
        suggestions: SuggestionStore,
        identity: IdentityProvider,
        scheduler: FrameScheduler,
        raster: Optional[PageRasterSource] = None,
        surface: Optional[ScrollSurface] = None,
        limits: Optional[GeometryThresholds] = None,
    ):
        self.document_id = document_id
        self.documents = documents
        self.suggestions = suggestions
        self.identity = identity
        self.limits = limits or settings.geometry

        self.sync = HighlightSynchronizer(scheduler)
        self.zoom = ZoomState()
        self.pan = PanState()
        self.sync.is_dragging = lambda: self.pan.dragging
        self.renderer = RenderPipeline(raster, scheduler, surface) if raster is not None else None

        self.doc: Optional[DocumentTranscription] = None
        self.title = ""
        self.page_key: Optional[str] = None
        self.viewport_width: Optional[int] = None
        self.last_render: Optional[RenderResult] = None

        self.board = SuggestionBoard()
        self.loading_suggestions = False
        self.leaderboard: list[LeaderboardRow] = []
        self.draft: Optional[SuggestionDraft] = None
        self.usernames: dict[str, str] = {}

    # Document and pages

    async def open(self) -> None:
        """Load the document and select its first numbered page."""
        self.doc, self.title = await self.documents.fetch(self.document_id)
        first = self.doc.first_page_key()
        if first is not None:
            await self.select_page(first)

    @property
    def page(self) -> Optional[PageTranscription]:
        if self.doc is None or self.page_key is None:
            return None
        return self.doc.get(self.page_key)

    def page_keys(self) -> list[str]:
        """Navigable page keys.

        With a raster source every rendered page is navigable, using the
        transcription key where one exists; otherwise only transcribed
        pages are listed, in page order.
        """
        if self.doc is None:
            return []
        if self.renderer is not None and self.renderer.source.page_count:
            return [
                self.doc.key_for_number(n) or f"{PDF_ONLY_PAGE_PREFIX}{n}"
                for n in range(1, self.renderer.source.page_count + 1)
            ]
        return self.doc.page_keys

    async def select_page(self, page_key: str) -> None:
        """Switch pages: rebuild the index, re-render, reload suggestions.

        Raises:
            PageKeyError: the key has no page number
            PageOutOfRangeError: the page is outside the rendered document
        """
        require_page_number(page_key)
        self.page_key = page_key
        self.draft = None
        self.sync.reset(RegionIndex.build(self.page, self.limits, page_key=page_key))
        await asyncio.gather(self.refresh_render(), self.load_suggestions())

    # Rendering

    async def refresh_render(self) -> Optional[RenderResult]:
        """Render the current page if page, zoom or viewport changed."""
        if self.renderer is None or self.page_key is None:
            return None
        page_key = self.page_key
        number = require_page_number(page_key)
        shown = self.last_render
        if shown is not None and shown.page_number == number:
            if not self.renderer.needs_render(number, self.viewport_width, self.zoom.value):
                return shown

        result = await self.renderer.render(number, self.viewport_width, self.zoom.value)
        if result is not None and self.page_key == page_key:
            self.last_render = result
        return result

    async def resize(self, viewport_width: int) -> None:
        self.viewport_width = viewport_width
        await self.refresh_render()

    async def zoom_in(self) -> None:
        self.zoom.zoom_in()
        await self.refresh_render()

    async def zoom_out(self) -> None:
        self.zoom.zoom_out()
        await self.refresh_render()

    async def zoom_reset(self) -> None:
        self.zoom.reset()
        await self.refresh_render()

    async def wheel(self, delta_y: float, ctrl_or_meta: bool) -> bool:
        if not self.zoom.on_wheel(delta_y, ctrl_or_meta):
            return False
        await self.refresh_render()
        return True

    # Pointer and transcript events

    def page_pointer_move(self, u: float, v: float) -> None:
        self.sync.pointer_move(u, v)

    def page_pointer_leave(self) -> None:
        self.pan.end()
        self.sync.pointer_leave()

    def page_click(self, u: float, v: float) -> Optional[str]:
        uid = self.sync.page_click(u, v)
        if uid is not None:
            # Clicking the page reveals suggestions, never the edit form
            self.draft = None
        return uid

    def transcript_hover(self, uid: str) -> None:
        self.sync.transcript_hover(uid)

    def transcript_click(self, uid: str) -> None:
        self.sync.transcript_click(uid)

    def transcript_leave(self) -> None:
        self.sync.transcript_leave()

    # Suggestions

    async def load_suggestions(self) -> None:
        """Fetch the current page's suggestions; failures leave it empty."""
        page_key = self.page_key
        if not self.document_id or not page_key:
            return

        self.loading_suggestions = True
        try:
            rows = await self.suggestions.list(self.document_id, page_key)
        except StoreError as e:
            logger.warning("Loading suggestions for %s failed: %s", page_key, e)
            rows = []
        finally:
            self.loading_suggestions = False

        if self.page_key != page_key:
            logger.debug("Discarding suggestions for stale page %s", page_key)
            return

        board = SuggestionBoard(page_key, rows)
        if self.board.page_key == page_key:
            board.sort_modes = self.board.sort_modes
        self.board = board
        await self._cache_usernames([s.author_id for s in rows])

    async def _cache_usernames(self, user_ids: list[str]) -> None:
        missing = sorted({i for i in user_ids if i and not self.usernames.get(i)})
        if not missing:
            return
        try:
            found = await self.suggestions.profile_usernames(missing)
        except StoreError as e:
            logger.warning("Profile lookup failed: %s", e)
            return
        self.usernames.update({k: v.strip() for k, v in found.items() if v and v.strip()})

    def open_draft(self, uid: str) -> Optional[SuggestionDraft]:
        """Toggle the edit form for a line, pre-filled with its transcription."""
        if self.draft is not None and self.draft.uid == uid:
            self.draft = None
            return None
        line = self.page.line(uid) if self.page is not None else None
        self.draft = SuggestionDraft(uid=uid, text=line.transcription if line else "")
        return self.draft

    def cancel_draft(self) -> None:
        self.draft = None

    async def submit_suggestion(
        self,
        uid: str,
        text: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> Suggestion:
        """Validate and store a suggestion, then refresh the page's list.

        Validation errors are raised before the store is touched.
        """
        if self.draft is not None and self.draft.uid == uid:
            text = self.draft.text if text is None else text
            comment = self.draft.comment if comment is None else comment

        user = self.identity.current_user()
        line = self.page.line(uid) if self.page is not None else None
        new = prepare_suggestion(
            user,
            self.document_id,
            self.page_key,
            uid,
            text or "",
            line.transcription if line else "",
            comment=comment,
            profile_username=self.usernames.get(user.id) if user else None,
        )

        created = await self.suggestions.insert(new)
        self.draft = None
        await self.load_suggestions()
        return created

    async def upvote(self, suggestion_id: UUID) -> None:
        vote = prepare_vote(self.identity.current_user(), suggestion_id)
        await self.suggestions.upsert_vote(vote.suggestion_id, vote.voter_id, vote.value)
        await self.load_suggestions()

    # Leaderboard and profiles

    async def load_leaderboard(self) -> list[LeaderboardRow]:
        """Rebuild the contributor leaderboard; failures leave it empty."""
        try:
            votes = await self.suggestions.list_votes(settings.leaderboard_vote_limit)
        except StoreError as e:
            logger.warning("Leaderboard load failed: %s", e)
            self.leaderboard = []
            return self.leaderboard

        rows = build_leaderboard(votes)
        try:
            profiles = await self.suggestions.profile_usernames([r.author_id for r in rows])
        except StoreError as e:
            logger.warning("Leaderboard profile lookup failed: %s", e)
            profiles = {}
        self.leaderboard = build_leaderboard(votes, profiles)
        return self.leaderboard

    async def ensure_profile_username(self, user: UserIdentity) -> Optional[str]:
        """Return the user's username, creating a profile with a fallback name if missing."""
        try:
            found = await self.suggestions.profile_usernames([user.id])
            username = (found.get(user.id) or "").strip()
            if not username:
                username = snapshot_username(user)
                await self.suggestions.upsert_profile(user.id, username, user.email)
        except StoreError as e:
            logger.warning("Profile setup for %s failed: %s", user.id, e)
            return None
        self.usernames[user.id] = username
        return username
