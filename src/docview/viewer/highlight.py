"""Highlight synchronization between the rendered page and the transcript.

The synchronizer is the single owner of the active-line state. Both panes
feed it events and react to the effects it emits; neither pane writes the
other's state directly, so a page-driven highlight never re-triggers a
transcript-driven scroll (and vice versa).

State transitions:
    pointer_move(u, v)    -> {uid, PAGE} on a hit with a different state
    pointer_leave()       -> {None, None}
    page_click(u, v)      -> {uid, PAGE} + reveal suggestions + toggle collapse
    transcript_hover(uid) -> {uid, TRANSCRIPT}
    transcript_click(uid) -> {uid, TRANSCRIPT}
    transcript_leave()    -> {None, None}
    reset(index)          -> {None, None} with a new page index
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from docview.models import HighlightSource, NormalizedBox

from .frames import FrameCoalescer, FrameScheduler
from .region_index import RegionIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighlightState:
    active_uid: Optional[str] = None
    source: Optional[HighlightSource] = None


IDLE = HighlightState()


# Effects


@dataclass(frozen=True)
class HighlightBox:
    """Draw (or clear, when box is None) the highlight on the rendered page."""

    box: Optional[NormalizedBox]


@dataclass(frozen=True)
class ScrollTranscript:
    """Smoothly centre the transcript line ``uid`` in its pane."""

    uid: str
    smooth: bool = True


@dataclass(frozen=True)
class ScrollPage:
    """Bring ``box`` into view on the rendered page."""

    box: NormalizedBox


@dataclass(frozen=True)
class RevealSuggestions:
    """Un-hide community suggestions and show them for ``uid``."""

    uid: str
    collapsed: bool


Effect = Union[HighlightBox, ScrollTranscript, ScrollPage, RevealSuggestions]
Listener = Callable[[Effect], None]


def clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def transcript_center_offset(
    scroll_top: float,
    container_top: float,
    client_height: float,
    line_top: float,
    line_height: float,
) -> float:
    """Scroll offset that puts a line in the vertical centre of its pane.

    ``container_top`` and ``line_top`` are viewport-relative positions.
    """
    offset_top = line_top - container_top
    return scroll_top + offset_top - client_height / 2 + line_height / 2


def page_center_offset(
    box: NormalizedBox,
    scroll_width: float,
    scroll_height: float,
    client_width: float,
    client_height: float,
) -> tuple[float, float]:
    """Scroll offsets (left, top) that centre a box in the page viewport."""
    left = (box.x + box.w / 2) * scroll_width - client_width / 2
    top = (box.y + box.h / 2) * scroll_height - client_height / 2
    max_left = max(0.0, scroll_width - client_width)
    max_top = max(0.0, scroll_height - client_height)
    return min(max_left, max(0.0, left)), min(max_top, max(0.0, top))


class HighlightSynchronizer:
    """Tagged ``{active_uid, source}`` state machine for one viewer."""

    def __init__(self, scheduler: FrameScheduler, index: Optional[RegionIndex] = None):
        self.index = index or RegionIndex.empty()
        self.state = IDLE
        self.collapsed: dict[str, bool] = {}
        self.suggestions_hidden = False
        self.is_dragging: Callable[[], bool] = lambda: False
        self._listeners: list[Listener] = []
        self._pointer = FrameCoalescer(scheduler, self._evaluate_pointer)

    # Listeners

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an effect listener; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, effect: Effect) -> None:
        for listener in list(self._listeners):
            listener(effect)

    # Derived values

    @property
    def active_uid(self) -> Optional[str]:
        return self.state.active_uid

    @property
    def active_box(self) -> Optional[NormalizedBox]:
        return self.index.box_for(self.state.active_uid)

    def is_collapsed(self, uid: str) -> bool:
        return self.collapsed.get(uid, False)

    # Transitions

    def _transition(self, new_state: HighlightState) -> bool:
        if new_state == self.state:
            return False
        self.state = new_state
        self._emit(HighlightBox(self.index.box_for(new_state.active_uid)))

        uid = new_state.active_uid
        if uid is None:
            return True
        if new_state.source is HighlightSource.PAGE:
            self._emit(ScrollTranscript(uid))
        elif new_state.source is HighlightSource.TRANSCRIPT:
            box = self.index.box_for(uid)
            # Lines without a usable box (or untranscribed pages) do not scroll
            if box is not None:
                self._emit(ScrollPage(box))
        return True

    def pointer_move(self, u: float, v: float) -> None:
        """Queue a hover at ``(u, v)``; evaluated once per animation frame."""
        self._pointer.push((u, v))

    def _evaluate_pointer(self, point: tuple[float, float]) -> None:
        uid = self.index.pick(clamp_unit(point[0]), clamp_unit(point[1]))
        if uid is None:
            return
        self._transition(HighlightState(uid, HighlightSource.PAGE))

    def pointer_leave(self) -> None:
        self._pointer.cancel()
        self._transition(IDLE)

    def page_click(self, u: float, v: float) -> Optional[str]:
        """Handle a click on the rendered page; returns the picked uid."""
        if self.is_dragging():
            return None

        uid = self.index.pick(clamp_unit(u), clamp_unit(v))
        if uid is None:
            return None

        was_same = self.state.active_uid == uid
        self._transition(HighlightState(uid, HighlightSource.PAGE))

        self.suggestions_hidden = False
        self.collapsed[uid] = (not self.is_collapsed(uid)) if was_same else False
        self._emit(RevealSuggestions(uid, self.collapsed[uid]))
        return uid

    def transcript_hover(self, uid: str) -> None:
        self._transition(HighlightState(uid, HighlightSource.TRANSCRIPT))

    def transcript_click(self, uid: str) -> None:
        self._transition(HighlightState(uid, HighlightSource.TRANSCRIPT))

    def transcript_leave(self) -> None:
        self._transition(IDLE)

    def toggle_collapsed(self, uid: str) -> bool:
        """Per-line "Suggestions" toggle; returns the new collapsed flag."""
        self.collapsed[uid] = not self.is_collapsed(uid)
        return self.collapsed[uid]

    def toggle_suggestions_hidden(self) -> bool:
        self.suggestions_hidden = not self.suggestions_hidden
        return self.suggestions_hidden

    def reset(self, index: RegionIndex) -> None:
        """Install a new page's index and clear the highlight."""
        self._pointer.cancel()
        self.index = index
        self.state = IDLE
        self._emit(HighlightBox(None))
        logger.debug("Region index reset: %d boxes", len(index))
