"""Viewer core: hit-testing, highlight sync, rendering and suggestions.

Components (leaves first):
1. normalize - pixel line boxes to unit-square page coordinates
2. region_index - smallest-box-wins point hit-testing
3. highlight - page/transcript highlight state machine
4. render - viewport-sized rasters, zoom, pan and scroll preservation
5. suggestions - per-line ranking, leaderboard, submission checks
6. session - UI state layer driving all of the above for one document
"""

from .frames import AsyncioFrameScheduler, FrameCoalescer, FrameScheduler
from .highlight import (
    HighlightBox,
    HighlightState,
    HighlightSynchronizer,
    RevealSuggestions,
    ScrollPage,
    ScrollTranscript,
    page_center_offset,
    transcript_center_offset,
)
from .normalize import NormalizationResult, Rejection, normalize_bbox, normalize_page
from .region_index import RegionIndex
from .render import (
    PanState,
    RenderPipeline,
    RenderResult,
    ScrollSnapshot,
    ZoomState,
    preserve_scroll,
)
from .session import ViewerSession
from .suggestions import (
    SuggestionBoard,
    build_leaderboard,
    prepare_suggestion,
    prepare_vote,
    rank,
    resolve_display_name,
    snapshot_username,
)

__all__ = [
    # Frames
    "AsyncioFrameScheduler",
    "FrameCoalescer",
    "FrameScheduler",
    # Geometry
    "NormalizationResult",
    "Rejection",
    "normalize_bbox",
    "normalize_page",
    "RegionIndex",
    # Highlight
    "HighlightBox",
    "HighlightState",
    "HighlightSynchronizer",
    "RevealSuggestions",
    "ScrollPage",
    "ScrollTranscript",
    "page_center_offset",
    "transcript_center_offset",
    # Render
    "PanState",
    "RenderPipeline",
    "RenderResult",
    "ScrollSnapshot",
    "ZoomState",
    "preserve_scroll",
    # Suggestions
    "SuggestionBoard",
    "build_leaderboard",
    "prepare_suggestion",
    "prepare_vote",
    "rank",
    "resolve_display_name",
    "snapshot_username",
    # Session
    "ViewerSession",
]
