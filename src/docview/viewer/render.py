"""Render pipeline - page rasters sized to the viewport, with zoom and scroll.

A single surface shows one page at a time. Each new render first cancels
whatever render is still in flight on that surface; a cancelled render is
not an error and its result is dropped. After a successful render the scroll
position is carried over proportionally once the new content is laid out.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from docview.config import settings
from docview.exceptions import ConfigurationError, PageOutOfRangeError, RenderCancelled
from docview.sources import PageRasterSource

from .frames import FrameScheduler

logger = logging.getLogger(__name__)


class ScrollSurface(Protocol):
    """Scrollable container holding the rendered page."""

    scroll_left: float
    scroll_top: float
    scroll_width: float
    scroll_height: float
    client_width: float
    client_height: float


@dataclass(frozen=True)
class ScrollSnapshot:
    left: float
    top: float
    width: float
    height: float

    @classmethod
    def of(cls, surface: ScrollSurface) -> "ScrollSnapshot":
        return cls(
            left=surface.scroll_left,
            top=surface.scroll_top,
            width=surface.scroll_width,
            height=surface.scroll_height,
        )


def preserve_scroll(prev: ScrollSnapshot, new_width: float, new_height: float) -> tuple[int, int]:
    """Scroll offsets keeping the same fractional position in resized content."""
    new_width = new_width or 1
    new_height = new_height or 1
    fx = prev.left / prev.width if prev.width else 0.0
    fy = prev.top / prev.height if prev.height else 0.0
    return max(0, math.floor(fx * new_width)), max(0, math.floor(fy * new_height))


@dataclass(frozen=True)
class RenderResult:
    """Completed raster for one page."""

    page_number: int
    scale: float
    css_width: int
    css_height: int
    bitmap_width: int
    bitmap_height: int
    raster: Any


class ZoomState:
    """Zoom factor with clamping and multiplicative steps."""

    def __init__(
        self,
        value: float = 1.0,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None,
        step: Optional[float] = None,
    ):
        self.minimum = minimum if minimum is not None else settings.min_zoom
        self.maximum = maximum if maximum is not None else settings.max_zoom
        if self.minimum > self.maximum:
            raise ConfigurationError(f"Zoom minimum {self.minimum} exceeds maximum {self.maximum}")
        self.step = step or settings.zoom_step
        self.value = self.clamp(value)

    def clamp(self, value: float) -> float:
        return max(self.minimum, min(self.maximum, value))

    def zoom_in(self) -> float:
        self.value = self.clamp(round(self.value * self.step, 4))
        return self.value

    def zoom_out(self) -> float:
        self.value = self.clamp(round(self.value / self.step, 4))
        return self.value

    def reset(self) -> float:
        self.value = 1.0
        return self.value

    def on_wheel(self, delta_y: float, ctrl_or_meta: bool) -> bool:
        """Ctrl/Cmd + wheel zooms; returns True when the event was consumed."""
        if not ctrl_or_meta:
            return False
        if delta_y > 0:
            self.zoom_out()
        elif delta_y < 0:
            self.zoom_in()
        return True

    @property
    def percent(self) -> int:
        return round(self.value * 100)


class PanState:
    """Drag-to-pan on the page surface, only while zoomed in."""

    def __init__(self):
        self.dragging = False
        self._start = (0.0, 0.0, 0.0, 0.0)

    def begin(self, x: float, y: float, surface: ScrollSurface, zoom: float) -> bool:
        if zoom <= 1:
            return False
        self.dragging = True
        self._start = (x, y, surface.scroll_left, surface.scroll_top)
        return True

    def move(self, x: float, y: float, surface: ScrollSurface) -> None:
        if not self.dragging:
            return
        start_x, start_y, left, top = self._start
        surface.scroll_left = left - (x - start_x)
        surface.scroll_top = top - (y - start_y)

    def end(self) -> None:
        self.dragging = False


class RenderPipeline:
    """Renders pages of one raster source onto one surface."""

    def __init__(
        self,
        source: PageRasterSource,
        scheduler: FrameScheduler,
        surface: Optional[ScrollSurface] = None,
        device_pixel_ratio: Optional[float] = None,
    ):
        """Initialize pipeline.

        Args:
            source: Page raster collaborator
            scheduler: Frame scheduler used to apply scroll after layout
            surface: Scroll container to keep positioned across renders
            device_pixel_ratio: Bitmap density (default from settings)
        """
        self.source = source
        self.scheduler = scheduler
        self.surface = surface
        self.device_pixel_ratio = device_pixel_ratio or settings.device_pixel_ratio
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self.last_request: Optional[tuple[int, int, float]] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def target_css_width(self, viewport_width: Optional[int], zoom: float) -> int:
        """CSS width to render at for the given viewport and zoom."""
        base = viewport_width or math.floor(
            settings.fallback_window_width * settings.viewport_fallback_fraction
        )
        return max(settings.min_render_width, math.floor(base * zoom))

    def needs_render(self, page_number: int, viewport_width: Optional[int], zoom: float) -> bool:
        """Only a page, zoom or viewport width change warrants a new render."""
        return self.last_request != (page_number, viewport_width or 0, zoom)

    def cancel(self) -> None:
        """Request cancellation of the in-flight render, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def render(
        self,
        page_number: int,
        viewport_width: Optional[int],
        zoom: float,
    ) -> Optional[RenderResult]:
        """Render a page; returns None when superseded or cancelled.

        Raises:
            PageOutOfRangeError: page_number outside 1..page_count
            RenderError: any other raster failure
        """
        page_count = self.source.page_count
        if page_number < 1 or page_number > page_count:
            raise PageOutOfRangeError(page_number, page_count)

        prev = ScrollSnapshot.of(self.surface) if self.surface is not None else None

        self.cancel()
        self._generation += 1
        generation = self._generation
        request = (page_number, viewport_width or 0, zoom)

        css_width = self.target_css_width(viewport_width, zoom)
        task = asyncio.ensure_future(self._rasterize(page_number, css_width))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.debug("Render of page %d cancelled", page_number)
            return None
        except RenderCancelled:
            logger.debug("Render of page %d cancelled by source", page_number)
            return None
        finally:
            if self._task is task:
                self._task = None

        if generation != self._generation:
            logger.debug("Discarding stale render of page %d", page_number)
            return None

        # Failed or cancelled renders leave last_request unset for a retry
        self.last_request = request
        if prev is not None:
            self.scheduler.request_frame(lambda: self._restore_scroll(prev))
        return result

    async def _rasterize(self, page_number: int, css_width: int) -> RenderResult:
        native_width, native_height = self.source.native_size(page_number)
        scale = css_width / native_width
        css_w = math.floor(native_width * scale)
        css_h = math.floor(native_height * scale)
        dpr = self.device_pixel_ratio

        raster = await self.source.render(page_number, scale, dpr)

        return RenderResult(
            page_number=page_number,
            scale=scale,
            css_width=css_w,
            css_height=css_h,
            bitmap_width=math.floor(native_width * scale * dpr),
            bitmap_height=math.floor(native_height * scale * dpr),
            raster=raster,
        )

    def _restore_scroll(self, prev: ScrollSnapshot) -> None:
        surface = self.surface
        left, top = preserve_scroll(prev, surface.scroll_width, surface.scroll_height)
        surface.scroll_left = left
        surface.scroll_top = top
