"""Animation-frame scheduling and pointer coalescing."""

import asyncio
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

T = TypeVar("T")

DEFAULT_FPS = 60.0


class FrameScheduler(Protocol):
    """Runs callbacks at the next frame boundary."""

    def request_frame(self, callback: Callable[[], None]) -> Any: ...

    def cancel_frame(self, handle: Any) -> None: ...


class AsyncioFrameScheduler:
    """Frame scheduler driven by the running asyncio loop."""

    def __init__(self, fps: float = DEFAULT_FPS, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.interval = 1.0 / fps
        self._loop = loop

    def request_frame(self, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(self.interval, callback)

    def cancel_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class FrameCoalescer(Generic[T]):
    """Delivers at most one value per frame: the latest one pushed.

    Intermediate values pushed between two frame boundaries are discarded.
    """

    def __init__(self, scheduler: FrameScheduler, callback: Callable[[T], None]):
        self._scheduler = scheduler
        self._callback = callback
        self._latest: Optional[T] = None
        self._handle: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        self._latest = value
        if self._handle is None:
            self._handle = self._scheduler.request_frame(self._flush)

    def cancel(self) -> None:
        """Drop the pending value and its frame request."""
        self._latest = None
        if self._handle is not None:
            self._scheduler.cancel_frame(self._handle)
            self._handle = None

    def _flush(self) -> None:
        self._handle = None
        value, self._latest = self._latest, None
        if value is not None:
            self._callback(value)
