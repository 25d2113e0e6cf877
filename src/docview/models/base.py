"""Base models and common types for the document viewer core."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class HighlightSource(str, Enum):
    """Which pane drove the current highlight."""

    PAGE = "page"
    TRANSCRIPT = "transcript"


class SortMode(str, Enum):
    """Ordering of suggestions under one line."""

    TOP = "top"  # votes desc, newest first on ties
    NEWEST = "newest"  # created_at desc, votes ignored


class NormalizedBox(BaseModel):
    """Line box in unit-square page coordinates.

    Derived per page render and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    x: float = Field(..., ge=0.0, le=1.0, description="Left edge (0-1)")
    y: float = Field(..., ge=0.0, le=1.0, description="Top edge (0-1)")
    w: float = Field(..., gt=0.0, le=1.0, description="Width (0-1)")
    h: float = Field(..., gt=0.0, le=1.0, description="Height (0-1)")
    area: float = Field(..., gt=0.0)

    @property
    def x2(self) -> float:
        """Right edge X coordinate."""
        return self.x + self.w

    @property
    def y2(self) -> float:
        """Bottom edge Y coordinate."""
        return self.y + self.h

    def contains(self, u: float, v: float) -> bool:
        """Inclusive point-in-rectangle test."""
        return self.x <= u <= self.x2 and self.y <= v <= self.y2

    def to_pixels(self, width: float, height: float) -> dict:
        """Convert to pixel values for a surface of the given size."""
        return {
            "x": self.x * width,
            "y": self.y * height,
            "width": self.w * width,
            "height": self.h * height,
        }


class BaseRecord(BaseModel):
    """Base class for stored records with common fields."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utcnow)
