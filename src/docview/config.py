"""Configuration management for the document viewer core."""

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeometryThresholds(BaseModel):
    """Rejection limits for line boxes, in unit-square page coordinates.

    Upstream OCR occasionally labels a whole paragraph or page as a single
    line. These limits separate real text lines from such boxes and may need
    recalibration per corpus.
    """

    max_height: float = 0.20
    max_area: float = 0.25
    wide_width: float = 0.98
    wide_max_height: float = 0.50
    page_width: float = 0.95
    page_height: float = 0.95
    max_extent: float = 0.999

    # Accepted boxes above these values are logged as "large" for debugging
    large_height: float = 0.08
    large_area: float = 0.08


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "docview"
    postgres_password: str = "localdev"
    postgres_db: str = "docview"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: float = 30.0
    db_echo: bool = False

    # Geometry
    geometry: GeometryThresholds = GeometryThresholds()

    # Rendering
    device_pixel_ratio: float = 1.0
    min_render_width: int = 200
    viewport_fallback_fraction: float = 0.48
    fallback_window_width: int = 1280

    # Zoom
    min_zoom: float = 0.5
    max_zoom: float = 5.0
    zoom_step: float = 1.15

    # Suggestions
    suggestions_display_limit: int = 5
    leaderboard_size: int = 10
    leaderboard_vote_limit: int = 10000

    # Ingestion
    ingest_chunk_size: int = 1000

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Construct async database URL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def sync_database_url(self) -> str:
        """Construct sync database URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


settings = Settings()
