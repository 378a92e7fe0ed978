"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Timeline Approvals Service"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Database (Turso)
    turso_database_url: str | None = Field(default=None)
    turso_auth_token: str | None = Field(default=None)

    # Scheduling
    territory_buffer_hours: float = Field(
        default=4.0,
        ge=0.0,
        description="Minimum hours between same-territory engagements",
    )
    default_duration_hours: float = Field(
        default=2.0,
        gt=0.0,
        description="Duration assumed for items without an end time",
    )
    slot_max_results: int = Field(default=5, ge=1, le=100)
    business_hours_start: int = Field(default=9, ge=0, le=23)
    business_hours_end: int = Field(default=18, ge=1, le=24)
    conflict_exclude_terminal: bool = Field(
        default=False,
        description="Drop done/cancelled items before conflict detection",
    )

    # Structural changes
    dependency_cycle_check: bool = Field(
        default=True,
        description="Reject dependency edge sets that would close a cycle",
    )
    allow_global_lane_edits: bool = Field(
        default=False,
        description="Allow updating/deleting workspace-wide lanes",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
