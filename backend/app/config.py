"""
Application configuration using Pydantic Settings.

All environment variables are accessed through this config object.
Never use os.getenv() directly in business logic.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Configuration
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:5173"],
        description="CORS allowed origins",
    )
    MAX_UPLOAD_SIZE: int = Field(
        default=10485760,
        description="Maximum upload size in bytes (10MB)",
    )

    # Buffer Configuration
    UPLOAD_SIZE_THRESHOLD: int = Field(
        default=10240,
        description="Bytes kept in memory before an upload spills encrypted to disk",
    )
    UPLOAD_REPOSITORY: Optional[str] = Field(
        default=None,
        description="Directory for encrypted temp files (system temp dir if unset)",
    )

    # Cleanup Configuration
    FILE_TTL_HOURS: int = Field(
        default=24,
        description="Age after which orphaned encrypted temp files are removed",
    )
    CLEANUP_INTERVAL_HOURS: int = Field(
        default=1,
        description="Interval between cleanup sweeps in hours",
    )


# Global settings instance
settings = Settings()
