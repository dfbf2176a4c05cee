"""Application configuration using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LOGBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Logbook Importer"
    version: str = "0.3.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Paths
    config_path: Path = Field(
        default=Path("./config"),
        description="Directory holding the preferences database",
    )

    # Database
    database_url: str | None = Field(
        default=None,
        description="Override for the preferences database URL",
    )

    # Import backend
    backend_url: str = Field(
        default="http://127.0.0.1:3001/api",
        description="Base URL of the flight log import backend",
    )
    backend_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds (unset waits indefinitely)",
    )

    # Desktop mode: sync folder scanning needs direct filesystem access
    filesystem_access: bool = Field(
        default=True,
        description="Allow sync folder scanning and startup autoscan",
    )

    # Rate limiting for the shared (default) credential
    cooldown_seconds: int = Field(
        default=5,
        ge=0,
        le=60,
        description="Pause between successful imports on the default credential",
    )
    cooldown_tick_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Length of one cooldown countdown step",
    )
    personal_refresh_interval: int = Field(
        default=2,
        ge=1,
        description="Refresh the flight list every N imports on a personal credential",
    )

    # Background sync
    background_sync_delay: float = Field(
        default=3.0,
        ge=0,
        description="Seconds to wait after startup before scanning the sync folder",
    )
    background_sync_notice_seconds: float = Field(
        default=0.5,
        ge=0,
        description="How long the 'new files found' notice shows before importing",
    )

    # Supported extensions
    manual_extensions: list[str] = Field(
        default=[".txt", ".dat", ".log", ".csv"],
        description="Extensions accepted by Browse and drag-and-drop",
    )
    sync_extensions: list[str] = Field(
        default=[".txt"],
        description="Extensions picked up from the sync folder",
    )

    # Hashing
    hash_chunk_size: int = Field(
        default=8192,
        ge=512,
        description="Chunk size for streamed content hashing",
    )


# Global settings instance
settings = Settings()
