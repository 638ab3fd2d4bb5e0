"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Echo suppression
    echo_retention_seconds: float = Field(
        default=5.0,
        gt=0,
        validation_alias=AliasChoices(
            "NARRATOR_ECHO_RETENTION_SECONDS", "echo_retention_seconds"
        ),
    )
    echo_max_records: int = Field(
        default=30,
        ge=1,
        validation_alias=AliasChoices("NARRATOR_ECHO_MAX_RECORDS", "echo_max_records"),
    )
    echo_similarity_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        validation_alias=AliasChoices(
            "NARRATOR_ECHO_SIMILARITY", "echo_similarity_threshold"
        ),
    )
    echo_word_overlap_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        validation_alias=AliasChoices(
            "NARRATOR_ECHO_WORD_OVERLAP", "echo_word_overlap_threshold"
        ),
    )

    # Voice input
    confidence_threshold: float = Field(
        default=0.5,
        ge=0,
        le=1,
        validation_alias=AliasChoices(
            "NARRATOR_CONFIDENCE_THRESHOLD", "confidence_threshold"
        ),
    )

    # Playback
    smart_back_seconds: float = Field(
        default=3.0,
        ge=0,
        validation_alias=AliasChoices(
            "NARRATOR_SMART_BACK_SECONDS", "smart_back_seconds"
        ),
    )
    autoplay: bool = Field(
        default=True,
        validation_alias=AliasChoices("NARRATOR_AUTOPLAY", "autoplay"),
    )
    include_status: bool = Field(
        default=True,
        validation_alias=AliasChoices("NARRATOR_INCLUDE_STATUS", "include_status"),
    )
    pronunciation_map: dict[str, str] = Field(
        default_factory=lambda: {"Anchorhead": "Anchor-head"},
        validation_alias=AliasChoices(
            "NARRATOR_PRONUNCIATION_MAP", "pronunciation_map"
        ),
        description="JSON object mapping words to how they should be spoken.",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_file: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_FILE", "log_file"),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: PROJECT_ROOT / "logging_settings.conf",
        validation_alias=AliasChoices(
            "LOGGING_SETTINGS_PATH", "logging_settings_path"
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
