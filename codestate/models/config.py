"""Configuration models for codestate."""

from typing import Optional

from pydantic import Field, field_validator

from .base import DocumentModel

CONFIG_VERSION = "1.0.0"
LOG_LEVELS = ("ERROR", "WARNING", "INFO", "DEBUG")


class EncryptionConfig(DocumentModel):
    """At-rest encryption settings."""
    enabled: bool = False
    encryption_key: Optional[str] = None


class AppConfig(DocumentModel):
    """User configuration stored in config.json."""
    version: str = CONFIG_VERSION
    ide: str = "vscode"
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)
    storage_path: Optional[str] = None  # defaults to <home>/data
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
        return level
