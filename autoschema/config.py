"""
Configuration management for autoschema.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from ``AUTOSCHEMA_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOSCHEMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = Field(default=None)

    # Models
    models_package: str = Field(
        default="app.models",
        description="Dotted package whose modules declare the models to migrate.",
    )

    # Migrations
    migrations_path: str = Field(default="migrations/versions")
    batch_recreate: Literal["auto", "always", "never"] = Field(
        default="auto",
        description="Passed to op.batch_alter_table in generated incremental migrations; positioned columns always recreate.",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
