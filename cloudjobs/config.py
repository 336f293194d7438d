"""
Unified configuration management: constants + environment variables with validation.
"""
from __future__ import annotations

import threading
from typing import Any

import structlog
from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from cloudjobs import constants

logger = structlog.get_logger(__name__)


def _load_constants_config(settings_fields: set[str]) -> dict[str, Any]:
    """Load configuration defaults from the constants module.

    Only includes constants that are defined in the Settings model.
    """
    logger.debug(
        "loading_constants_config",
        environment=constants.ENVIRONMENT,
        has_log_level="LOG_LEVEL" in constants.CONSTANTS,
        has_log_format="LOG_FORMAT" in constants.CONSTANTS,
    )
    return {
        key: value
        for key, value in constants.CONSTANTS.items()
        if key in settings_fields
    }


class ConstantsConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads configuration from constants.py."""

    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self._settings_cls = settings_cls

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return super().get_field_value(field, field_name)

    def __call__(self) -> dict[str, Any]:
        settings_fields = set(self._settings_cls.model_fields.keys())
        return _load_constants_config(settings_fields)


class Settings(BaseSettings):
    """Application settings with validation and metadata."""

    # App metadata
    APP_NAME: str = "cloudjobs"
    APP_VERSION: str = "0.0.0"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    # Credentials (JSON service account); None means Application Default Credentials
    GCP_SERVICE_ACCOUNT: str | None = Field(default=None, exclude=True)

    # Job lifecycle timing
    POLL_DELAY_SECONDS: float = Field(default=30, ge=0)
    OPERATION_POLL_INTERVAL_SECONDS: float = Field(default=5.0, ge=0)
    IDLE_POLL_INTERVAL_SECONDS: float = Field(default=10.0, ge=0)
    IDLE_MAX_POLLS: int = Field(default=30, ge=1)

    # Batch job template
    BATCH_MACHINE_TYPE: str = "e2-standard-4"
    BATCH_TASK_COUNT: int = Field(default=4, ge=1)
    BATCH_PARALLELISM: int = Field(default=2, ge=1)
    BATCH_SCRIPT: str = "echo Hello world!"
    BATCH_MAX_RUN_DURATION_SECONDS: int = Field(default=3600, ge=1)

    # Storage demo
    STORAGE_BUCKET_PREFIX: str = "cloudjobs-demo"
    STORAGE_LOCATION: str = "US"

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and console renderers are available."""
        normalized = v.strip().lower()
        if normalized not in ("json", "console"):
            raise ValueError(f"LOG_FORMAT must be 'json' or 'console', got {v!r}")
        return normalized

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        normalized = v.strip().upper()
        if normalized not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported LOG_LEVEL {v!r}")
        return normalized

    @field_validator("STORAGE_BUCKET_PREFIX")
    @classmethod
    def validate_bucket_prefix(cls, v: str) -> str:
        # Bucket names are lowercase; uuid hex suffix adds 33 chars and the limit is 63
        if not v or v != v.lower() or len(v) > 30:
            raise ValueError("STORAGE_BUCKET_PREFIX must be lowercase and at most 30 characters")
        return v

    @computed_field
    @property
    def environment(self) -> str:
        """Current environment (dev, stg, or prd)."""
        return constants.ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=True,
        populate_by_name=True,
        env_file=None,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources: init kwargs, env vars, then constants as defaults."""
        return (
            init_settings,
            env_settings,  # Env vars override constants
            ConstantsConfigSettingsSource(settings_cls),  # Constants provide defaults
            dotenv_settings,
            file_secret_settings,
        )

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from constants and environment variables.

        Pydantic raises ValidationError if a value fails validation.
        """
        return cls()


_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get Settings instance (thread-safe, loaded on first use)."""
    global _settings_instance
    if _settings_instance is None:
        with _settings_lock:
            if _settings_instance is None:
                _settings_instance = Settings.load()
    return _settings_instance
