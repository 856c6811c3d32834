"""Queue configuration with environment variable support."""

import os
from typing import Optional

from src.models.settings import FieldQueueSettings
from src.utils.errors import ConfigurationError


def _csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class QueueConfig:
    """Centralized queue configuration."""

    CREATION_QUEUE_NAME = "exif_field_creation"
    REMOVAL_QUEUE_NAME = "exif_field_removal"

    # Environment variable defaults
    BACKEND = os.environ.get("FIELD_QUEUE_BACKEND", "memory").lower()
    STUCK_ITEM_AGE_SECONDS = int(os.environ.get("STUCK_ITEM_AGE_SECONDS", "300"))  # 5 minutes
    DEFAULT_MAX_ITEMS = int(os.environ.get("FIELD_QUEUE_DEFAULT_MAX_ITEMS", "10"))
    SUCCESS_MARKER_TTL_SECONDS = int(os.environ.get("SUCCESS_MARKER_TTL_SECONDS", "300"))

    @classmethod
    def backend(cls) -> str:
        """Return the configured backend name, validated."""
        backend = os.environ.get("FIELD_QUEUE_BACKEND", cls.BACKEND).lower()
        if backend not in ("memory", "supabase"):
            raise ConfigurationError(
                f"FIELD_QUEUE_BACKEND must be 'memory' or 'supabase', got {backend!r}"
            )
        return backend


def load_field_settings() -> FieldQueueSettings:
    """
    Build the persisted field configuration from the environment.

    EXIF_ENABLED_FIELDS and EXIF_ENABLED_RECORD_TYPES are comma-separated;
    EXIF_AUTO_CREATE_FIELDS defaults to enabled.
    """
    return FieldQueueSettings(
        enabled_field_keys=set(_csv(os.environ.get("EXIF_ENABLED_FIELDS"))),
        enabled_record_types=set(_csv(os.environ.get("EXIF_ENABLED_RECORD_TYPES"))),
        auto_create_enabled=_flag(os.environ.get("EXIF_AUTO_CREATE_FIELDS"), True),
    )


def parse_csv_option(value: Optional[str]) -> list[str]:
    """Split a comma-separated command line option into clean values."""
    return _csv(value)
