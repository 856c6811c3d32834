"""FieldQueueSettings model - persisted EXIF field configuration."""

from pydantic import BaseModel, Field


class FieldQueueSettings(BaseModel):
    """Which EXIF fields are wanted on which record types."""
    enabled_field_keys: set[str] = Field(default_factory=set, description="Selected EXIF field keys")
    enabled_record_types: set[str] = Field(
        default_factory=set,
        description="Record types to manage; empty means every image record type"
    )
    auto_create_enabled: bool = Field(default=True, description="Create missing fields automatically")
