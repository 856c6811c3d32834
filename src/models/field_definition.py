"""Field definition models - compiled-in EXIF field catalogue entries."""

from enum import Enum
from typing import Any
from pydantic import BaseModel, ConfigDict, Field


FIELD_NAME_PREFIX = "field_exif_"


class FieldType(str, Enum):
    """Storage type of a managed field."""
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATETIME = "datetime"
    ENTITY_REFERENCE = "entity_reference"

    def default_settings(self) -> dict[str, Any]:
        """Storage settings every field of this type starts from."""
        return dict(_DEFAULT_SETTINGS[self])


_DEFAULT_SETTINGS: dict[FieldType, dict[str, Any]] = {
    FieldType.TEXT: {"max_length": 255},
    FieldType.INTEGER: {},
    FieldType.DECIMAL: {"precision": 10, "scale": 2},
    FieldType.DATETIME: {"datetime_type": "datetime"},
    FieldType.ENTITY_REFERENCE: {"target_type": "taxonomy_term"},
}


class FieldCategory(str, Enum):
    """Grouping used when presenting the catalogue."""
    COMPUTED = "computed"
    IFD0 = "ifd0"
    EXIF = "exif"
    GPS = "gps"


class FieldDefinition(BaseModel):
    """Immutable description of one EXIF-backed field."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Stable EXIF key, e.g. 'make'")
    value_type: FieldType = Field(..., description="Storage type")
    label: str = Field(..., description="Human-readable label")
    category: FieldCategory = Field(..., description="Catalogue category")
    settings: dict[str, Any] = Field(default_factory=dict, description="Type settings merged over defaults")

    @property
    def field_name(self) -> str:
        """Schema field name derived from the key."""
        return field_name_for_key(self.key)

    def storage_settings(self) -> dict[str, Any]:
        """Type defaults overlaid with this field's own settings."""
        merged = self.value_type.default_settings()
        merged.update(self.settings)
        return merged


def field_name_for_key(key: str) -> str:
    """
    Derive the schema field name for an EXIF key.

    A leading 'exif_' is dropped so 'exif_image_width' becomes
    'field_exif_image_width' rather than 'field_exif_exif_image_width'.
    """
    clean_key = key[len("exif_"):] if key.startswith("exif_") else key
    return f"{FIELD_NAME_PREFIX}{clean_key}"


class RecordType(BaseModel):
    """A category of record (e.g. 'photo') that can carry fields."""
    record_type_id: str = Field(..., description="Record type machine name")
    label: str = Field(default="", description="Human-readable label")
    source_kind: str = Field(default="image", description="Source plugin kind: image, document, video, ...")

    @property
    def is_image(self) -> bool:
        return self.source_kind == "image"
