"""Field definition registry - the compiled-in EXIF field catalogue."""

from typing import Optional

from src.models.field_definition import (
    FIELD_NAME_PREFIX,
    FieldCategory,
    FieldDefinition,
    FieldType,
    field_name_for_key,
)


def _define(key: str, value_type: FieldType, label: str, category: FieldCategory, **settings) -> FieldDefinition:
    return FieldDefinition(key=key, value_type=value_type, label=label, category=category, settings=settings)


_DEFINITIONS: tuple[FieldDefinition, ...] = (
    _define("computed_height", FieldType.INTEGER, "Height (pixels)", FieldCategory.COMPUTED),
    _define("computed_width", FieldType.INTEGER, "Width (pixels)", FieldCategory.COMPUTED),
    _define("make", FieldType.TEXT, "Camera Make", FieldCategory.IFD0),
    _define("model", FieldType.TEXT, "Camera Model", FieldCategory.IFD0),
    _define("orientation", FieldType.INTEGER, "Orientation", FieldCategory.IFD0),
    _define("software", FieldType.TEXT, "Software", FieldCategory.IFD0),
    _define("copyright", FieldType.TEXT, "Copyright", FieldCategory.IFD0),
    _define("artist", FieldType.TEXT, "Artist/Author", FieldCategory.IFD0),
    _define("datetime_original", FieldType.DATETIME, "Date/Time Original", FieldCategory.EXIF),
    _define("datetime_digitized", FieldType.DATETIME, "Date/Time Digitized", FieldCategory.EXIF),
    _define("exif_image_width", FieldType.INTEGER, "EXIF Image Width", FieldCategory.EXIF),
    _define("exif_image_length", FieldType.INTEGER, "EXIF Image Height", FieldCategory.EXIF),
    _define("exposure", FieldType.TEXT, "Exposure Time", FieldCategory.EXIF),
    _define("aperture", FieldType.TEXT, "Aperture (F-Number)", FieldCategory.EXIF),
    _define("iso", FieldType.INTEGER, "ISO Speed", FieldCategory.EXIF),
    _define("focal_length", FieldType.TEXT, "Focal Length", FieldCategory.EXIF),
    _define("gps_latitude", FieldType.TEXT, "GPS Latitude", FieldCategory.GPS),
    _define("gps_longitude", FieldType.TEXT, "GPS Longitude", FieldCategory.GPS),
    _define("gps_altitude", FieldType.TEXT, "GPS Altitude", FieldCategory.GPS),
    _define("gps_date", FieldType.DATETIME, "GPS Date/Time", FieldCategory.GPS),
    _define("gps_coordinates", FieldType.TEXT, "GPS Coordinates (formatted)", FieldCategory.GPS),
)

_CATEGORY_LABELS: dict[FieldCategory, str] = {
    FieldCategory.COMPUTED: "Basic Image Information",
    FieldCategory.IFD0: "Camera Information",
    FieldCategory.EXIF: "EXIF Information",
    FieldCategory.GPS: "GPS Information",
}

# Default form widget and view formatter per storage type
_FORM_WIDGETS: dict[FieldType, str] = {
    FieldType.TEXT: "string_textfield",
    FieldType.INTEGER: "number",
    FieldType.DECIMAL: "number",
    FieldType.DATETIME: "datetime_default",
    FieldType.ENTITY_REFERENCE: "entity_reference_autocomplete",
}

_VIEW_FORMATTERS: dict[FieldType, str] = {
    FieldType.TEXT: "string",
    FieldType.INTEGER: "number_integer",
    FieldType.DECIMAL: "number_decimal",
    FieldType.DATETIME: "datetime_default",
    FieldType.ENTITY_REFERENCE: "entity_reference_label",
}


class FieldRegistry:
    """Lookup over the EXIF field catalogue. Stateless after construction."""

    def __init__(self, definitions: Optional[tuple[FieldDefinition, ...]] = None):
        definitions = definitions if definitions is not None else _DEFINITIONS
        self._by_key: dict[str, FieldDefinition] = {d.key: d for d in definitions}
        self._by_field_name: dict[str, FieldDefinition] = {d.field_name: d for d in definitions}
        if len(self._by_field_name) != len(self._by_key):
            raise ValueError("Field definitions derive colliding field names")

    def get(self, key: str) -> FieldDefinition:
        return self._by_key[key]

    def type_of(self, key: str) -> FieldType:
        return self._by_key[key].value_type

    def label_of(self, key: str) -> str:
        return self._by_key[key].label

    def all_keys(self) -> set[str]:
        return set(self._by_key)

    def ordered_keys(self) -> list[str]:
        """Keys in catalogue order."""
        return list(self._by_key)

    def field_name_for(self, key: str) -> str:
        if key not in self._by_key:
            raise KeyError(key)
        return field_name_for_key(key)

    def field_names(self) -> set[str]:
        return set(self._by_field_name)

    def is_valid_key(self, key: str) -> bool:
        return key in self._by_key

    def key_for_field_name(self, field_name: str) -> Optional[str]:
        """Reverse lookup; None for names the registry does not manage."""
        definition = self._by_field_name.get(field_name)
        return definition.key if definition else None

    def is_managed_field_name(self, field_name: str) -> bool:
        return field_name.startswith(FIELD_NAME_PREFIX) and field_name in self._by_field_name

    def keys_by_category(self) -> dict[FieldCategory, list[str]]:
        grouped: dict[FieldCategory, list[str]] = {category: [] for category in FieldCategory}
        for definition in self._by_key.values():
            grouped[definition.category].append(definition.key)
        return grouped

    def category_labels(self) -> dict[FieldCategory, str]:
        return dict(_CATEGORY_LABELS)

    @staticmethod
    def form_widget_for(field_type: FieldType) -> str:
        return _FORM_WIDGETS.get(field_type, "string_textfield")

    @staticmethod
    def view_formatter_for(field_type: FieldType) -> str:
        return _VIEW_FORMATTERS.get(field_type, "string")


_registry: Optional[FieldRegistry] = None


def get_field_registry() -> FieldRegistry:
    """Get or create the default registry."""
    global _registry
    if _registry is None:
        _registry = FieldRegistry()
    return _registry
