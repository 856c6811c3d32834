"""Schema mutator - the seam to whatever stores record types and their fields."""

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from src.models.field_definition import FieldType, RecordType
from src.utils.errors import SchemaMutationError

MAX_INVALIDATED_TAGS = 1000


class SchemaMutator(ABC):
    """
    Create, inspect and drop fields on record types.

    Field storage is the record-type-independent definition shared by every
    field instance with the same name. Instances attach a storage to one
    record type.
    """

    @abstractmethod
    def list_record_types(self) -> list[RecordType]:
        ...

    @abstractmethod
    def field_exists(self, record_type_id: str, field_name: str) -> bool:
        ...

    @abstractmethod
    def list_fields(self, record_type_id: str) -> list[str]:
        ...

    @abstractmethod
    def storage_exists(self, field_name: str) -> bool:
        ...

    @abstractmethod
    def create_storage(self, field_name: str, field_type: FieldType, settings: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def create_field(self, record_type_id: str, field_name: str, label: str, settings: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def configure_display(self, record_type_id: str, field_name: str, form_widget: str, view_formatter: str) -> None:
        ...

    @abstractmethod
    def remove_field(self, record_type_id: str, field_name: str) -> None:
        ...

    @abstractmethod
    def storage_in_use(self, field_name: str) -> bool:
        """True while any record type still has an instance of the storage."""

    @abstractmethod
    def delete_storage(self, field_name: str) -> None:
        ...

    @abstractmethod
    def invalidate_caches(self, tags: list[str]) -> None:
        ...

    @abstractmethod
    def purge_field_data(self, record_type_id: str, field_name: str) -> int:
        """Drop stored values of a removed field; return how many were purged."""

    def get_record_type(self, record_type_id: str) -> Optional[RecordType]:
        for record_type in self.list_record_types():
            if record_type.record_type_id == record_type_id:
                return record_type
        return None


class InMemorySchemaMutator(SchemaMutator):
    """Dictionary-backed schema, for offline runs and tests."""

    def __init__(self, record_types: Optional[list[RecordType]] = None):
        self._lock = threading.RLock()
        self.record_types: dict[str, RecordType] = {}
        self.storages: dict[str, dict[str, Any]] = {}
        self.instances: dict[tuple[str, str], dict[str, Any]] = {}
        self.values: dict[tuple[str, str], dict[str, Any]] = {}
        # Most recent invalidated cache tags, kept so callers can inspect them
        self.invalidated_tags: list[str] = []
        for record_type in record_types or []:
            self.add_record_type(record_type)

    def add_record_type(self, record_type: RecordType) -> None:
        with self._lock:
            self.record_types[record_type.record_type_id] = record_type

    def set_value(self, record_type_id: str, field_name: str, record_id: str, value: Any) -> None:
        with self._lock:
            if (record_type_id, field_name) not in self.instances:
                raise SchemaMutationError(f"{field_name} does not exist on {record_type_id}")
            self.values.setdefault((record_type_id, field_name), {})[record_id] = value

    def list_record_types(self) -> list[RecordType]:
        with self._lock:
            return list(self.record_types.values())

    def field_exists(self, record_type_id: str, field_name: str) -> bool:
        with self._lock:
            return (record_type_id, field_name) in self.instances

    def list_fields(self, record_type_id: str) -> list[str]:
        with self._lock:
            return sorted(name for (rt, name) in self.instances if rt == record_type_id)

    def storage_exists(self, field_name: str) -> bool:
        with self._lock:
            return field_name in self.storages

    def create_storage(self, field_name: str, field_type: FieldType, settings: dict[str, Any]) -> None:
        with self._lock:
            if field_name in self.storages:
                raise SchemaMutationError(f"Field storage {field_name} already exists")
            self.storages[field_name] = {
                "field_type": FieldType(field_type).value,
                "settings": dict(settings),
                "cardinality": 1,
            }

    def create_field(self, record_type_id: str, field_name: str, label: str, settings: dict[str, Any]) -> None:
        with self._lock:
            if record_type_id not in self.record_types:
                raise SchemaMutationError(f"Unknown record type {record_type_id}")
            if field_name not in self.storages:
                raise SchemaMutationError(f"No field storage for {field_name}")
            if (record_type_id, field_name) in self.instances:
                raise SchemaMutationError(f"{field_name} already exists on {record_type_id}")
            self.instances[(record_type_id, field_name)] = {
                "label": label,
                "settings": dict(settings),
                "required": False,
            }

    def configure_display(self, record_type_id: str, field_name: str, form_widget: str, view_formatter: str) -> None:
        with self._lock:
            instance = self.instances.get((record_type_id, field_name))
            if instance is None:
                raise SchemaMutationError(f"{field_name} does not exist on {record_type_id}")
            instance["form_widget"] = form_widget
            instance["view_formatter"] = view_formatter

    def remove_field(self, record_type_id: str, field_name: str) -> None:
        with self._lock:
            if self.instances.pop((record_type_id, field_name), None) is None:
                raise SchemaMutationError(f"{field_name} does not exist on {record_type_id}")

    def storage_in_use(self, field_name: str) -> bool:
        with self._lock:
            return any(name == field_name for (_, name) in self.instances)

    def delete_storage(self, field_name: str) -> None:
        with self._lock:
            if self.storages.pop(field_name, None) is None:
                raise SchemaMutationError(f"Field storage {field_name} does not exist")

    def invalidate_caches(self, tags: list[str]) -> None:
        with self._lock:
            self.invalidated_tags.extend(tags)
            del self.invalidated_tags[:-MAX_INVALIDATED_TAGS]

    def purge_field_data(self, record_type_id: str, field_name: str) -> int:
        with self._lock:
            return len(self.values.pop((record_type_id, field_name), {}))
