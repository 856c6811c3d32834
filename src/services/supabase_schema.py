"""Schema mutator backed by Supabase metadata tables."""

from typing import Any

from src.models.field_definition import FieldType, RecordType
from src.models.queue_task import utc_now
from src.services.schema_mutator import SchemaMutator
from src.services.supabase_client import SupabaseClient
from src.utils.errors import SchemaMutationError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

RECORD_TYPES_TABLE = "record_types"
STORAGES_TABLE = "field_storages"
INSTANCES_TABLE = "field_instances"
VALUES_TABLE = "record_field_values"


class SupabaseSchemaMutator(SchemaMutator):
    """
    Field metadata kept in record_types / field_storages / field_instances.

    Field lists per record type are cached in-process; cache invalidation
    after a create drops the affected entries. Existence checks always go to
    the database so worker re-verification never reads a stale answer.
    """

    def __init__(self):
        self._field_cache: dict[str, list[str]] = {}

    def list_record_types(self) -> list[RecordType]:
        with SupabaseClient() as client:
            try:
                result = client.table(RECORD_TYPES_TABLE).select("*").order("record_type_id").execute()
            except Exception as e:
                raise SchemaMutationError(f"Failed to list record types: {e}")
        return [RecordType.model_validate(row) for row in result.data or []]

    def field_exists(self, record_type_id: str, field_name: str) -> bool:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(INSTANCES_TABLE)
                    .select("field_name")
                    .eq("record_type_id", record_type_id)
                    .eq("field_name", field_name)
                    .execute()
                )
            except Exception as e:
                raise SchemaMutationError(f"Failed to check field {field_name} on {record_type_id}: {e}")
        return len(result.data or []) > 0

    def list_fields(self, record_type_id: str) -> list[str]:
        if record_type_id in self._field_cache:
            return list(self._field_cache[record_type_id])
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(INSTANCES_TABLE)
                    .select("field_name")
                    .eq("record_type_id", record_type_id)
                    .order("field_name")
                    .execute()
                )
            except Exception as e:
                raise SchemaMutationError(f"Failed to list fields on {record_type_id}: {e}")
        fields = [row["field_name"] for row in result.data or []]
        self._field_cache[record_type_id] = fields
        return list(fields)

    def storage_exists(self, field_name: str) -> bool:
        with SupabaseClient() as client:
            try:
                result = client.table(STORAGES_TABLE).select("field_name").eq("field_name", field_name).execute()
            except Exception as e:
                raise SchemaMutationError(f"Failed to check storage {field_name}: {e}")
        return len(result.data or []) > 0

    def create_storage(self, field_name: str, field_type: FieldType, settings: dict[str, Any]) -> None:
        with SupabaseClient() as client:
            try:
                client.table(STORAGES_TABLE).insert({
                    "field_name": field_name,
                    "field_type": FieldType(field_type).value,
                    "settings": settings,
                    "cardinality": 1,
                    "created_at": utc_now().isoformat(),
                }).execute()
            except Exception as e:
                raise SchemaMutationError(f"Failed to create storage {field_name}: {e}")

    def create_field(self, record_type_id: str, field_name: str, label: str, settings: dict[str, Any]) -> None:
        with SupabaseClient() as client:
            try:
                client.table(INSTANCES_TABLE).insert({
                    "record_type_id": record_type_id,
                    "field_name": field_name,
                    "label": label,
                    "settings": settings,
                    "required": False,
                    "created_at": utc_now().isoformat(),
                }).execute()
            except Exception as e:
                raise SchemaMutationError(f"Failed to create {field_name} on {record_type_id}: {e}")

    def configure_display(self, record_type_id: str, field_name: str, form_widget: str, view_formatter: str) -> None:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(INSTANCES_TABLE)
                    .update({"form_widget": form_widget, "view_formatter": view_formatter})
                    .eq("record_type_id", record_type_id)
                    .eq("field_name", field_name)
                    .execute()
                )
            except Exception as e:
                raise SchemaMutationError(f"Failed to configure display for {field_name}: {e}")
        if not result.data:
            raise SchemaMutationError(f"{field_name} does not exist on {record_type_id}")

    def remove_field(self, record_type_id: str, field_name: str) -> None:
        with SupabaseClient() as client:
            try:
                (
                    client.table(INSTANCES_TABLE)
                    .delete()
                    .eq("record_type_id", record_type_id)
                    .eq("field_name", field_name)
                    .execute()
                )
            except Exception as e:
                raise SchemaMutationError(f"Failed to remove {field_name} from {record_type_id}: {e}")
        self._field_cache.pop(record_type_id, None)

    def storage_in_use(self, field_name: str) -> bool:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(INSTANCES_TABLE)
                    .select("record_type_id")
                    .eq("field_name", field_name)
                    .limit(1)
                    .execute()
                )
            except Exception as e:
                raise SchemaMutationError(f"Failed to check storage usage for {field_name}: {e}")
        return len(result.data or []) > 0

    def delete_storage(self, field_name: str) -> None:
        with SupabaseClient() as client:
            try:
                client.table(STORAGES_TABLE).delete().eq("field_name", field_name).execute()
            except Exception as e:
                raise SchemaMutationError(f"Failed to delete storage {field_name}: {e}")

    def invalidate_caches(self, tags: list[str]) -> None:
        for tag in tags:
            if tag.startswith("form:"):
                self._field_cache.pop(tag[len("form:"):], None)
            elif tag == "entity_field_info":
                self._field_cache.clear()
        logger.debug("Schema caches invalidated", tags=tags)

    def purge_field_data(self, record_type_id: str, field_name: str) -> int:
        with SupabaseClient() as client:
            try:
                # Use the database function if available
                try:
                    result = client.rpc("purge_field_data", {
                        "p_record_type_id": record_type_id,
                        "p_field_name": field_name,
                    }).execute()
                    return int(result.data or 0)
                except Exception:
                    # Fallback to direct delete
                    result = (
                        client.table(VALUES_TABLE)
                        .delete()
                        .eq("record_type_id", record_type_id)
                        .eq("field_name", field_name)
                        .execute()
                    )
                    return len(result.data or [])
            except Exception as e:
                raise SchemaMutationError(f"Failed to purge data for {field_name} on {record_type_id}: {e}")
