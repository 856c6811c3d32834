"""Tests for the Supabase schema mutator with mocked query chains."""

import pytest
from unittest.mock import MagicMock, Mock, patch

from src.models.field_definition import FieldType
from src.services.supabase_schema import SupabaseSchemaMutator
from src.utils.errors import SchemaMutationError


@pytest.fixture
def client():
    mock_client = MagicMock()
    with patch("src.services.supabase_client.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.mark.unit
def test_list_record_types(client):
    client.table.return_value.select.return_value.order.return_value.execute.return_value = Mock(data=[
        {"record_type_id": "photo", "label": "Photo", "source_kind": "image"},
        {"record_type_id": "document", "label": "Document", "source_kind": "file"},
    ])

    record_types = SupabaseSchemaMutator().list_record_types()

    assert [rt.record_type_id for rt in record_types] == ["photo", "document"]
    assert record_types[0].is_image


@pytest.mark.unit
def test_field_exists(client):
    chain = client.table.return_value.select.return_value.eq.return_value.eq.return_value
    chain.execute.return_value = Mock(data=[{"field_name": "field_exif_make"}])

    assert SupabaseSchemaMutator().field_exists("photo", "field_exif_make") is True


@pytest.mark.unit
def test_list_fields_cached_until_invalidated(client):
    chain = client.table.return_value.select.return_value.eq.return_value.order.return_value
    chain.execute.return_value = Mock(data=[{"field_name": "field_exif_make"}])
    mutator = SupabaseSchemaMutator()

    assert mutator.list_fields("photo") == ["field_exif_make"]
    assert mutator.list_fields("photo") == ["field_exif_make"]
    assert chain.execute.call_count == 1

    mutator.invalidate_caches(["form:photo"])
    mutator.list_fields("photo")
    assert chain.execute.call_count == 2


@pytest.mark.unit
def test_create_storage_inserts_type_and_settings(client):
    SupabaseSchemaMutator().create_storage("field_exif_iso", FieldType.INTEGER, {})

    row = client.table.return_value.insert.call_args[0][0]
    assert row["field_name"] == "field_exif_iso"
    assert row["field_type"] == "integer"


@pytest.mark.unit
def test_configure_display_on_missing_field_raises(client):
    chain = client.table.return_value.update.return_value.eq.return_value.eq.return_value
    chain.execute.return_value = Mock(data=[])

    with pytest.raises(SchemaMutationError):
        SupabaseSchemaMutator().configure_display("photo", "field_exif_make", "string_textfield", "string")


@pytest.mark.unit
def test_purge_uses_rpc(client):
    client.rpc.return_value.execute.return_value = Mock(data=4)

    assert SupabaseSchemaMutator().purge_field_data("photo", "field_exif_make") == 4
    client.rpc.assert_called_once_with("purge_field_data", {
        "p_record_type_id": "photo",
        "p_field_name": "field_exif_make",
    })


@pytest.mark.unit
def test_purge_falls_back_to_delete(client):
    client.rpc.side_effect = Exception("function purge_field_data does not exist")
    chain = client.table.return_value.delete.return_value.eq.return_value.eq.return_value
    chain.execute.return_value = Mock(data=[{"record_id": "a"}, {"record_id": "b"}])

    assert SupabaseSchemaMutator().purge_field_data("photo", "field_exif_make") == 2


@pytest.mark.unit
def test_failures_wrapped_as_schema_errors(client):
    client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("duplicate key")

    with pytest.raises(SchemaMutationError):
        SupabaseSchemaMutator().create_field("photo", "field_exif_make", "Camera Make", {})
