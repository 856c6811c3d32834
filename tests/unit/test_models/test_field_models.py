"""Tests for field definition and queue task models."""

import pytest
from datetime import timedelta
from pydantic import ValidationError

from src.models.field_definition import (
    FieldCategory,
    FieldDefinition,
    FieldType,
    RecordType,
    field_name_for_key,
)
from src.models.queue_task import FieldCreationTask, QueueItem, utc_now


@pytest.mark.unit
def test_field_name_strips_exif_prefix():
    """Keys already starting with exif_ are not double-prefixed."""
    assert field_name_for_key("exif_image_width") == "field_exif_image_width"
    assert field_name_for_key("make") == "field_exif_make"


@pytest.mark.unit
def test_field_type_default_settings():
    assert FieldType.TEXT.default_settings() == {"max_length": 255}
    assert FieldType.DECIMAL.default_settings() == {"precision": 10, "scale": 2}
    assert FieldType.DATETIME.default_settings() == {"datetime_type": "datetime"}
    assert FieldType.ENTITY_REFERENCE.default_settings() == {"target_type": "taxonomy_term"}
    assert FieldType.INTEGER.default_settings() == {}


@pytest.mark.unit
def test_field_definition_is_frozen():
    definition = FieldDefinition(
        key="make", value_type=FieldType.TEXT, label="Camera Make", category=FieldCategory.IFD0
    )
    with pytest.raises(ValidationError):
        definition.label = "Other"


@pytest.mark.unit
def test_field_definition_storage_settings_merge():
    """Definition settings override the type defaults."""
    definition = FieldDefinition(
        key="make",
        value_type=FieldType.TEXT,
        label="Camera Make",
        category=FieldCategory.IFD0,
        settings={"max_length": 64},
    )
    assert definition.field_name == "field_exif_make"
    assert definition.storage_settings() == {"max_length": 64}


@pytest.mark.unit
def test_record_type_is_image():
    assert RecordType(record_type_id="photo").is_image
    assert not RecordType(record_type_id="document", source_kind="file").is_image


@pytest.mark.unit
def test_queue_item_claim_age():
    now = utc_now()
    item = QueueItem(item_id="01ARZ3NDEKTSV4RRFFQ69G5FAV", queue_name="q", claimed_at=now - timedelta(seconds=42))

    assert item.is_claimed
    assert item.claim_age_seconds(now) == pytest.approx(42.0)


@pytest.mark.unit
def test_unclaimed_queue_item_has_zero_age():
    item = QueueItem(item_id="01ARZ3NDEKTSV4RRFFQ69G5FAV", queue_name="q")
    assert not item.is_claimed
    assert item.claim_age_seconds() == 0.0


@pytest.mark.unit
def test_creation_task_requires_field_key():
    with pytest.raises(ValidationError):
        FieldCreationTask(record_type_id="photo")
