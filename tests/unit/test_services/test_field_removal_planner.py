"""Tests for the field-removal planner."""

import pytest

from src.models.progress import ProgressState
from tests.utils.helpers import plan_and_drain


@pytest.fixture
def photo_with_fields(creation_planner, creation_worker, mutator):
    """Photo record type carrying three EXIF fields and one unrelated field."""
    plan_and_drain(creation_planner, creation_worker, {"make", "model", "iso"})
    mutator.create_storage("field_caption", "text", {})
    mutator.create_field("photo", "field_caption", "Caption", {})
    return mutator


@pytest.mark.unit
def test_plan_all_fields_targets_managed_fields_only(removal_planner, removal_queue, photo_with_fields):
    tasks = removal_planner.plan(["photo"], remove_all_fields=True)

    assert {t.field_name for t in tasks} == {"field_exif_make", "field_exif_model", "field_exif_iso"}
    assert removal_queue.count() == 3


@pytest.mark.unit
def test_plan_explicit_names_filters_missing(removal_planner, removal_queue, photo_with_fields):
    tasks = removal_planner.plan(["photo"], field_names=["field_exif_make", "field_exif_gps_date"])

    assert [t.field_name for t in tasks] == ["field_exif_make"]
    assert removal_queue.count() == 1


@pytest.mark.unit
def test_plan_resets_queue_before_new_batch(removal_planner, removal_queue, photo_with_fields):
    removal_planner.plan(["photo"], remove_all_fields=True)
    removal_queue.claim()

    tasks = removal_planner.plan(["photo"], field_names=["field_exif_iso"])

    assert len(tasks) == 1
    assert removal_queue.count() == 1
    assert removal_queue.in_flight() == []


@pytest.mark.unit
def test_plan_dry_run_touches_nothing(removal_planner, removal_queue, state, photo_with_fields):
    removal_queue.enqueue({"record_type_id": "photo", "field_name": "field_exif_make"})

    tasks = removal_planner.plan(["photo"], remove_all_fields=True, dry_run=True)

    assert len(tasks) == 3
    assert removal_queue.count() == 1
    assert state.get_progress(removal_queue.name) is None


@pytest.mark.unit
def test_plan_empty_inputs_leave_queue_untouched(removal_planner, removal_queue):
    removal_queue.enqueue({"record_type_id": "photo", "field_name": "field_exif_make"})

    assert removal_planner.plan([], remove_all_fields=True) == []
    assert removal_planner.plan(["photo"]) == []
    assert removal_queue.count() == 1


@pytest.mark.unit
def test_plan_with_nothing_to_remove_clears_progress(removal_planner, removal_queue, state):
    assert removal_planner.plan(["photo"], remove_all_fields=True) == []
    assert removal_queue.count() == 0
    assert state.get_progress(removal_queue.name) is None


@pytest.mark.unit
def test_plan_writes_progress(removal_planner, removal_queue, state, photo_with_fields):
    removal_planner.plan(["photo"], remove_all_fields=True)

    progress = state.get_progress(removal_queue.name)
    assert progress.state == ProgressState.IN_PROGRESS
    assert progress.total_tasks == 3
    assert progress.processed_tasks == 0
