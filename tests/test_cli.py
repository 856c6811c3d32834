"""Tests for the exif-fields command line interface."""

import pytest
from unittest.mock import patch

from src.cli import build_parser, main
from src.utils.errors import SchemaMutationError


@pytest.mark.unit
def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.unit
def test_remove_requires_all_fields_or_names():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["queue-remove-fields", "--record-types=photo"])


@pytest.mark.unit
def test_create_fields_with_yes(services, capsys):
    code = main(["create-fields", "--field-keys=make,iso", "--yes"], services=services)

    assert code == 0
    assert services.mutator.field_exists("photo", "field_exif_make")
    assert services.mutator.field_exists("photo", "field_exif_iso")
    assert "Processed 2 field creation tasks" in capsys.readouterr().out


@pytest.mark.unit
def test_create_fields_cancelled(services, capsys):
    with patch("builtins.input", return_value="n"):
        code = main(["create-fields", "--field-keys=make"], services=services)

    assert code == 0
    assert not services.mutator.field_exists("photo", "field_exif_make")
    assert "Cancelled" in capsys.readouterr().out


@pytest.mark.unit
def test_create_fields_refused_when_disabled(services, monkeypatch, capsys):
    monkeypatch.setenv("EXIF_AUTO_CREATE_FIELDS", "false")

    assert main(["create-fields", "--field-keys=make", "--yes"], services=services) == 1
    assert main(["create-fields", "--field-keys=make", "--yes", "--force"], services=services) == 0
    assert services.mutator.field_exists("photo", "field_exif_make")


@pytest.mark.unit
def test_create_fields_reports_failure(services, capsys):
    with patch.object(services.mutator, "create_field", side_effect=SchemaMutationError("read-only")):
        code = main(["create-fields", "--field-keys=make", "--yes"], services=services)

    out = capsys.readouterr().out
    assert code == 1
    assert "remain queued" in out
    assert "read-only" in out


@pytest.mark.unit
def test_queue_then_process(services, capsys):
    assert main(["queue-fields", "--field-keys=make,model,iso"], services=services) == 0
    assert services.creation_queue.count() == 3

    assert main(["process-queue", "--max-items=2"], services=services) == 0
    assert services.creation_queue.count() == 1

    assert main(["queue-status"], services=services) == 0
    out = capsys.readouterr().out
    assert "Progress:        2/3" in out


@pytest.mark.unit
def test_clean_queue(services, capsys):
    main(["queue-fields", "--field-keys=make"], services=services)
    services.creation_queue.claim()

    assert main(["clean-queue"], services=services) == 0
    assert services.creation_queue.count() == 0
    assert "Removed 1 stuck items" in capsys.readouterr().out


@pytest.mark.unit
def test_removal_dry_run_and_processing(services, capsys):
    main(["create-fields", "--field-keys=make,iso", "--yes"], services=services)

    assert main(["queue-remove-fields", "--record-types=photo", "--all-fields", "--dry-run"], services=services) == 0
    assert services.removal_queue.count() == 0
    assert "photo: field_exif_make" in capsys.readouterr().out

    assert main(["queue-remove-fields", "--record-types=photo", "--field-names=field_exif_iso"], services=services) == 0
    assert main(["process-removal-queue"], services=services) == 0
    assert not services.mutator.field_exists("photo", "field_exif_iso")
    assert services.mutator.field_exists("photo", "field_exif_make")

    assert main(["removal-status"], services=services) == 0
    assert main(["clear-stuck-removal-queue"], services=services) == 0


@pytest.mark.unit
def test_removal_failure_is_status_message(services, capsys):
    main(["create-fields", "--field-keys=make", "--yes"], services=services)
    main(["queue-remove-fields", "--record-types=photo", "--all-fields"], services=services)

    with patch.object(services.mutator, "remove_field", side_effect=SchemaMutationError("locked")):
        code = main(["process-removal-queue"], services=services)

    assert code == 1
    assert "Error: Failed to remove field field_exif_make" in capsys.readouterr().out
    assert services.removal_queue.count() == 1


@pytest.mark.unit
def test_process_queue_reports_failure(services, capsys):
    main(["queue-fields", "--field-keys=make"], services=services)

    with patch.object(services.mutator, "create_field", side_effect=SchemaMutationError("read-only")):
        code = main(["process-queue"], services=services)

    out = capsys.readouterr().out
    assert code == 1
    assert "Stopped after a failure: read-only" in out
    assert services.creation_queue.count() == 1


@pytest.mark.unit
def test_process_queue_points_at_clean_queue_when_stuck(services, capsys):
    main(["queue-fields", "--field-keys=make"], services=services)
    services.creation_queue.claim()

    code = main(["process-queue"], services=services)

    out = capsys.readouterr().out
    assert code == 1
    assert "Processed 0 field creation tasks, 1 remaining." in out
    assert "Run clean-queue" in out
