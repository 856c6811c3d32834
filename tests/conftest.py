"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import Mock, MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("FIELD_QUEUE_BACKEND", "memory")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.field_definition import RecordType
from src.services.field_creation_planner import FieldCreationPlanner
from src.services.field_creation_worker import FieldCreationWorker
from src.services.field_queue import build_field_queue_services, set_field_queue_services
from src.services.field_registry import FieldRegistry
from src.services.field_removal_planner import FieldRemovalPlanner
from src.services.field_removal_worker import FieldRemovalWorker
from src.services.progress_tracker import ProgressTracker
from src.services.schema_mutator import InMemorySchemaMutator
from src.services.state_store import MemoryStateStore
from src.services.task_queue import MemoryTaskQueue
from src.utils.queue_config import QueueConfig


@pytest.fixture
def registry():
    """Field registry over the built-in catalogue."""
    return FieldRegistry()


@pytest.fixture
def mutator():
    """In-memory schema with one image and one document record type."""
    return InMemorySchemaMutator([
        RecordType(record_type_id="photo", label="Photo", source_kind="image"),
        RecordType(record_type_id="document", label="Document", source_kind="file"),
    ])


@pytest.fixture
def state():
    return MemoryStateStore()


@pytest.fixture
def creation_queue():
    return MemoryTaskQueue(QueueConfig.CREATION_QUEUE_NAME)


@pytest.fixture
def removal_queue():
    return MemoryTaskQueue(QueueConfig.REMOVAL_QUEUE_NAME)


@pytest.fixture
def creation_planner(creation_queue, state, mutator, registry):
    return FieldCreationPlanner(creation_queue, state, mutator, registry)


@pytest.fixture
def creation_worker(creation_queue, state, mutator, registry):
    return FieldCreationWorker(creation_queue, state, mutator, registry)


@pytest.fixture
def removal_planner(removal_queue, state, mutator, registry):
    return FieldRemovalPlanner(removal_queue, state, mutator, registry)


@pytest.fixture
def removal_worker(removal_queue, state, mutator):
    return FieldRemovalWorker(removal_queue, state, mutator)


@pytest.fixture
def tracker(creation_queue, removal_queue, state):
    return ProgressTracker(
        {creation_queue.name: creation_queue, removal_queue.name: removal_queue},
        state,
    )


@pytest.fixture
def services(mutator, registry):
    """Memory-backed services installed as the global instance."""
    built = build_field_queue_services(backend="memory", mutator=mutator, registry=registry)
    set_field_queue_services(built)
    yield built
    set_field_queue_services(None)


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = Mock()
    client.table = Mock(return_value=MagicMock())
    return client


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time


@pytest.fixture
def mock_vercel_request():
    """Mock Vercel serverless function request."""
    return {
        "method": "GET",
        "path": "/api/fields/process",
        "headers": {"content-type": "application/json"},
        "body": "",
        "query": {}
    }


@pytest.fixture(scope="function")
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
