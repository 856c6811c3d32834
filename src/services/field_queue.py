"""Builds the field queue component graph for the configured backend."""

from dataclasses import dataclass
from typing import Optional

from src.services.field_creation_planner import FieldCreationPlanner
from src.services.field_creation_worker import FieldCreationWorker
from src.services.field_registry import FieldRegistry, get_field_registry
from src.services.field_removal_planner import FieldRemovalPlanner
from src.services.field_removal_worker import FieldRemovalWorker
from src.services.progress_tracker import ProgressTracker
from src.services.schema_mutator import InMemorySchemaMutator, SchemaMutator
from src.services.state_store import MemoryStateStore, StateStore
from src.services.task_queue import MemoryTaskQueue, TaskQueue
from src.utils.logging import get_structured_logger
from src.utils.queue_config import QueueConfig

logger = get_structured_logger(__name__)


@dataclass
class FieldQueueServices:
    registry: FieldRegistry
    mutator: SchemaMutator
    state: StateStore
    creation_queue: TaskQueue
    removal_queue: TaskQueue
    creation_planner: FieldCreationPlanner
    creation_worker: FieldCreationWorker
    removal_planner: FieldRemovalPlanner
    removal_worker: FieldRemovalWorker
    tracker: ProgressTracker


def build_field_queue_services(
    backend: Optional[str] = None,
    mutator: Optional[SchemaMutator] = None,
    registry: Optional[FieldRegistry] = None,
) -> FieldQueueServices:
    """
    Wire queues, state, planners, workers and the tracker together.

    Args:
        backend: "memory" or "supabase"; defaults to FIELD_QUEUE_BACKEND
        mutator: Schema mutator override (tests inject an in-memory one)
        registry: Field registry override
    """
    backend = backend or QueueConfig.backend()
    registry = registry or get_field_registry()

    if backend == "supabase":
        # Imported lazily so the memory backend never needs credentials
        from src.services.supabase_client import SupabaseStateStore, SupabaseTaskQueue
        from src.services.supabase_schema import SupabaseSchemaMutator

        creation_queue: TaskQueue = SupabaseTaskQueue(QueueConfig.CREATION_QUEUE_NAME)
        removal_queue: TaskQueue = SupabaseTaskQueue(QueueConfig.REMOVAL_QUEUE_NAME)
        state: StateStore = SupabaseStateStore()
        mutator = mutator or SupabaseSchemaMutator()
    else:
        creation_queue = MemoryTaskQueue(QueueConfig.CREATION_QUEUE_NAME)
        removal_queue = MemoryTaskQueue(QueueConfig.REMOVAL_QUEUE_NAME)
        state = MemoryStateStore()
        mutator = mutator or InMemorySchemaMutator()

    logger.debug("Field queue services built", backend=backend)

    return FieldQueueServices(
        registry=registry,
        mutator=mutator,
        state=state,
        creation_queue=creation_queue,
        removal_queue=removal_queue,
        creation_planner=FieldCreationPlanner(creation_queue, state, mutator, registry),
        creation_worker=FieldCreationWorker(creation_queue, state, mutator, registry),
        removal_planner=FieldRemovalPlanner(removal_queue, state, mutator, registry),
        removal_worker=FieldRemovalWorker(removal_queue, state, mutator),
        tracker=ProgressTracker(
            {creation_queue.name: creation_queue, removal_queue.name: removal_queue},
            state,
        ),
    )


# Global services instance
_field_queue_services: Optional[FieldQueueServices] = None


def get_field_queue_services() -> FieldQueueServices:
    """Get or create global field queue services."""
    global _field_queue_services
    if _field_queue_services is None:
        _field_queue_services = build_field_queue_services()
    return _field_queue_services


def set_field_queue_services(services: Optional[FieldQueueServices]) -> None:
    """Replace (or with None, drop) the global services instance."""
    global _field_queue_services
    _field_queue_services = services
