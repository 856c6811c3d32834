"""Field-removal planner - builds a fresh removal batch from existing fields."""

from typing import Iterable, Optional

from src.models.progress import ProgressRecord, ProgressState
from src.models.queue_task import FieldRemovalTask
from src.services.field_registry import FieldRegistry, get_field_registry
from src.services.schema_mutator import SchemaMutator
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue
from src.utils.logging import get_structured_logger, get_correlation_id, timed

logger = get_structured_logger(__name__)


class FieldRemovalPlanner:
    """
    Plan removal tasks for (record type, field) pairs that currently exist.

    Removal is never additive: each non-empty plan discards whatever is
    still queued and starts a new batch, so stale and fresh removal intents
    are never mixed.
    """

    def __init__(
        self,
        queue: TaskQueue,
        state: StateStore,
        mutator: SchemaMutator,
        registry: Optional[FieldRegistry] = None,
    ):
        self.queue = queue
        self.state = state
        self.mutator = mutator
        self.registry = registry or get_field_registry()

    def resolve(
        self,
        record_type_ids: Iterable[str],
        remove_all_fields: bool = False,
        field_names: Optional[Iterable[str]] = None,
    ) -> list[FieldRemovalTask]:
        """Existing pairs that a plan with these inputs would enqueue."""
        tasks: list[FieldRemovalTask] = []
        explicit = list(dict.fromkeys(field_names or []))

        for record_type_id in sorted(set(record_type_ids)):
            if remove_all_fields:
                candidates = [
                    name for name in self.mutator.list_fields(record_type_id)
                    if self.registry.is_managed_field_name(name)
                ]
            else:
                candidates = explicit

            for field_name in candidates:
                if self.mutator.field_exists(record_type_id, field_name):
                    tasks.append(FieldRemovalTask(record_type_id=record_type_id, field_name=field_name))
                else:
                    logger.debug(
                        "Field not present, no removal needed",
                        field_name=field_name,
                        record_type_id=record_type_id
                    )
        return tasks

    @timed("plan_field_removal")
    def plan(
        self,
        record_type_ids: Iterable[str],
        remove_all_fields: bool = False,
        field_names: Optional[Iterable[str]] = None,
        dry_run: bool = False,
    ) -> list[FieldRemovalTask]:
        """
        Queue removal tasks and return them.

        With dry_run the tasks are computed but neither the queue nor the
        progress record is touched.
        """
        correlation_id = get_correlation_id()
        record_type_ids = set(record_type_ids)
        field_names = set(field_names or [])

        if not record_type_ids or (not remove_all_fields and not field_names):
            logger.info(
                "No fields or record types specified for removal, skipping queue creation",
                correlation_id=correlation_id
            )
            return []

        tasks = self.resolve(record_type_ids, remove_all_fields, field_names)

        if dry_run:
            logger.info(
                "Dry run: field removal not queued",
                correlation_id=correlation_id,
                task_count=len(tasks)
            )
            return tasks

        dropped = self.queue.reset()
        if dropped:
            logger.warning(
                "Discarded previously queued removal tasks",
                correlation_id=correlation_id,
                queue_name=self.queue.name,
                items_dropped=dropped
            )

        if not tasks:
            self.state.delete_progress(self.queue.name)
            logger.info(
                "No matching fields exist, nothing to remove",
                correlation_id=correlation_id,
                record_type_count=len(record_type_ids)
            )
            return []

        progress = ProgressRecord(
            queue_name=self.queue.name,
            state=ProgressState.PLANNING,
            total_tasks=len(tasks),
        )
        self.state.set_progress(progress)

        for task in tasks:
            self.queue.enqueue(task.model_dump(mode="json"))
            logger.debug(
                "Queued removal task",
                correlation_id=correlation_id,
                field_name=task.field_name,
                record_type_id=task.record_type_id
            )

        progress.state = ProgressState.IN_PROGRESS
        self.state.set_progress(progress)
        self.state.delete_success(self.queue.name)

        logger.info(
            "Queued field removal tasks",
            correlation_id=correlation_id,
            queue_name=self.queue.name,
            task_count=len(tasks),
            remove_all_fields=remove_all_fields
        )
        return tasks
