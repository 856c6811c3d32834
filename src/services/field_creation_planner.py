"""Field-creation planner - diff wanted EXIF fields against the schema and queue the gaps."""

from typing import Iterable, Optional

from src.models.progress import ProgressRecord, ProgressState
from src.models.queue_task import FieldCreationTask
from src.models.settings import FieldQueueSettings
from src.services.field_registry import FieldRegistry, get_field_registry
from src.services.schema_mutator import SchemaMutator
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue
from src.utils.logging import get_structured_logger, get_correlation_id, timed

logger = get_structured_logger(__name__)


class FieldCreationPlanner:
    """Plan creation tasks for every missing (record type, field) pair."""

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

    def count_planned(
        self,
        selected_field_keys: Iterable[str],
        enabled_record_types: Iterable[str],
        auto_create_enabled: bool,
    ) -> int:
        """Dry run: how many tasks plan() would enqueue right now."""
        if not auto_create_enabled:
            return 0
        return len(self._diff(set(selected_field_keys), set(enabled_record_types)))

    @timed("plan_field_creation")
    def plan(
        self,
        selected_field_keys: Iterable[str],
        enabled_record_types: Iterable[str],
        auto_create_enabled: bool,
    ) -> int:
        """
        Enqueue a creation task for each missing field.

        Returns the number of tasks enqueued. A non-empty plan starts a new
        batch: the queue's progress record is replaced with fresh counters.
        """
        correlation_id = get_correlation_id()

        if not auto_create_enabled:
            logger.info(
                "Automatic field creation disabled, nothing planned",
                correlation_id=correlation_id,
                queue_name=self.queue.name
            )
            return 0

        tasks = self._diff(set(selected_field_keys), set(enabled_record_types))
        if not tasks:
            logger.info(
                "All requested EXIF fields exist or are already queued",
                correlation_id=correlation_id,
                queue_name=self.queue.name
            )
            return 0

        # Tasks still queued from an earlier plan belong to the new batch too
        progress = ProgressRecord(
            queue_name=self.queue.name,
            state=ProgressState.PLANNING,
            total_tasks=len(tasks) + self.queue.count(),
        )
        self.state.set_progress(progress)

        for task in tasks:
            self.queue.enqueue(task.model_dump(mode="json"))
            logger.debug(
                "Queued field creation task",
                correlation_id=correlation_id,
                field_key=task.field_key,
                record_type_id=task.record_type_id
            )

        progress.state = ProgressState.IN_PROGRESS
        self.state.set_progress(progress)
        self.state.delete_success(self.queue.name)

        logger.info(
            "Queued EXIF field creation",
            correlation_id=correlation_id,
            queue_name=self.queue.name,
            task_count=len(tasks),
            field_count=len({t.field_key for t in tasks}),
            record_type_count=len({t.record_type_id for t in tasks})
        )
        return len(tasks)

    def plan_from_settings(self, settings: FieldQueueSettings) -> int:
        return self.plan(
            settings.enabled_field_keys,
            settings.enabled_record_types,
            settings.auto_create_enabled,
        )

    def _diff(self, selected_field_keys: set[str], enabled_record_types: set[str]) -> list[FieldCreationTask]:
        correlation_id = get_correlation_id()

        if not selected_field_keys:
            logger.warning(
                "Cannot plan field creation: no EXIF fields selected",
                correlation_id=correlation_id,
                queue_name=self.queue.name
            )
            return []

        unknown = sorted(k for k in selected_field_keys if not self.registry.is_valid_key(k))
        if unknown:
            logger.warning(
                "Ignoring unknown EXIF field keys",
                correlation_id=correlation_id,
                unknown_keys=unknown
            )

        keys = [k for k in self.registry.ordered_keys() if k in selected_field_keys]
        pending = self._pending_pairs()
        tasks: list[FieldCreationTask] = []

        for record_type in sorted(self.mutator.list_record_types(), key=lambda rt: rt.record_type_id):
            if not record_type.is_image:
                logger.debug(
                    "Skipping record type: not an image type",
                    record_type_id=record_type.record_type_id,
                    source_kind=record_type.source_kind
                )
                continue

            # An empty selection means every image record type
            if enabled_record_types and record_type.record_type_id not in enabled_record_types:
                continue

            for key in keys:
                field_name = self.registry.field_name_for(key)
                if (key, record_type.record_type_id) in pending:
                    continue
                if self.mutator.field_exists(record_type.record_type_id, field_name):
                    continue
                tasks.append(FieldCreationTask(field_key=key, record_type_id=record_type.record_type_id))

        return tasks

    def _pending_pairs(self) -> set[tuple[str, str]]:
        """(field key, record type) pairs already waiting in the queue."""
        pairs = set()
        for item in self.queue.items():
            key = item.data.get("field_key")
            record_type_id = item.data.get("record_type_id")
            if key and record_type_id:
                pairs.add((key, record_type_id))
        return pairs
