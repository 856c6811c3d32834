"""Field-creation worker - turns queued creation tasks into schema fields."""

from typing import Optional

from pydantic import ValidationError

from src.models.queue_task import CreationResult, FieldCreationTask, QueueItem
from src.services.field_registry import FieldRegistry, get_field_registry
from src.services.queue_worker import FieldQueueWorker
from src.services.schema_mutator import SchemaMutator
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue
from src.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)


class FieldCreationWorker(FieldQueueWorker):
    """Creates one field per task. A failure releases the task and ends the batch."""

    def __init__(
        self,
        queue: TaskQueue,
        state: StateStore,
        mutator: SchemaMutator,
        registry: Optional[FieldRegistry] = None,
    ):
        super().__init__(queue, state, mutator)
        self.registry = registry or get_field_registry()

    def parse_task(self, item: QueueItem) -> FieldCreationTask:
        try:
            task = FieldCreationTask.model_validate(item.data)
        except ValidationError as e:
            raise ValueError(f"Malformed creation task: {e}") from e
        if not self.registry.is_valid_key(task.field_key):
            raise ValueError(f"Unknown EXIF field key: {task.field_key}")
        return task

    def process_one(self, task: FieldCreationTask) -> CreationResult:
        correlation_id = get_correlation_id()
        definition = self.registry.get(task.field_key)
        field_name = definition.field_name
        record_type_id = task.record_type_id
        result = CreationResult(field_name=field_name, record_type_id=record_type_id)

        # The schema may have changed since planning
        if self.mutator.field_exists(record_type_id, field_name):
            logger.info(
                "Field already exists, skipping creation",
                correlation_id=correlation_id,
                field_name=field_name,
                record_type_id=record_type_id
            )
            return result

        if self.mutator.get_record_type(record_type_id) is None:
            logger.warning(
                "Record type no longer exists, skipping creation",
                correlation_id=correlation_id,
                field_name=field_name,
                record_type_id=record_type_id
            )
            return result

        if not self.mutator.storage_exists(field_name):
            self.mutator.create_storage(field_name, definition.value_type, definition.storage_settings())
            logger.info(
                "Field storage created",
                correlation_id=correlation_id,
                field_name=field_name,
                field_type=definition.value_type.value
            )
        else:
            logger.debug(
                "Field storage already exists",
                correlation_id=correlation_id,
                field_name=field_name
            )

        self.mutator.create_field(record_type_id, field_name, definition.label, dict(definition.settings))

        # Display configuration is cosmetic; the field is usable without it
        form_widget = self.registry.form_widget_for(definition.value_type)
        view_formatter = self.registry.view_formatter_for(definition.value_type)
        try:
            self.mutator.configure_display(record_type_id, field_name, form_widget, view_formatter)
        except Exception as e:
            logger.warning(
                "Could not configure display for field",
                correlation_id=correlation_id,
                field_name=field_name,
                record_type_id=record_type_id,
                error=str(e)
            )

        self.mutator.invalidate_caches([
            "entity_field_info",
            "entity_types",
            "rendered",
            f"form:{record_type_id}",
        ])

        logger.info(
            "Created EXIF field",
            correlation_id=correlation_id,
            field_name=field_name,
            record_type_id=record_type_id,
            form_widget=form_widget,
            view_formatter=view_formatter
        )
        result.created = True
        return result

    def on_failure(self, task: FieldCreationTask, error: Exception) -> None:
        logger.warning(
            "Field creation batch aborted, task released for retry",
            correlation_id=get_correlation_id(),
            field_key=task.field_key,
            record_type_id=task.record_type_id
        )
