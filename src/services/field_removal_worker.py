"""Field-removal worker - drops queued fields and garbage-collects their storage."""

from pydantic import ValidationError

from src.models.queue_task import FieldRemovalTask, QueueItem, RemovalResult
from src.services.queue_worker import FieldQueueWorker
from src.utils.errors import FieldRemovalError
from src.utils.logging import get_structured_logger, get_correlation_id

logger = get_structured_logger(__name__)


class FieldRemovalWorker(FieldQueueWorker):
    """Removes one field per task. A failure releases the task and raises FieldRemovalError."""

    def parse_task(self, item: QueueItem) -> FieldRemovalTask:
        try:
            return FieldRemovalTask.model_validate(item.data)
        except ValidationError as e:
            raise ValueError(f"Malformed removal task: {e}") from e

    def process_one(self, task: FieldRemovalTask) -> RemovalResult:
        correlation_id = get_correlation_id()
        record_type_id = task.record_type_id
        field_name = task.field_name
        result = RemovalResult(field_name=field_name, record_type_id=record_type_id)

        logger.info(
            "Processing field removal",
            correlation_id=correlation_id,
            field_name=field_name,
            record_type_id=record_type_id
        )

        if self.mutator.field_exists(record_type_id, field_name):
            self.mutator.remove_field(record_type_id, field_name)
            result.removed = True
        else:
            # A retry after a partial failure still has cleanup to finish
            logger.info(
                "Field no longer exists, finishing cleanup only",
                correlation_id=correlation_id,
                field_name=field_name,
                record_type_id=record_type_id
            )

        if self.mutator.storage_exists(field_name) and not self.mutator.storage_in_use(field_name):
            self.mutator.delete_storage(field_name)
            result.storage_deleted = True
            logger.info(
                "Deleted orphaned field storage",
                correlation_id=correlation_id,
                field_name=field_name
            )

        purged = self.mutator.purge_field_data(record_type_id, field_name)

        logger.info(
            "Successfully removed field",
            correlation_id=correlation_id,
            field_name=field_name,
            record_type_id=record_type_id,
            storage_deleted=result.storage_deleted,
            values_purged=purged
        )
        return result

    def on_failure(self, task: FieldRemovalTask, error: Exception) -> None:
        # Re-raise so the caller's retry policy sees the failure
        raise FieldRemovalError(
            f"Failed to remove field {task.field_name} from record type {task.record_type_id}: {error}",
            record_type_id=task.record_type_id,
            field_name=task.field_name,
        ) from error
