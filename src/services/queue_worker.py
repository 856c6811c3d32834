"""Shared drain loop and progress bookkeeping for the field queue workers."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from src.models.progress import SuccessMarker
from src.models.queue_task import QueueItem
from src.services.schema_mutator import SchemaMutator
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue
from src.utils.logging import get_structured_logger, get_correlation_id, log_timing

logger = get_structured_logger(__name__)


class FieldQueueWorker(ABC):
    """
    Claims items one at a time, hands each to process_one() and keeps the
    queue's progress record current.

    An item is deleted only after its task succeeded (or turned out to be a
    no-op). On failure the item is released so a later drain retries it,
    and on_failure() decides whether the batch ends quietly or raises.
    """

    def __init__(self, queue: TaskQueue, state: StateStore, mutator: SchemaMutator):
        self.queue = queue
        self.state = state
        self.mutator = mutator
        # Error that ended the most recent drain, None when it ran clean
        self.last_failure: Optional[str] = None

    @abstractmethod
    def parse_task(self, item: QueueItem) -> Any:
        """Turn a queue payload into a task; raise ValueError when malformed."""

    @abstractmethod
    def process_one(self, task: Any) -> Any:
        ...

    @abstractmethod
    def on_failure(self, task: Any, error: Exception) -> None:
        """Called after the failed item was released."""

    def drain(self, max_items: int) -> int:
        """Process up to max_items tasks; return how many finished."""
        correlation_id = get_correlation_id()
        processed = 0
        self.last_failure = None

        with log_timing(
            f"drain_{self.queue.name}",
            logger=logger,
            correlation_id=correlation_id,
            max_items=max_items
        ):
            while processed < max_items:
                item = self.queue.claim()
                if item is None:
                    break

                try:
                    task = self.parse_task(item)
                except ValueError as e:
                    # A malformed payload can never succeed; drop it
                    logger.error(
                        "Invalid queue item data, deleting",
                        correlation_id=correlation_id,
                        queue_name=self.queue.name,
                        item_id=item.item_id,
                        error=str(e)
                    )
                    self.queue.delete(item)
                    continue

                try:
                    self.process_one(task)
                except Exception as e:
                    logger.error(
                        "Error processing queue item",
                        correlation_id=correlation_id,
                        queue_name=self.queue.name,
                        item_id=item.item_id,
                        task=task.model_dump(mode="json"),
                        processed_so_far=processed,
                        error=str(e),
                        exc_info=True
                    )
                    self.queue.release(item)
                    self.last_failure = str(e)
                    self.record_failure(str(e))
                    self.on_failure(task, e)
                    return processed

                self.queue.delete(item)
                processed += 1
                self.record_processed()

        logger.info(
            "Queue drain finished",
            correlation_id=correlation_id,
            queue_name=self.queue.name,
            processed_successfully=processed,
            items_remaining=self.queue.count()
        )
        return processed

    def record_processed(self) -> None:
        """Advance the batch counter; finish the batch when it reaches the total."""
        progress = self.state.get_progress(self.queue.name)
        if progress is None or not progress.in_progress:
            return

        progress.record_processed()
        self.state.set_progress(progress)

        if progress.is_complete:
            self._write_success_marker(progress.processed_tasks, progress.started_at, progress.completed_at)

    def record_failure(self, error: str) -> None:
        progress = self.state.get_progress(self.queue.name)
        if progress is None:
            return
        progress.record_failure(error)
        self.state.set_progress(progress)

    def _write_success_marker(self, count: int, started_at, completed_at: Optional[Any]) -> None:
        marker = SuccessMarker(queue_name=self.queue.name, count=count)
        if completed_at is not None:
            marker.completed_at = completed_at
            marker.execution_time = round(max(0.0, (completed_at - started_at).total_seconds()), 2)
        self.state.set_success(marker)
        logger.info(
            "Field queue batch completed",
            correlation_id=get_correlation_id(),
            queue_name=self.queue.name,
            tasks_processed=count,
            execution_time=marker.execution_time
        )
