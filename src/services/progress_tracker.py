"""Progress tracker and stuck-item cleaner for the field queues.

Stuck detection is a heuristic: queues have no lease timeout, so an item
claimed by a consumer that died stays counted but unclaimable forever. The
probe claims one item and releases it again, which is observable by other
consumers; two concurrent progress reads may each briefly hide the same
item. That is harmless because workers re-verify every task.
"""

from typing import Optional

from src.models.progress import ProgressSnapshot, ProgressState, SuccessMarker
from src.models.queue_task import utc_now
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue
from src.utils.logging import get_structured_logger, get_correlation_id
from src.utils.queue_config import QueueConfig

logger = get_structured_logger(__name__)


class ProgressTracker:
    """Reads progress for polling clients and repairs stuck queues on request."""

    def __init__(
        self,
        queues: dict[str, TaskQueue],
        state: StateStore,
        stuck_age_seconds: Optional[int] = None,
        success_ttl_seconds: Optional[int] = None,
    ):
        self.queues = queues
        self.state = state
        self.stuck_age_seconds = (
            stuck_age_seconds if stuck_age_seconds is not None else QueueConfig.STUCK_ITEM_AGE_SECONDS
        )
        self.success_ttl_seconds = (
            success_ttl_seconds if success_ttl_seconds is not None else QueueConfig.SUCCESS_MARKER_TTL_SECONDS
        )

    def _queue(self, queue_name: str) -> TaskQueue:
        try:
            return self.queues[queue_name]
        except KeyError:
            raise KeyError(f"Unknown queue: {queue_name}") from None

    def has_stuck_items(self, queue_name: str) -> bool:
        """True when the queue holds items but none can be claimed."""
        queue = self._queue(queue_name)
        if queue.count() == 0:
            return False
        probe = queue.claim()
        if probe is None:
            return True
        queue.release(probe)
        return False

    def get_progress(self, queue_name: str) -> ProgressSnapshot:
        """
        Snapshot of the current batch.

        A finished batch is reported once and then forgotten, returning the
        queue to idle.
        """
        queue = self._queue(queue_name)
        items_in_queue = queue.count()
        stuck = self.has_stuck_items(queue_name)
        last_success = self.recent_success(queue_name)
        record = self.state.get_progress(queue_name)

        if record is None:
            return ProgressSnapshot(
                queue_name=queue_name,
                state=ProgressState.STUCK if stuck else ProgressState.IDLE,
                items_in_queue=items_in_queue,
                has_stuck_items=stuck,
                last_success=last_success,
            )

        if record.in_progress and record.state == ProgressState.IN_PROGRESS and items_in_queue == 0:
            # Queue drained but a crash lost some counter updates
            record.in_progress = False
            record.state = ProgressState.COMPLETED
            record.completed_at = record.completed_at or utc_now()

        if stuck and record.in_progress:
            record.has_stuck_items = True
            record.state = ProgressState.STUCK
            self.state.set_progress(record)

        total = record.total_tasks
        processed = min(record.processed_tasks, total)
        percentage = round(processed / total * 100, 1) if total > 0 else 0.0
        end = record.completed_at if not record.in_progress and record.completed_at else utc_now()
        elapsed = max(0, int((end - record.started_at).total_seconds()))

        snapshot = ProgressSnapshot(
            queue_name=queue_name,
            state=record.state,
            in_progress=record.in_progress,
            items_in_queue=items_in_queue,
            total_tasks=total,
            processed_tasks=processed,
            failed_tasks=record.failed_tasks,
            percentage=min(100.0, max(0.0, percentage)),
            elapsed_seconds=elapsed,
            has_stuck_items=stuck,
            last_error=record.last_error,
            last_success=last_success,
        )

        if not record.in_progress:
            self.state.delete_progress(queue_name)
            logger.debug("Completed progress record cleared", queue_name=queue_name)

        return snapshot

    def recent_success(self, queue_name: str) -> Optional[SuccessMarker]:
        """The last completion marker, while it is still fresh enough to show."""
        marker = self.state.get_success(queue_name)
        if marker is None:
            return None
        if (utc_now() - marker.completed_at).total_seconds() < self.success_ttl_seconds:
            return marker
        self.state.delete_success(queue_name)
        return None

    def clean_stuck_items(self, queue_name: str) -> int:
        """
        Remove items abandoned by crashed consumers; return how many were removed.

        Claims older than the age threshold are deleted. The first younger
        claim is assumed to be in flight and ends the walk. If items remain
        but none can be claimed, the queue is reset as a last resort. The
        progress record is always cleared.
        """
        correlation_id = get_correlation_id()
        queue = self._queue(queue_name)
        removed = 0
        now = utc_now()

        for item in queue.in_flight():
            age = item.claim_age_seconds(now)
            if age < self.stuck_age_seconds:
                logger.info(
                    "Claimed item is recent, assuming it is in flight",
                    correlation_id=correlation_id,
                    queue_name=queue_name,
                    item_id=item.item_id,
                    claim_age_seconds=round(age, 1)
                )
                break
            queue.delete(item)
            removed += 1
            logger.warning(
                "Deleted abandoned queue item",
                correlation_id=correlation_id,
                queue_name=queue_name,
                item_id=item.item_id,
                claim_age_seconds=round(age, 1),
                task=item.data
            )

        if queue.count() > 0:
            try:
                probe = queue.claim()
            except Exception as e:
                logger.error(
                    "Queue claim failed during cleanup",
                    correlation_id=correlation_id,
                    queue_name=queue_name,
                    error=str(e),
                    exc_info=True
                )
                probe = None

            if probe is None:
                dropped = queue.reset()
                removed += dropped
                logger.warning(
                    "No claimable items left, queue recreated empty",
                    correlation_id=correlation_id,
                    queue_name=queue_name,
                    items_dropped=dropped
                )
            else:
                queue.release(probe)

        self.state.delete_progress(queue_name)

        logger.info(
            "Stuck item cleanup completed",
            correlation_id=correlation_id,
            queue_name=queue_name,
            items_removed=removed,
            items_remaining=queue.count()
        )
        return removed
