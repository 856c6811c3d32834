"""Progress models - per-queue batch progress and completion markers."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from src.models.queue_task import utc_now


class ProgressState(str, Enum):
    """Lifecycle of a queue's progress record."""
    IDLE = "idle"
    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    STUCK = "stuck"


class ProgressRecord(BaseModel):
    """Stored progress of the current batch on one queue."""
    queue_name: str = Field(..., description="Queue this batch belongs to")
    state: ProgressState = Field(default=ProgressState.PLANNING)
    in_progress: bool = Field(default=True)
    total_tasks: int = Field(default=0, ge=0, description="Tasks planned for the batch")
    processed_tasks: int = Field(default=0, ge=0, description="Tasks finished, including no-ops")
    failed_tasks: int = Field(default=0, ge=0, description="Failed attempts, retried later")
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    has_stuck_items: bool = False
    last_error: Optional[str] = None

    def record_processed(self) -> None:
        """Count one finished task, never beyond the batch size."""
        self.processed_tasks = min(self.processed_tasks + 1, self.total_tasks)
        if self.processed_tasks >= self.total_tasks:
            self.in_progress = False
            self.state = ProgressState.COMPLETED
            self.completed_at = utc_now()

    def record_failure(self, error: str) -> None:
        self.failed_tasks += 1
        self.last_error = error

    @property
    def is_complete(self) -> bool:
        return self.processed_tasks >= self.total_tasks


class SuccessMarker(BaseModel):
    """Left behind when a batch finishes, for the next status read."""
    queue_name: str
    count: int = Field(default=0, ge=0, description="Tasks processed in the finished batch")
    completed_at: datetime = Field(default_factory=utc_now)
    execution_time: float = Field(default=0.0, ge=0, description="Seconds from planning to completion")


class ProgressSnapshot(BaseModel):
    """Read model returned to polling clients."""
    queue_name: str
    state: ProgressState = ProgressState.IDLE
    in_progress: bool = False
    items_in_queue: int = 0
    total_tasks: int = 0
    processed_tasks: int = 0
    failed_tasks: int = 0
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    elapsed_seconds: int = 0
    has_stuck_items: bool = False
    last_error: Optional[str] = None
    last_success: Optional[SuccessMarker] = None

    def to_response(self) -> dict:
        """JSON body for the progress endpoints."""
        return {
            "in_progress": self.in_progress,
            "items_in_queue": self.items_in_queue,
            "total_tasks": self.total_tasks,
            "processed_tasks": self.processed_tasks,
            "percentage": self.percentage,
            "elapsed_seconds": self.elapsed_seconds,
            "has_stuck_items": self.has_stuck_items,
            "state": self.state.value,
        }
