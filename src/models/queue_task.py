"""Queue models - claimable queue items and the field tasks they carry."""

from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QueueItem(BaseModel):
    """One entry in a task queue."""
    item_id: str = Field(..., description="Queue item ID (ULID)")
    queue_name: str = Field(..., description="Owning queue")
    data: dict[str, Any] = Field(default_factory=dict, description="Task payload")
    created_at: datetime = Field(default_factory=utc_now, description="Enqueue time")
    claimed_at: Optional[datetime] = Field(None, description="Claim time; None while claimable")

    @property
    def is_claimed(self) -> bool:
        return self.claimed_at is not None

    def claim_age_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since the item was claimed (0 when not claimed)."""
        if self.claimed_at is None:
            return 0.0
        return ((now or utc_now()) - self.claimed_at).total_seconds()


class FieldCreationTask(BaseModel):
    """Create one EXIF field on one record type."""
    field_key: str = Field(..., description="EXIF field key")
    record_type_id: str = Field(..., description="Target record type")
    queued_at: datetime = Field(default_factory=utc_now, description="Planning time")


class FieldRemovalTask(BaseModel):
    """Remove one field from one record type."""
    record_type_id: str = Field(..., description="Target record type")
    field_name: str = Field(..., description="Schema field name")
    queued_at: datetime = Field(default_factory=utc_now, description="Planning time")


class CreationResult(BaseModel):
    """Outcome of processing one creation task."""
    created: bool = False
    field_name: Optional[str] = None
    record_type_id: Optional[str] = None


class RemovalResult(BaseModel):
    """Outcome of processing one removal task."""
    removed: bool = False
    storage_deleted: bool = False
    field_name: Optional[str] = None
    record_type_id: Optional[str] = None
