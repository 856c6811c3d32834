"""Supabase client wrapper plus the table-backed queue and state store."""

import os
from typing import Any, Optional
from supabase import create_client, Client
from supabase.client import ClientOptions

from src.models.queue_task import QueueItem, utc_now
from src.services.state_store import StateStore
from src.services.task_queue import TaskQueue, generate_item_id
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

QUEUE_TABLE = "field_queue_items"
STATE_TABLE = "field_queue_state"

# Claim attempts before giving up when other consumers keep winning the race
MAX_CLAIM_ATTEMPTS = 5

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


def close_supabase_client() -> None:
    """Drop the client reference; supabase-py has no explicit close."""
    global _client
    if _client:
        _client = None
        logger.info("Supabase client closed")


class SupabaseClient:
    """Context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    def __enter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        return False


def _row_to_item(row: dict) -> QueueItem:
    return QueueItem(
        item_id=row["item_id"],
        queue_name=row["queue_name"],
        data=row.get("data") or {},
        created_at=row["created_at"],
        claimed_at=row.get("claimed_at"),
    )


class SupabaseTaskQueue(TaskQueue):
    """
    Queue stored as rows of field_queue_items.

    A row with claimed_at NULL is claimable. Claims are taken with a
    conditional update so two consumers cannot claim the same row.
    """

    def enqueue(self, data: dict[str, Any]) -> QueueItem:
        row = {
            "item_id": generate_item_id(),
            "queue_name": self.name,
            "data": data,
            "created_at": utc_now().isoformat(),
            "claimed_at": None,
        }
        with SupabaseClient() as client:
            try:
                result = client.table(QUEUE_TABLE).insert(row).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to enqueue item on {self.name}: {e}")
        if result.data and len(result.data) > 0:
            return _row_to_item(result.data[0])
        raise SupabaseError(f"Failed to enqueue item on {self.name}: no row returned")

    def claim(self) -> Optional[QueueItem]:
        with SupabaseClient() as client:
            try:
                for _ in range(MAX_CLAIM_ATTEMPTS):
                    candidates = (
                        client.table(QUEUE_TABLE)
                        .select("item_id")
                        .eq("queue_name", self.name)
                        .is_("claimed_at", "null")
                        .order("created_at")
                        .order("item_id")
                        .limit(1)
                        .execute()
                    )
                    if not candidates.data:
                        return None
                    item_id = candidates.data[0]["item_id"]
                    claimed = (
                        client.table(QUEUE_TABLE)
                        .update({"claimed_at": utc_now().isoformat()})
                        .eq("item_id", item_id)
                        .is_("claimed_at", "null")
                        .execute()
                    )
                    if claimed.data:
                        return _row_to_item(claimed.data[0])
                    logger.debug("Lost claim race, retrying", queue_name=self.name, item_id=item_id)
            except Exception as e:
                raise SupabaseError(f"Failed to claim item on {self.name}: {e}")
        return None

    def release(self, item: QueueItem) -> None:
        with SupabaseClient() as client:
            try:
                client.table(QUEUE_TABLE).update({"claimed_at": None}).eq("item_id", item.item_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to release item {item.item_id}: {e}")

    def delete(self, item: QueueItem) -> None:
        with SupabaseClient() as client:
            try:
                client.table(QUEUE_TABLE).delete().eq("item_id", item.item_id).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to delete item {item.item_id}: {e}")

    def count(self) -> int:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(QUEUE_TABLE)
                    .select("item_id", count="exact")
                    .eq("queue_name", self.name)
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to count items on {self.name}: {e}")
        return result.count if result.count is not None else len(result.data or [])

    def in_flight(self) -> list[QueueItem]:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(QUEUE_TABLE)
                    .select("*")
                    .eq("queue_name", self.name)
                    .not_.is_("claimed_at", "null")
                    .order("claimed_at")
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to list claimed items on {self.name}: {e}")
        return [_row_to_item(row) for row in result.data or []]

    def items(self) -> list[QueueItem]:
        with SupabaseClient() as client:
            try:
                result = (
                    client.table(QUEUE_TABLE)
                    .select("*")
                    .eq("queue_name", self.name)
                    .order("created_at")
                    .order("item_id")
                    .execute()
                )
            except Exception as e:
                raise SupabaseError(f"Failed to list items on {self.name}: {e}")
        return [_row_to_item(row) for row in result.data or []]

    def reset(self) -> int:
        dropped = self.count()
        with SupabaseClient() as client:
            try:
                client.table(QUEUE_TABLE).delete().eq("queue_name", self.name).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to reset queue {self.name}: {e}")
        logger.info("Queue reset", queue_name=self.name, items_dropped=dropped)
        return dropped


class SupabaseStateStore(StateStore):
    """Key/value rows of field_queue_state."""

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with SupabaseClient() as client:
            try:
                result = client.table(STATE_TABLE).select("value").eq("key", key).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to read state {key}: {e}")
        return result.data[0]["value"] if result.data and len(result.data) > 0 else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        with SupabaseClient() as client:
            try:
                client.table(STATE_TABLE).upsert({
                    "key": key,
                    "value": value,
                    "updated_at": utc_now().isoformat(),
                }).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to write state {key}: {e}")

    def delete(self, key: str) -> None:
        with SupabaseClient() as client:
            try:
                client.table(STATE_TABLE).delete().eq("key", key).execute()
            except Exception as e:
                raise SupabaseError(f"Failed to delete state {key}: {e}")
