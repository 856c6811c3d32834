"""Task queue - claimable FIFO store for deferred field work.

Claiming hides an item until it is deleted or released. There is no lease
timeout: an item claimed by a consumer that dies stays invisible until the
stuck-item cleaner removes it.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from ulid import ULID

from src.models.queue_task import QueueItem, utc_now
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def generate_item_id() -> str:
    """Generate a text-based queue item ID."""
    return str(ULID())


class TaskQueue(ABC):
    """Queue primitives shared by every backend."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def enqueue(self, data: dict[str, Any]) -> QueueItem:
        """Append an item and return it."""

    @abstractmethod
    def claim(self) -> Optional[QueueItem]:
        """Claim the oldest visible item, or None when nothing is claimable."""

    @abstractmethod
    def release(self, item: QueueItem) -> None:
        """Make a claimed item visible again."""

    @abstractmethod
    def delete(self, item: QueueItem) -> None:
        """Permanently remove an item."""

    @abstractmethod
    def count(self) -> int:
        """Number of items, claimed or not."""

    @abstractmethod
    def in_flight(self) -> list[QueueItem]:
        """Claimed, undeleted items, oldest claim first."""

    @abstractmethod
    def items(self) -> list[QueueItem]:
        """Every undeleted item in queue order, claimed or not."""

    @abstractmethod
    def reset(self) -> int:
        """Destroy and recreate the queue empty; return how many items were dropped."""


class MemoryTaskQueue(TaskQueue):
    """Process-local queue used by the memory backend and tests."""

    def __init__(self, name: str):
        super().__init__(name)
        self._items: list[QueueItem] = []
        self._lock = threading.Lock()

    def enqueue(self, data: dict[str, Any]) -> QueueItem:
        item = QueueItem(item_id=generate_item_id(), queue_name=self.name, data=dict(data))
        with self._lock:
            self._items.append(item)
        logger.debug("Queue item created", queue_name=self.name, item_id=item.item_id)
        return item.model_copy()

    def claim(self) -> Optional[QueueItem]:
        with self._lock:
            for item in self._items:
                if item.claimed_at is None:
                    item.claimed_at = utc_now()
                    return item.model_copy()
        return None

    def release(self, item: QueueItem) -> None:
        with self._lock:
            stored = self._find(item.item_id)
            if stored is not None:
                stored.claimed_at = None

    def delete(self, item: QueueItem) -> None:
        with self._lock:
            self._items = [i for i in self._items if i.item_id != item.item_id]

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def in_flight(self) -> list[QueueItem]:
        with self._lock:
            claimed = [i.model_copy() for i in self._items if i.claimed_at is not None]
        return sorted(claimed, key=lambda i: i.claimed_at)

    def items(self) -> list[QueueItem]:
        with self._lock:
            return [i.model_copy() for i in self._items]

    def reset(self) -> int:
        with self._lock:
            dropped = len(self._items)
            self._items = []
        logger.info("Queue reset", queue_name=self.name, items_dropped=dropped)
        return dropped

    def _find(self, item_id: str) -> Optional[QueueItem]:
        for item in self._items:
            if item.item_id == item_id:
                return item
        return None
