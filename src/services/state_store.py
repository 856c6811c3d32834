"""Keyed state store for progress records and completion markers."""

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from src.models.progress import ProgressRecord, SuccessMarker

PROGRESS_KEY = "field_queue.progress.{queue_name}"
SUCCESS_KEY = "field_queue.success.{queue_name}"


class StateStore(ABC):
    """Single-key atomic reads and writes of small JSON values."""

    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, key: str, value: dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    # Typed helpers over the raw keys

    def get_progress(self, queue_name: str) -> Optional[ProgressRecord]:
        value = self.get(PROGRESS_KEY.format(queue_name=queue_name))
        return ProgressRecord.model_validate(value) if value else None

    def set_progress(self, record: ProgressRecord) -> None:
        self.set(PROGRESS_KEY.format(queue_name=record.queue_name), record.model_dump(mode="json"))

    def delete_progress(self, queue_name: str) -> None:
        self.delete(PROGRESS_KEY.format(queue_name=queue_name))

    def get_success(self, queue_name: str) -> Optional[SuccessMarker]:
        value = self.get(SUCCESS_KEY.format(queue_name=queue_name))
        return SuccessMarker.model_validate(value) if value else None

    def set_success(self, marker: SuccessMarker) -> None:
        self.set(SUCCESS_KEY.format(queue_name=marker.queue_name), marker.model_dump(mode="json"))

    def delete_success(self, queue_name: str) -> None:
        self.delete(SUCCESS_KEY.format(queue_name=queue_name))


class MemoryStateStore(StateStore):
    """Process-local store used by the memory backend and tests."""

    def __init__(self):
        self._values: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            value = self._values.get(key)
            return dict(value) if value is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            self._values[key] = dict(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._values)
