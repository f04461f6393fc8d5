"""
CorrelationRegistry - pending permission requests keyed by id.

Removal is the single point of arbitration: whichever caller pops an entry
first owns its resolution, every later pop sees None.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from agentgate.permission.schema import PermissionRequest

T = TypeVar("T")


@dataclass
class PendingEntry(Generic[T]):
    """A pending request plus the waiter state needed to resolve it."""

    request: PermissionRequest
    waiter: T
    timer: Any | None = field(default=None)


class CorrelationRegistry(Generic[T]):
    """Insertion-ordered, lock-guarded map from request id to pending entry."""

    def __init__(self) -> None:
        self._entries: dict[str, PendingEntry[T]] = {}
        self._lock = threading.Lock()

    def insert(self, entry: PendingEntry[T]) -> None:
        """
        Store a new pending entry.

        Raises:
            KeyError: If the id is already registered
        """
        request_id = entry.request.id
        with self._lock:
            if request_id in self._entries:
                raise KeyError(f"duplicate permission id: {request_id}")
            self._entries[request_id] = entry

    def get(self, request_id: str) -> PendingEntry[T] | None:
        with self._lock:
            return self._entries.get(request_id)

    def pop(self, request_id: str) -> PendingEntry[T] | None:
        """Remove and return the entry; None if absent or already removed."""
        with self._lock:
            return self._entries.pop(request_id, None)

    def __contains__(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def requests(self) -> list[PermissionRequest]:
        """Pending requests in insertion order."""
        with self._lock:
            return [entry.request for entry in self._entries.values()]


__all__ = ["CorrelationRegistry", "PendingEntry"]
