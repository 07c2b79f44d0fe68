"""Queue of state changes made while running without the gateway."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class ChangeType(str, Enum):
    SESSION_MESSAGE = "session_message"
    MEMORY_UPDATE = "memory_update"


@dataclass(frozen=True)
class QueuedStateChange:
    """A change recorded offline, to be replayed to the gateway later.

    Attributes:
        type: What kind of state changed
        timestamp: Milliseconds since the epoch when it was queued
        payload: Opaque data for the reconciliation hook
    """
    type: ChangeType
    timestamp: int
    payload: Any = None


def now_ms() -> int:
    return int(time.time() * 1000)


class ChangeQueue:
    """Unbounded FIFO of pending changes.

    Entries are only ever appended, or removed all at once by ``drain()``.
    """

    def __init__(self):
        self._items: list[QueuedStateChange] = []

    def __len__(self) -> int:
        return len(self._items)

    def append(
        self,
        change_type: Union[ChangeType, str],
        payload: Any = None,
        timestamp: Optional[int] = None,
    ) -> QueuedStateChange:
        # Raises ValueError for unknown types
        change = QueuedStateChange(
            type=ChangeType(change_type),
            timestamp=now_ms() if timestamp is None else timestamp,
            payload=payload,
        )
        self._items.append(change)
        return change

    def snapshot(self) -> list[QueuedStateChange]:
        return list(self._items)

    def drain(self) -> list[QueuedStateChange]:
        """Remove and return every entry, oldest first."""
        items, self._items = self._items, []
        return items
