"""
Notification Log Module

Append-only activity feed shown on the dashboard. Entries are never edited;
the log can only grow, be pruned by id, or be cleared in bulk.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from .errors import NotFoundError
from .records import StorageRecord, parse_datetime, to_storable


class NotificationType(Enum):
    """Types of notifications"""
    USER = "user"
    CLIENT = "client"
    WARNING = "warning"
    SALE = "sale"
    SUCCESS = "success"
    INFO = "info"
    SECURITY = "security"
    STOCK = "stock"


@dataclass(frozen=True)
class Notification(StorageRecord):
    """Individual feed entry"""
    id: int
    message: str
    type: NotificationType
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.type.value,
            "timestamp": to_storable(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notification':
        return cls(
            id=int(data['id']),
            message=data['message'],
            type=NotificationType(data['type']),
            timestamp=parse_datetime(data['timestamp']),
        )


class NotificationLog:
    """
    Ordered notification feed owned by the entity store.

    Ids come from the store's id generator so they never collide with
    other entities created in the same clock tick.
    """

    def __init__(self, id_factory: Callable[[], int],
                 entries: Optional[Iterable[Notification]] = None):
        self._next_id = id_factory
        self._entries: List[Notification] = list(entries or [])

    def append(self, message: str, notification_type: NotificationType,
               timestamp: Optional[datetime] = None) -> Notification:
        """Add an entry at the end of the feed"""
        notification = Notification(
            id=self._next_id(),
            message=message,
            type=notification_type,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self._entries.append(notification)
        return notification

    def recent(self, limit: int = 10) -> List[Notification]:
        """Most recent entries, newest first"""
        if limit <= 0:
            return []
        return list(reversed(self._entries[-limit:]))

    def all(self) -> List[Notification]:
        return list(self._entries)

    def get(self, notification_id: int) -> Notification:
        for notification in self._entries:
            if notification.id == notification_id:
                return notification
        raise NotFoundError("Notification not found")

    def remove(self, notification_id: int) -> Notification:
        """Prune one entry by id"""
        notification = self.get(notification_id)
        self._entries.remove(notification)
        return notification

    def clear(self) -> int:
        """Drop every entry, returning how many were removed"""
        removed = len(self._entries)
        self._entries = []
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Notification]:
        return iter(list(self._entries))
