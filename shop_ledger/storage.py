"""
Storage Backend Module

Provides the in-memory entity store that owns every collection, the id
generator, and the JSON snapshot backend that loads and atomically replaces
the durable copy of the whole store.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar
from datetime import datetime, timezone
from pathlib import Path
import json
import os
import tempfile
import threading
import time

from .clients import Client
from .errors import InternalError, NotFoundError
from .logging_config import get_logger
from .notifications import Notification, NotificationLog
from .products import Product
from .transactions import Transaction, transaction_from_dict
from .users import Role, User


logger = get_logger("shop_ledger.storage")

SNAPSHOT_COLLECTIONS = ("users", "clients", "products", "transactions", "notifications")

RecordT = TypeVar("RecordT")


class IdGenerator:
    """
    Monotonic integer ids seeded from the millisecond clock.

    Two calls inside the same clock tick still get distinct ids because the
    counter always moves at least one past the last value handed out.
    """

    def __init__(self, clock: Callable[[], float] = time.time, last_id: int = 0):
        self._clock = clock
        self._last = last_id
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            self._last = max(self._last + 1, candidate)
            return self._last

    def observe(self, existing_id: int) -> None:
        """Make sure future ids are larger than an id already in use"""
        with self._lock:
            if existing_id > self._last:
                self._last = existing_id

    @property
    def last_id(self) -> int:
        return self._last


class EntityStore:
    """
    Authoritative in-memory collections.

    ``lock`` is the single-writer lock: the ledger holds it from validation
    through persistence, and readers take consistent copies under it.
    """

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        clients: Optional[Iterable[Client]] = None,
        products: Optional[Iterable[Product]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        notifications: Optional[Iterable[Notification]] = None,
        id_generator: Optional[IdGenerator] = None
    ):
        self.lock = threading.RLock()
        self.ids = id_generator or IdGenerator()
        self.users: List[User] = list(users or [])
        self.clients: List[Client] = list(clients or [])
        self.products: List[Product] = list(products or [])
        self.transactions: List[Transaction] = list(transactions or [])
        self.notifications = NotificationLog(self.ids.next_id, notifications)

        for record in self._all_records():
            self.ids.observe(record.id)

    def _all_records(self) -> List[Any]:
        return [*self.users, *self.clients, *self.products,
                *self.transactions, *self.notifications]

    def next_id(self) -> int:
        return self.ids.next_id()

    # Lookups

    @staticmethod
    def _find(records: List[RecordT], record_id: int) -> Optional[RecordT]:
        for record in records:
            if record.id == record_id:
                return record
        return None

    def find_user(self, user_id: int) -> Optional[User]:
        return self._find(self.users, user_id)

    def find_user_by_username(self, username: str) -> Optional[User]:
        for user in self.users:
            if user.username == username:
                return user
        return None

    def find_client(self, client_id: int) -> Optional[Client]:
        return self._find(self.clients, client_id)

    def find_product(self, product_id: int) -> Optional[Product]:
        return self._find(self.products, product_id)

    def get_user(self, user_id: int) -> User:
        user = self.find_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_client(self, client_id: int) -> Client:
        client = self.find_client(client_id)
        if not client:
            raise NotFoundError("Client not found")
        return client

    def get_product(self, product_id: int) -> Product:
        product = self.find_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    # Serialization

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Snapshot document with the five top-level collections"""
        with self.lock:
            return {
                "users": [user.to_dict() for user in self.users],
                "clients": [client.to_dict() for client in self.clients],
                "products": [product.to_dict() for product in self.products],
                "transactions": [t.to_dict() for t in self.transactions],
                "notifications": [n.to_dict() for n in self.notifications],
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EntityStore':
        missing = [name for name in SNAPSHOT_COLLECTIONS if name not in data]
        if missing:
            raise ValueError(f"Snapshot is missing collections: {', '.join(missing)}")
        return cls(
            users=[User.from_dict(item) for item in data["users"]],
            clients=[Client.from_dict(item) for item in data["clients"]],
            products=[Product.from_dict(item) for item in data["products"]],
            transactions=[transaction_from_dict(item) for item in data["transactions"]],
            notifications=[Notification.from_dict(item) for item in data["notifications"]],
        )

    def restore(self, data: Dict[str, Any]) -> None:
        """
        Replace every collection in place with the contents of ``data``.

        The id generator is kept, so ids handed out since ``data`` was taken
        are never reused.
        """
        restored = EntityStore.from_dict(data)
        with self.lock:
            self.users[:] = restored.users
            self.clients[:] = restored.clients
            self.products[:] = restored.products
            self.transactions[:] = restored.transactions
            self.notifications = NotificationLog(self.ids.next_id, restored.notifications)

    def snapshot(self) -> 'EntityStore':
        """Independent copy taken under the writer lock, for read-only use"""
        with self.lock:
            copy = EntityStore.from_dict(self.to_dict())
            copy.ids.observe(self.ids.last_id)
            return copy

    @classmethod
    def seeded(
        cls,
        admin_username: str = "ADMIN",
        admin_password: str = "ADMIN123",
        admin_name: str = "System Admin",
        admin_language: str = "rw"
    ) -> 'EntityStore':
        """Fresh store holding exactly one bootstrap administrator"""
        store = cls()
        admin = User(
            id=store.next_id(),
            username=admin_username,
            name=admin_name,
            role=Role.ADMIN,
            language=admin_language,
        )
        admin.set_password(admin_password)
        store.users.append(admin)
        return store


class SnapshotStorage:
    """
    JSON snapshot backend.

    ``save`` writes to a temporary file in the target directory and swaps it
    in with ``os.replace``, so readers see either the old or the new snapshot,
    never a partial one. There is no write-ahead log: a crash after an
    in-memory mutation but before ``save`` completes loses that mutation.
    """

    def __init__(
        self,
        path: Any = "data.json",
        admin_username: str = "ADMIN",
        admin_password: str = "ADMIN123",
        admin_name: str = "System Admin",
        admin_language: str = "rw"
    ):
        self.path = Path(path)
        self._bootstrap = {
            "admin_username": admin_username,
            "admin_password": admin_password,
            "admin_name": admin_name,
            "admin_language": admin_language,
        }
        self._write_lock = threading.Lock()
        self.last_saved_at: Optional[datetime] = None

    def default_store(self) -> EntityStore:
        return EntityStore.seeded(**self._bootstrap)

    def load(self) -> EntityStore:
        """Read the snapshot, falling back to a seeded store on any failure"""
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}, starting with bootstrap admin")
            return self.default_store()

        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
            store = EntityStore.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"Could not read snapshot {self.path}, starting with bootstrap admin: {e}",
                exc_info=True
            )
            return self.default_store()

        logger.info(
            f"Loaded snapshot {self.path}: {len(store.clients)} clients, "
            f"{len(store.products)} products, {len(store.transactions)} transactions"
        )
        return store

    def save(self, store: EntityStore) -> None:
        """Serialize the whole store and atomically replace the snapshot"""
        with store.lock:
            data = store.to_dict()

        directory = self.path.parent
        temp_path = None
        with self._write_lock:
            try:
                directory.mkdir(parents=True, exist_ok=True)
                fd, temp_path = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=str(directory)
                )
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_path, self.path)
                temp_path = None
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save snapshot {self.path}: {e}", exc_info=True)
                raise InternalError("Failed to persist data") from e
            finally:
                if temp_path and os.path.exists(temp_path):
                    os.remove(temp_path)

        self.last_saved_at = datetime.now(timezone.utc)
        logger.debug(f"Snapshot saved to {self.path}")
