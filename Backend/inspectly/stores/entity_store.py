"""
In-memory mirror of one tenant-scoped table.

The store keeps ``items`` newest-first after ``fetch``; local mutations go to
the backend first and then patch the cache (creates at the head, updates in
place, deletes by id). Realtime events from other writers are merged into the
same cache keyed by id. Nothing is re-sorted until the next ``fetch``.
"""

import logging
import threading
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

RowHandler = Callable[[Dict[str, Any]], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None:
        ...


class TableGateway(Protocol[T]):
    """What a store needs from the backend; swapped for a fake in tests."""

    def fetch(self, organization_id: str) -> List[T]:
        ...

    def insert(self, draft: Any) -> T:
        ...

    def update(self, record_id: str, partial: Any) -> T:
        ...

    def delete(self, record_id: str, organization_id: str) -> None:
        ...

    def subscribe(
        self,
        organization_id: str,
        *,
        on_insert: RowHandler,
        on_update: RowHandler,
        on_delete: RowHandler,
    ) -> Subscription:
        ...


class EntityStore(Generic[T]):
    entity_name = "item"
    plural_name = "items"
    model_type: Type[T]

    def __init__(self, gateway: TableGateway) -> None:
        self._gateway = gateway
        self._lock = threading.RLock()
        self._items: List[T] = []
        self.loading = False
        self.error: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._subscribed_organization: Optional[str] = None

    # ------------------------------------------------------------------
    # cache access
    # ------------------------------------------------------------------
    @property
    def items(self) -> List[T]:
        with self._lock:
            return list(self._items)

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    @property
    def subscribed_organization(self) -> Optional[str]:
        return self._subscribed_organization

    def get(self, record_id: str) -> Optional[T]:
        with self._lock:
            return next((item for item in self._items if item.id == record_id), None)

    def _index_of(self, record_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == record_id:
                return index
        return -1

    def _put_at_head(self, record: T) -> None:
        with self._lock:
            index = self._index_of(record.id)
            if index >= 0:
                # our own realtime echo got here first
                self._items[index] = record
            else:
                self._items.insert(0, record)

    def _replace(self, record_id: str, record: T) -> None:
        with self._lock:
            index = self._index_of(record_id)
            if index >= 0:
                self._items[index] = record

    def _remove(self, record_id: str) -> None:
        with self._lock:
            self._items = [item for item in self._items if item.id != record_id]

    # ------------------------------------------------------------------
    # backend operations
    # ------------------------------------------------------------------
    def fetch(self, organization_id: str) -> None:
        with self._lock:
            self.loading = True
            self.error = None
        try:
            records = self._gateway.fetch(organization_id)
        except Exception:
            logger.exception("Error fetching %s", self.plural_name)
            with self._lock:
                self.error = f"Failed to fetch {self.plural_name}"
                self.loading = False
            return
        with self._lock:
            self._items = list(records)
            self.loading = False

    def add(self, draft: Any) -> T:
        self.error = None
        try:
            created = self._gateway.insert(draft)
        except Exception:
            self.error = f"Failed to create {self.entity_name}"
            logger.exception("Error creating %s", self.entity_name)
            raise
        self._put_at_head(created)
        return created

    def update(self, record_id: str, partial: Any) -> T:
        self.error = None
        try:
            updated = self._gateway.update(record_id, partial)
        except Exception:
            self.error = f"Failed to update {self.entity_name}"
            logger.exception("Error updating %s", self.entity_name)
            raise
        self._replace(record_id, updated)
        return updated

    def delete(self, record_id: str, organization_id: str) -> None:
        self.error = None
        try:
            self._gateway.delete(record_id, organization_id)
        except Exception:
            self.error = f"Failed to delete {self.entity_name}"
            logger.exception("Error deleting %s", self.entity_name)
            raise
        self._remove(record_id)

    # ------------------------------------------------------------------
    # realtime
    # ------------------------------------------------------------------
    def subscribe_to_changes(self, organization_id: str) -> None:
        self.unsubscribe_from_changes()
        self._subscription = self._gateway.subscribe(
            organization_id,
            on_insert=self._handle_insert,
            on_update=self._handle_update,
            on_delete=self._handle_delete,
        )
        self._subscribed_organization = organization_id

    def unsubscribe_from_changes(self) -> None:
        subscription = self._subscription
        self._subscription = None
        self._subscribed_organization = None
        if subscription is not None:
            subscription.unsubscribe()

    def _parse(self, row: Dict[str, Any]) -> Optional[T]:
        try:
            return self.model_type.model_validate(row)
        except ValidationError:
            logger.warning("Ignoring malformed %s change row: %s", self.entity_name, row.get("id"))
            return None

    def _handle_insert(self, row: Dict[str, Any]) -> None:
        record = self._parse(row)
        if record is None:
            return
        with self._lock:
            if self._index_of(record.id) >= 0:
                return
            self._items.insert(0, record)

    def _handle_update(self, row: Dict[str, Any]) -> None:
        record = self._parse(row)
        if record is not None:
            self._replace(record.id, record)

    def _handle_delete(self, row: Dict[str, Any]) -> None:
        record_id = row.get("id")
        if record_id is not None:
            self._remove(str(record_id))
