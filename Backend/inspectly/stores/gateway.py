from typing import Any, Callable, List

from sqlalchemy.orm import Session

from inspectly.realtime import ChangeFeed, RealtimeChannel
from inspectly.stores.entity_store import RowHandler


class ApiGateway:
    """
    Binds one entity's API client functions to a session factory and the change feed.
    Each call runs in its own short-lived session.
    """

    def __init__(
        self,
        table: str,
        *,
        fetch: Callable[[Session, str], List[Any]],
        insert: Callable[[Session, Any], Any],
        update: Callable[[Session, str, Any], Any],
        delete: Callable[[Session, str, str], None],
        session_factory,
        feed: ChangeFeed,
    ) -> None:
        self.table = table
        self._fetch = fetch
        self._insert = insert
        self._update = update
        self._delete = delete
        self._session_factory = session_factory
        self._feed = feed

    def fetch(self, organization_id: str):
        with self._session_factory() as db:
            return self._fetch(db, organization_id)

    def insert(self, draft):
        with self._session_factory() as db:
            return self._insert(db, draft)

    def update(self, record_id: str, partial):
        with self._session_factory() as db:
            return self._update(db, record_id, partial)

    def delete(self, record_id: str, organization_id: str) -> None:
        with self._session_factory() as db:
            self._delete(db, record_id, organization_id)

    def subscribe(
        self,
        organization_id: str,
        *,
        on_insert: RowHandler,
        on_update: RowHandler,
        on_delete: RowHandler,
    ) -> RealtimeChannel:
        return self._feed.channel(
            self.table,
            organization_id,
            on_insert=on_insert,
            on_update=on_update,
            on_delete=on_delete,
        )
