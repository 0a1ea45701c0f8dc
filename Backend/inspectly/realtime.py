"""
In-process change feed.

Every committed row change on a realtime-enabled table is published as a
``ChangeEvent``. Listeners open a channel scoped to one table and one
organization (topic ``...:organization_id=eq.<id>``) and receive only matching rows.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy import event

logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"

_PENDING_KEY = "realtime_pending"

Handler = Callable[[dict[str, Any]], None]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    event: str
    table: str
    new: Optional[dict[str, Any]] = None
    old: Optional[dict[str, Any]] = None

    @property
    def record(self) -> dict[str, Any]:
        return self.new if self.new is not None else (self.old or {})

    @property
    def organization_id(self) -> Optional[str]:
        value = self.record.get("organization_id")
        return str(value) if value is not None else None


class RealtimeChannel:
    """Handle for one open subscription; ``unsubscribe`` is idempotent."""

    def __init__(
        self,
        feed: ChangeFeed,
        table: str,
        organization_id: str,
        *,
        on_insert: Optional[Handler] = None,
        on_update: Optional[Handler] = None,
        on_delete: Optional[Handler] = None,
    ) -> None:
        self._feed = feed
        self.table = table
        self.organization_id = str(organization_id)
        self._handlers: dict[str, Optional[Handler]] = {
            EVENT_INSERT: on_insert,
            EVENT_UPDATE: on_update,
            EVENT_DELETE: on_delete,
        }
        self._active = True

    @property
    def topic(self) -> str:
        return f"realtime:public:{self.table}:organization_id=eq.{self.organization_id}"

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, change: ChangeEvent) -> bool:
        return (
            self._active
            and change.table == self.table
            and change.organization_id == self.organization_id
        )

    def deliver(self, change: ChangeEvent) -> None:
        handler = self._handlers.get(change.event)
        if handler is None:
            return
        if change.event == EVENT_DELETE:
            handler(change.old or {})
        else:
            handler(change.new or {})

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)
        logger.info("Realtime channel closed: %s", self.topic)


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: list[RealtimeChannel] = []

    def channel(
        self,
        table: str,
        organization_id: str,
        *,
        on_insert: Optional[Handler] = None,
        on_update: Optional[Handler] = None,
        on_delete: Optional[Handler] = None,
    ) -> RealtimeChannel:
        channel = RealtimeChannel(
            self,
            table,
            organization_id,
            on_insert=on_insert,
            on_update=on_update,
            on_delete=on_delete,
        )
        with self._lock:
            self._channels.append(channel)
        logger.info("Realtime channel opened: %s", channel.topic)
        return channel

    @property
    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            targets = [c for c in self._channels if c.matches(change)]
        for channel in targets:
            try:
                channel.deliver(change)
            except Exception:
                # a failing listener must not block delivery to the others
                logger.exception("Realtime handler failed on %s %s", change.event, channel.topic)

    def _remove(self, channel: RealtimeChannel) -> None:
        with self._lock:
            try:
                self._channels.remove(channel)
            except ValueError:
                pass


# ---------------------------------------------------------------------------
# SQLAlchemy session hooks
# ---------------------------------------------------------------------------

def _is_realtime(obj) -> bool:
    return bool(getattr(obj, "__realtime__", False))


def bind_session_events(feed: ChangeFeed, session_factory) -> None:
    """Publish committed changes of realtime-enabled models made through ``session_factory``."""

    def _collect(session, flush_context):
        pending = session.info.setdefault(_PENDING_KEY, [])
        for obj in session.new:
            if _is_realtime(obj):
                pending.append(ChangeEvent(EVENT_INSERT, obj.__tablename__, new=obj.as_dict()))
        for obj in session.dirty:
            if _is_realtime(obj) and session.is_modified(obj, include_collections=False):
                pending.append(ChangeEvent(EVENT_UPDATE, obj.__tablename__, new=obj.as_dict()))
        for obj in session.deleted:
            if _is_realtime(obj):
                pending.append(ChangeEvent(EVENT_DELETE, obj.__tablename__, old=obj.as_dict()))

    def _publish(session):
        pending = session.info.pop(_PENDING_KEY, None) or []
        for change in pending:
            feed.publish(change)

    def _discard(session, previous_transaction):
        session.info.pop(_PENDING_KEY, None)

    event.listen(session_factory, "after_flush", _collect)
    event.listen(session_factory, "after_commit", _publish)
    event.listen(session_factory, "after_soft_rollback", _discard)
