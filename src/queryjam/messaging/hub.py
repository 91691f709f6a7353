"""
In-process broadcast hub.

Publisher - query lifecycle and membership changes
Subscriber - one SessionStreamHandler per open client connection

Delivery is synchronous, best-effort and at-most-once: a handler that was
not subscribed when an event fired never sees it. Handlers must not block;
they enqueue onto their own transport.
"""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class EventType(str, enum.Enum):
    QUERY_STARTED = "query:update"
    QUERY_FINISHED = "query:result"
    MEMBER_JOINED = "member:joined"
    MEMBER_LEFT = "member:left"


@dataclass(frozen=True)
class BroadcastEvent:
    """
    A single published event.

    `session_id` is the fan-out key; `payload` holds the camelCase fields
    forwarded to clients next to `type` and `sessionId`.
    """
    type: EventType
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type.value, "sessionId": self.session_id, **self.payload}


EventHandler = Callable[[BroadcastEvent], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Returned by subscribe(); the only way to stop delivery."""
    id: int
    event_type: EventType


class BroadcastHub:
    """
    Publish/subscribe bus for one application instance.

    Usage:
        hub = BroadcastHub()

        handle = hub.subscribe(EventType.QUERY_STARTED, on_event)
        hub.publish(EventType.QUERY_STARTED, {"sessionId": "s1", "query": {...}})
        hub.unsubscribe(handle)
    """

    def __init__(self):
        self._handlers: dict[EventType, dict[int, EventHandler]] = {t: {} for t in EventType}
        self._ids = itertools.count(1)

    def subscribe(self, event_type: EventType | str, handler: EventHandler) -> SubscriptionHandle:
        """Register a handler for one event type."""
        event_type = EventType(event_type)
        handle = SubscriptionHandle(id=next(self._ids), event_type=event_type)
        self._handlers[event_type][handle.id] = handler
        logger.debug(f"Subscribed handler {handle.id} to {event_type.value}")
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """
        Remove a subscription.

        Returns False if the handle was already removed.
        """
        removed = self._handlers[handle.event_type].pop(handle.id, None) is not None
        if removed:
            logger.debug(f"Unsubscribed handler {handle.id} from {handle.event_type.value}")
        return removed

    def publish(self, event_type: EventType | str, payload: dict[str, Any]) -> int:
        """
        Fan out an event to every current subscriber of its type.

        Args:
            event_type: Event category
            payload: Event data; must include "sessionId"

        Returns:
            Number of handlers that received the event
        """
        event_type = EventType(event_type)
        data = dict(payload)
        session_id = data.pop("sessionId", None)
        if not session_id:
            raise ValueError(f"{event_type.value} event requires a sessionId")

        event = BroadcastEvent(type=event_type, session_id=str(session_id), payload=data)

        # Snapshot: handlers may unsubscribe while we iterate
        handlers = list(self._handlers[event_type].items())
        delivered = 0
        for handler_id, handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Error in handler {handler_id} for {event_type.value}: {e}", exc_info=True)

        logger.debug(f"Published {event_type.value} for session {session_id}: {delivered} handlers")
        return delivered

    @property
    def subscriber_count(self) -> int:
        return sum(len(handlers) for handlers in self._handlers.values())

    # === Event helpers ===

    def query_started(self, session_id: str, query: dict[str, Any], user_id: str) -> int:
        count = self.publish(
            EventType.QUERY_STARTED,
            {"sessionId": session_id, "query": query, "userId": user_id},
        )
        logger.info(f"Broadcast query update for session {session_id}, query {query.get('id')}")
        return count

    def query_finished(
        self,
        session_id: str,
        query_id: str,
        *,
        success: bool,
        count: int,
        execution_time: int,
        user_id: str,
        status: Optional[str] = None,
    ) -> int:
        summary = {"success": success, "count": count, "executionTime": execution_time}
        if status is not None:
            summary["status"] = status
        published = self.publish(
            EventType.QUERY_FINISHED,
            {"sessionId": session_id, "queryId": query_id, "payload": summary, "userId": user_id},
        )
        logger.info(f"Broadcast query result for session {session_id}, query {query_id}")
        return published

    def member_joined(self, session_id: str, member: dict[str, Any]) -> int:
        count = self.publish(EventType.MEMBER_JOINED, {"sessionId": session_id, "member": member})
        logger.info(f"Broadcast member joined for session {session_id}: {member.get('userId')}")
        return count

    def member_left(self, session_id: str, user_id: str) -> int:
        count = self.publish(EventType.MEMBER_LEFT, {"sessionId": session_id, "userId": user_id})
        logger.info(f"Broadcast member left for session {session_id}: {user_id}")
        return count
