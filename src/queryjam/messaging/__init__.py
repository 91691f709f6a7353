"""
Messaging module - in-process event broadcast and Redis connectivity.

Provides:
- BroadcastHub: publish/subscribe bus for live session events
- RedisClient: Connection management for shared counters

Usage:
    hub = BroadcastHub()
    handle = hub.subscribe(EventType.QUERY_FINISHED, on_result)
    hub.query_finished(session_id, query_id, success=True, count=8, execution_time=3, user_id="u1")
    hub.unsubscribe(handle)
"""

from __future__ import annotations

from .client import RedisClient
from .hub import BroadcastEvent, BroadcastHub, EventType, SubscriptionHandle

__all__ = [
    # Hub
    "BroadcastHub",
    "BroadcastEvent",
    "EventType",
    "SubscriptionHandle",
    # Client
    "RedisClient",
]
