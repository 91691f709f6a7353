"""
Per-connection session stream.

One SessionStreamHandler per open client connection. Hub callbacks only
filter by session id and enqueue; a sender task drains the queue through
the transport so a slow or broken client never blocks publishers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..core.errors import AccessDeniedError
from ..iam.access import has_access
from ..messaging.hub import BroadcastEvent, BroadcastHub, EventType, SubscriptionHandle
from ..service.models import Session

logger = logging.getLogger(__name__)


Send = Callable[[dict[str, Any]], Awaitable[None]]

MAX_PENDING_FRAMES = 1000

_CLOSED = object()


class SessionStreamHandler:
    """
    Streams hub events of one session to one client.

    Usage:
        handler = SessionStreamHandler.open(hub, session, user_id, websocket.send_json)
        sender = asyncio.create_task(handler.run())
        ...
        handler.close()
    """

    def __init__(
        self,
        hub: BroadcastHub,
        session_id: str,
        user_id: str,
        send: Send,
        *,
        max_pending: int = MAX_PENDING_FRAMES,
    ):
        self.hub = hub
        self.session_id = session_id
        self.user_id = user_id
        self.send = send
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._handles: list[SubscriptionHandle] = []
        self._closed = False
        self._overflowed = False

    @classmethod
    def open(
        cls,
        hub: BroadcastHub,
        session: Session,
        user_id: Optional[str],
        send: Send,
        **kwargs: Any,
    ) -> SessionStreamHandler:
        """
        Authorize and subscribe a new handler.

        Raises:
            AccessDeniedError: User is neither owner nor member
        """
        if not has_access(session, user_id):
            raise AccessDeniedError("You do not have access to this session")

        handler = cls(hub, session.id, user_id, send, **kwargs)
        handler.push({"type": "connected", "sessionId": session.id, "userId": user_id})
        handler._handles = [hub.subscribe(event_type, handler._on_event) for event_type in EventType]

        logger.info(f"Stream opened for session {session.id}, user {user_id}")
        return handler

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def overflowed(self) -> bool:
        """True when the handler closed because the client fell behind."""
        return self._overflowed

    def _on_event(self, event: BroadcastEvent):
        if self._closed or event.session_id != self.session_id:
            return
        self.push(event.to_frame())

    def push(self, frame: dict[str, Any]):
        """
        Queue a frame for delivery; dropped once the handler is closed.

        A full queue closes the handler instead of skipping the frame, so a
        connected client never misses an event without noticing; it has to
        reconnect.
        """
        if self._closed:
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                f"Stream for session {self.session_id}, user {self.user_id} fell behind "
                f"at {frame.get('type')} frame; closing"
            )
            self._overflowed = True
            self.close()

    async def run(self):
        """Deliver queued frames until closed or the transport fails."""
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED or self._closed:
                break
            try:
                await self.send(frame)
            except Exception as e:
                logger.warning(f"Failed to send to user {self.user_id} in session {self.session_id}: {e}")
                self.close()
                break

    def close(self):
        """Release all hub subscriptions. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        for handle in self._handles:
            self.hub.unsubscribe(handle)
        self._handles = []

        # Wake the sender; pending frames are discarded
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

        logger.info(f"Stream closed for session {self.session_id}, user {self.user_id}")
