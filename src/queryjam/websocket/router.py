"""
WebSocket endpoint for live session events.

    WS /sessions/{session_id}/events?user_id=...   (or X-User-Id header)

Frames sent to the client:
    {"type": "connected", "sessionId": ..., "userId": ...}
    {"type": "query:update", "sessionId": ..., "query": {...}, "userId": ...}
    {"type": "query:result", "sessionId": ..., "queryId": ..., "payload": {...}, "userId": ...}
    {"type": "member:joined", "sessionId": ..., "member": {...}}
    {"type": "member:left", "sessionId": ..., "userId": ...}

Client messages:
    {"type": "ping"}  ->  {"type": "pong"}

Close codes before accept: 4401 no principal, 4403 not a member, 4404 unknown session.
After accept: 1013 when the client fell too far behind; it should reconnect.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..api.deps import USER_ID_HEADER
from ..core.errors import AccessDeniedError
from ..service.container import Services
from ..service.models import Session
from .stream import SessionStreamHandler

logger = logging.getLogger(__name__)


CLOSE_UNAUTHORIZED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_NOT_FOUND = 4404
CLOSE_TRY_AGAIN = 1013


router = APIRouter()


async def _deliver(websocket: WebSocket, handler: SessionStreamHandler):
    """Run the handler's sender; drop the socket if the client fell behind."""
    await handler.run()
    if handler.overflowed:
        try:
            await websocket.close(code=CLOSE_TRY_AGAIN)
        except RuntimeError as e:
            # Client already gone
            logger.debug(f"Close after overflow failed for {handler.user_id}: {e}")


@router.websocket("/sessions/{session_id}/events")
async def session_events(websocket: WebSocket, session_id: str, user_id: Optional[str] = None):
    """
    Stream a session's live events.

    Flow:
    1. Resolve principal and session, authorize
    2. Subscribe a SessionStreamHandler to the hub, accept
    3. Sender task drains the handler queue; this loop answers pings
    4. Disconnect tears the handler down
    """
    services: Services = websocket.app.state.services
    user_id = user_id or websocket.headers.get(USER_ID_HEADER)

    if not user_id:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return

    async with services.database.session() as db:
        session = await db.get(Session, session_id)

    if session is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return

    try:
        handler = SessionStreamHandler.open(services.hub, session, user_id, websocket.send_json)
    except AccessDeniedError:
        logger.info(f"Stream refused for user {user_id} in session {session_id}")
        await websocket.close(code=CLOSE_FORBIDDEN)
        return

    sender: Optional[asyncio.Task] = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(_deliver(websocket, handler))

        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                logger.debug(f"Ignoring non-JSON message from {user_id}")
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                handler.push({"type": "pong"})
            else:
                logger.debug(f"Ignoring client message from {user_id}: {text[:100]}")

    except WebSocketDisconnect:
        logger.info(f"User {user_id} disconnected from session {session_id}")
    except Exception as e:
        logger.error(f"Error in session stream {session_id} for {user_id}: {e}", exc_info=True)
    finally:
        handler.close()
        if sender:
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
