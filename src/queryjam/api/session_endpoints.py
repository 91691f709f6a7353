"""
Session endpoints.

- POST   /sessions                      - Create a session (caller becomes owner)
- GET    /sessions                      - Sessions the caller owns or belongs to
- POST   /sessions/join                 - Join by access code (as editor)
- GET    /sessions/{id}                 - Open a session (public sessions add a viewer)
- PUT    /sessions/{id}                 - Update settings (owner)
- DELETE /sessions/{id}                 - Delete with datasets, queries and messages (owner)
- POST   /sessions/{id}/leave           - Leave (members; the owner cannot leave)
- POST   /sessions/{id}/access-code     - Rotate the access code (owner)
- GET    /sessions/{id}/messages        - Recent chat messages
- POST   /sessions/{id}/messages        - Post a chat message
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..core.schemas import JoinSessionRequest, MessageCreate, MessageOut, SessionCreate, SessionUpdate
from ..runtime.context import Principal
from ..runtime.sessions import session_view
from ..service.container import Services
from .deps import get_principal, get_services, rate_limited


router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
async def create_session(
    data: SessionCreate,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    session = await services.sessions.create(principal, data)
    return {"success": True, "session": session_view(session, principal.id).to_wire()}


@router.get("")
async def list_sessions(
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    sessions = await services.sessions.list_for_user(principal)
    return {
        "success": True,
        "sessions": [session_view(s, principal.id).to_wire() for s in sessions],
    }


@router.post("/join")
async def join_session(
    data: JoinSessionRequest,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    session = await services.sessions.join_by_code(principal, data.access_code)
    return {"success": True, "session": session_view(session, principal.id).to_wire()}


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    session = await services.sessions.view(principal, session_id)
    return {"success": True, "session": session_view(session, principal.id).to_wire()}


@router.put("/{session_id}")
async def update_session(
    session_id: str,
    data: SessionUpdate,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    session = await services.sessions.update(principal, session_id, data)
    return {"success": True, "session": session_view(session, principal.id).to_wire()}


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    await services.sessions.delete(principal, session_id)
    return {"success": True, "message": "Session deleted"}


@router.post("/{session_id}/leave")
async def leave_session(
    session_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    await services.sessions.leave(principal, session_id)
    return {"success": True, "message": "Left session"}


@router.post("/{session_id}/access-code")
async def regenerate_access_code(
    session_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    session = await services.sessions.regenerate_access_code(principal, session_id)
    return {"success": True, "accessCode": session.access_code}


# === Chat ===

@router.get("/{session_id}/messages")
async def list_messages(
    session_id: str,
    limit: int = Query(50),
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    messages = await services.chat.recent(principal, session_id, limit)
    return {
        "success": True,
        "messages": [MessageOut.model_validate(m).to_wire() for m in messages],
    }


@router.post("/{session_id}/messages", status_code=201)
async def post_message(
    session_id: str,
    data: MessageCreate,
    principal: Principal = Depends(rate_limited("message")),
    services: Services = Depends(get_services),
) -> dict:
    message = await services.chat.post(principal, session_id, data)
    return {"success": True, "message": MessageOut.model_validate(message).to_wire()}
