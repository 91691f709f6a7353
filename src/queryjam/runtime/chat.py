"""
Session chat.

Messages are stored per session and read back oldest-first. Posting and
reading both require session access.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from ..core.errors import AccessDeniedError
from ..core.schemas import MessageCreate
from ..iam.access import has_access
from ..service.database import Database
from ..service.models import Message, utcnow
from .context import Principal
from .sessions import load_session, require_user

logger = logging.getLogger(__name__)


DEFAULT_MESSAGE_LIMIT = 50
MAX_MESSAGE_LIMIT = 200


class ChatService:
    """
    Usage:
        chat = ChatService(database)
        await chat.post(principal, session_id, MessageCreate(content="look at row 3"))
        messages = await chat.recent(principal, session_id)
    """

    def __init__(self, database: Database):
        self.database = database

    async def post(self, principal: Principal, session_id: str, data: MessageCreate) -> Message:
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not has_access(session, user_id):
                raise AccessDeniedError("You do not have access to this session")

            message = Message(
                session_id=session_id,
                user_id=user_id,
                content=data.content,
                type=data.type,
                related_query_id=data.related_query_id,
                created_at=utcnow(),
            )
            db.add(message)
            await db.commit()

        logger.debug(f"Message {message.id} posted to session {session_id}")
        return message

    async def recent(
        self,
        principal: Principal,
        session_id: str,
        limit: int = DEFAULT_MESSAGE_LIMIT,
    ) -> list[Message]:
        """Latest messages of a session in chronological order."""
        user_id = require_user(principal)
        limit = min(max(int(limit), 1), MAX_MESSAGE_LIMIT)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not has_access(session, user_id):
                raise AccessDeniedError("You do not have access to this session")

            result = await db.execute(
                select(Message)
                .where(Message.session_id == session_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
            )
            return list(reversed(result.scalars().all()))
