"""
Session service - membership and session management.

Handles:
- Create / view / list / update / delete sessions
- Join by access code, leave, access code rotation
- Member-joined / member-left broadcasts
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import AccessDeniedError, AuthenticationError, NotFoundError, ValidationError
from ..core.schemas import MemberOut, SessionCreate, SessionOut, SessionUpdate
from ..iam.access import (
    Role,
    add_member,
    can_edit,
    effective_role,
    find_by_access_code,
    has_access,
    is_member,
    is_owner,
    remove_member,
)
from ..messaging.hub import BroadcastHub
from ..service.database import Database
from ..service.models import Dataset, Member, Message, Query, Session
from .context import Principal
from .store import DatasetStore

logger = logging.getLogger(__name__)


def generate_access_code() -> str:
    """Opaque join token, e.g. 'K7Q2M9XA'."""
    return secrets.token_urlsafe(6).replace("-", "A").replace("_", "B").upper()


def require_user(principal: Principal) -> str:
    if not principal.is_authenticated:
        raise AuthenticationError()
    return principal.id


async def load_session(db: AsyncSession, session_id: str) -> Session:
    """Session with members loaded; raises NotFoundError when absent."""
    session = await db.get(Session, session_id)
    if session is None:
        raise NotFoundError("Session", session_id)
    return session


def session_view(session: Session, user_id: Optional[str]) -> SessionOut:
    """Session as seen by one user; the access code is shown to the owner only."""
    return SessionOut(
        id=session.id,
        name=session.name,
        description=session.description,
        owner_id=session.owner_id,
        is_public=session.is_public,
        access_code=session.access_code if is_owner(session, user_id) else None,
        active_dataset_id=session.active_dataset_id,
        members=[MemberOut.model_validate(m) for m in session.members],
        created_at=session.created_at,
        user_role=effective_role(session, user_id).value,
        can_edit=can_edit(session, user_id),
    )


def _member_payload(member: Member, principal: Principal) -> dict:
    return {
        "userId": member.user_id,
        "name": principal.name,
        "role": member.role,
        "joinedAt": member.joined_at.isoformat(),
    }


class SessionService:
    """
    Session management.

    Usage:
        service = SessionService(database, hub, store)
        session = await service.create(principal, SessionCreate(name="Sales"))
        await service.join_by_code(other_principal, session.access_code)
    """

    def __init__(self, database: Database, hub: BroadcastHub, store: DatasetStore):
        self.database = database
        self.hub = hub
        self.store = store

    async def create(self, principal: Principal, data: SessionCreate) -> Session:
        user_id = require_user(principal)
        async with self.database.session() as db:
            session = Session(
                name=data.name,
                description=data.description,
                owner_id=user_id,
                is_public=data.is_public,
                access_code=generate_access_code(),
                members=[],
            )
            db.add(session)
            await db.commit()
            await db.refresh(session, attribute_names=["members"])

        logger.info(f"Session created: {session.id} by {user_id}")
        return session

    async def list_for_user(self, principal: Principal) -> list[Session]:
        """Sessions the user owns or belongs to, newest first."""
        user_id = require_user(principal)
        async with self.database.session() as db:
            member_of = select(Member.session_id).where(Member.user_id == user_id)
            result = await db.execute(
                select(Session)
                .where(or_(Session.owner_id == user_id, Session.id.in_(member_of)))
                .order_by(Session.created_at.desc())
            )
            return list(result.scalars().all())

    async def view(self, principal: Principal, session_id: str) -> Session:
        """
        Open a session.

        Viewing a public session adds the viewer as a `viewer` member. The
        owner check comes first so an owner never gains a member entry.
        """
        user_id = require_user(principal)
        joined: Optional[Member] = None

        async with self.database.session() as db:
            session = await load_session(db, session_id)

            if is_owner(session, user_id) or is_member(session, user_id):
                return session

            if not session.is_public:
                raise AccessDeniedError("You do not have access to this session")

            add_member(session, user_id, Role.VIEWER)
            await db.commit()
            await db.refresh(session, attribute_names=["members"])
            joined = next(m for m in session.members if m.user_id == user_id)

        self.hub.member_joined(session.id, _member_payload(joined, principal))
        return session

    async def join_by_code(self, principal: Principal, access_code: str) -> Session:
        """Join as editor; already-joined users get the session unchanged."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await find_by_access_code(db, access_code)
            if session is None:
                raise NotFoundError("Session", message="Invalid access code")

            if has_access(session, user_id):
                return session

            add_member(session, user_id, Role.EDITOR)
            await db.commit()
            await db.refresh(session, attribute_names=["members"])
            joined = next(m for m in session.members if m.user_id == user_id)

        self.hub.member_joined(session.id, _member_payload(joined, principal))
        logger.info(f"User {user_id} joined session {session.id}")
        return session

    async def leave(self, principal: Principal, session_id: str) -> None:
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, session_id)

            if is_owner(session, user_id):
                raise ValidationError("Session owner cannot leave. Delete the session instead.")

            if not is_member(session, user_id):
                return

            remove_member(session, user_id)
            await db.commit()

        self.hub.member_left(session_id, user_id)
        logger.info(f"User {user_id} left session {session_id}")

    async def update(self, principal: Principal, session_id: str, data: SessionUpdate) -> Session:
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not is_owner(session, user_id):
                raise AccessDeniedError("Only the session owner can update settings")

            changes = data.model_dump(exclude_unset=True)
            if "active_dataset_id" in changes and changes["active_dataset_id"]:
                dataset = await db.get(Dataset, changes["active_dataset_id"])
                if dataset is None:
                    raise NotFoundError("Dataset", changes["active_dataset_id"])

            for key, value in changes.items():
                if key == "name" and not value:
                    continue
                setattr(session, key, value)

            await db.commit()
            await db.refresh(session, attribute_names=["members"])

        logger.info(f"Session updated: {session_id}")
        return session

    async def regenerate_access_code(self, principal: Principal, session_id: str) -> Session:
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not is_owner(session, user_id):
                raise AccessDeniedError("Only the session owner can change the access code")
            session.access_code = generate_access_code()
            await db.commit()
            await db.refresh(session, attribute_names=["members"])

        logger.info(f"Access code rotated for session {session_id}")
        return session

    async def delete(self, principal: Principal, session_id: str) -> None:
        """Delete a session with its datasets, queries and messages."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not is_owner(session, user_id):
                raise AccessDeniedError("Only the session owner can delete the session")

            result = await db.execute(
                select(Dataset.collection_name).where(Dataset.session_id == session_id)
            )
            collections = list(result.scalars().all())

            await db.execute(delete(Query).where(Query.session_id == session_id))
            await db.execute(delete(Message).where(Message.session_id == session_id))
            await db.execute(delete(Dataset).where(Dataset.session_id == session_id))
            await db.delete(session)
            await db.commit()

        for collection in collections:
            await self.store.drop(collection)

        logger.info(f"Session deleted: {session_id}")
