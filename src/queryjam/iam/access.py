"""
Session access control.

Pure predicates over a Session value. The owner is not stored in the
member set, yet always has full rights; every check that grants rights
therefore combines two conditions:

    is_owner(session, user)  OR  role_of(session, user) in {...}

Callers use `can_edit` / `has_access` instead of re-deriving this.
"""

from __future__ import annotations

import enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..service.models import Member, Session, utcnow


class Role(str, enum.Enum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    NONE = "none"


EDIT_ROLES = frozenset({Role.OWNER, Role.EDITOR})


def _find_member(session: Session, user_id: Optional[str]) -> Optional[Member]:
    if not user_id:
        return None
    return next((m for m in session.members if m.user_id == user_id), None)


def is_owner(session: Session, user_id: Optional[str]) -> bool:
    """True iff the user is the session owner."""
    return bool(user_id) and session.owner_id == user_id


def is_member(session: Session, user_id: Optional[str]) -> bool:
    """True iff the user has a member entry (the owner usually has none)."""
    return _find_member(session, user_id) is not None


def role_of(session: Session, user_id: Optional[str]) -> Role:
    """Member role, or Role.NONE when absent. Ownership is not considered."""
    member = _find_member(session, user_id)
    return Role(member.role) if member else Role.NONE


def can_edit(session: Session, user_id: Optional[str]) -> bool:
    """Owner, or a member whose role is owner/editor."""
    if not user_id:
        return False
    if is_owner(session, user_id):
        return True
    return role_of(session, user_id) in EDIT_ROLES


def has_access(session: Session, user_id: Optional[str]) -> bool:
    """Owner or any member. Gates history, chat and the live event stream."""
    return is_owner(session, user_id) or is_member(session, user_id)


def effective_role(session: Session, user_id: Optional[str]) -> Role:
    """Role as shown to clients: owner wins over any member entry."""
    if is_owner(session, user_id):
        return Role.OWNER
    return role_of(session, user_id)


def add_member(session: Session, user_id: str, role: Role | str = Role.VIEWER) -> Session:
    """
    Add a member entry.

    Idempotent: an existing member keeps its entry and role.
    """
    if is_member(session, user_id):
        return session
    session.members.append(
        Member(user_id=user_id, role=Role(role).value, joined_at=utcnow())
    )
    return session


def remove_member(session: Session, user_id: str) -> Session:
    """
    Drop a member entry.

    Does not protect the owner; callers refuse owner removal themselves.
    """
    session.members = [m for m in session.members if m.user_id != user_id]
    return session


async def find_by_access_code(db: AsyncSession, code: str) -> Optional[Session]:
    """Session whose access code matches exactly (case-sensitive), or None."""
    if not code:
        return None
    result = await db.execute(select(Session).where(Session.access_code == code))
    return result.scalars().first()
