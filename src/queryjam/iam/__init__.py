"""
IAM module - session roles and access predicates.
"""

from __future__ import annotations

from .access import (
    EDIT_ROLES,
    Role,
    add_member,
    can_edit,
    effective_role,
    find_by_access_code,
    has_access,
    is_member,
    is_owner,
    remove_member,
    role_of,
)

__all__ = [
    "Role",
    "EDIT_ROLES",
    "is_owner",
    "is_member",
    "role_of",
    "can_edit",
    "has_access",
    "effective_role",
    "add_member",
    "remove_member",
    "find_by_access_code",
]
