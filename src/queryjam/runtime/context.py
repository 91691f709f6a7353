"""
Request principal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Principal:
    """
    Represents the caller making the request.

    `id` is None for unauthenticated callers; `origin` (client host) is
    still known and keys their rate limit.
    """
    id: Optional[str] = None
    name: Optional[str] = None
    origin: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.id)

    @property
    def rate_limit_key(self) -> str:
        if self.id:
            return f"user:{self.id}"
        return f"ip:{self.origin or 'unknown'}"
