"""
API module - FastAPI endpoints.
"""

from __future__ import annotations

from .ai_endpoints import router as ai_router
from .deps import get_principal, get_services, rate_limited
from .router import router
from .session_endpoints import router as session_router

__all__ = [
    "router",
    "session_router",
    "ai_router",
    "get_principal",
    "get_services",
    "rate_limited",
]
