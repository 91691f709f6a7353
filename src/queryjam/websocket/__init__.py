"""
WebSocket module for live session events.

Provides:
- SessionStreamHandler: per-connection hub subscriber
- router: FastAPI WebSocket endpoint
"""

from __future__ import annotations

from .router import router
from .stream import SessionStreamHandler

__all__ = [
    "SessionStreamHandler",
    "router",
]
