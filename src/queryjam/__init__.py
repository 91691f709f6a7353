"""
QueryJam - collaborative dataset queries.

Members of a shared session run JSON queries against uploaded datasets,
see each other's queries start and finish live, and chat.

Usage:
    from queryjam import create_app, load_settings

    app = create_app(load_settings("queryjam.yaml"))
"""

from __future__ import annotations

from .core import (
    AccessDeniedError,
    AuthenticationError,
    DatasetQueryRequest,
    ExecutionError,
    ExecutionResult,
    ForbiddenError,
    NotFoundError,
    QueryJamError,
    QueryValidator,
    RateLimitExceeded,
    UpstreamUnavailableError,
    ValidationError,
)
from .messaging import BroadcastHub, EventType
from .runtime import (
    DatasetStore,
    InMemoryDatasetStore,
    Principal,
    QueryEngine,
    QueryLifecycleManager,
    SqlAlchemyDatasetStore,
)
from .service.app import create_app
from .settings import Settings, load_settings
from .websocket import SessionStreamHandler

__version__ = "1.0.0"

__all__ = [
    # App
    "create_app",
    "Settings",
    "load_settings",
    # Errors
    "QueryJamError",
    "NotFoundError",
    "AuthenticationError",
    "AccessDeniedError",
    "ForbiddenError",
    "ValidationError",
    "RateLimitExceeded",
    "ExecutionError",
    "UpstreamUnavailableError",
    # Query pipeline
    "DatasetQueryRequest",
    "ExecutionResult",
    "QueryValidator",
    "DatasetStore",
    "InMemoryDatasetStore",
    "SqlAlchemyDatasetStore",
    "QueryEngine",
    "QueryLifecycleManager",
    "Principal",
    # Realtime
    "BroadcastHub",
    "EventType",
    "SessionStreamHandler",
]
