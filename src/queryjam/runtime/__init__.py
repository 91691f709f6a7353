"""
Runtime module - sessions, datasets, query execution and chat.
"""

from __future__ import annotations

from .chat import ChatService
from .context import Principal
from .datasets import DatasetService
from .executor import QueryEngine
from .lifecycle import QueryLifecycleManager
from .ratelimit import MemoryRateLimitBackend, RateLimiter, RedisRateLimitBackend
from .sessions import SessionService
from .store import DatasetStore, InMemoryDatasetStore, SqlAlchemyDatasetStore

__all__ = [
    "Principal",
    "DatasetStore",
    "InMemoryDatasetStore",
    "SqlAlchemyDatasetStore",
    "QueryEngine",
    "QueryLifecycleManager",
    "SessionService",
    "DatasetService",
    "ChatService",
    "RateLimiter",
    "MemoryRateLimitBackend",
    "RedisRateLimitBackend",
]
