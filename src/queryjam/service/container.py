"""
Service wiring.

Builds every long-lived object of one application instance from Settings:
database, dataset store, broadcast hub, services, rate limiters and the
query assistant. The app factory keeps the result on `app.state.services`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..ai.assistant import QueryAssistant
from ..core.validator import QueryValidator
from ..messaging.client import RedisClient
from ..messaging.hub import BroadcastHub
from ..runtime.chat import ChatService
from ..runtime.datasets import DatasetService
from ..runtime.executor import QueryEngine
from ..runtime.lifecycle import QueryLifecycleManager
from ..runtime.ratelimit import (
    MemoryRateLimitBackend,
    RateLimitBackend,
    RateLimiter,
    RedisRateLimitBackend,
)
from ..runtime.sessions import SessionService
from ..runtime.store import DatasetStore, SqlAlchemyDatasetStore
from ..settings import Settings
from .database import Database

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    database: Database
    store: DatasetStore
    hub: BroadcastHub
    sessions: SessionService
    datasets: DatasetService
    queries: QueryLifecycleManager
    chat: ChatService
    assistant: QueryAssistant
    limiters: dict[str, RateLimiter] = field(default_factory=dict)
    redis: Optional[RedisClient] = None

    async def close(self):
        await self.assistant.close()
        if self.redis:
            await self.redis.disconnect()
        await self.database.close()
        logger.info("Services shut down")


def build_limiters(settings: Settings, backend: RateLimitBackend) -> dict[str, RateLimiter]:
    window = settings.RATE_LIMIT_WINDOW_SECONDS
    return {
        "query": RateLimiter(
            "query", settings.QUERY_RATE_LIMIT, window, backend,
            message="Too many queries, please wait a moment",
        ),
        "message": RateLimiter(
            "message", settings.MESSAGE_RATE_LIMIT, window, backend,
            message="Slow down! Too many messages sent",
        ),
        "ai": RateLimiter(
            "ai", settings.AI_RATE_LIMIT, window, backend,
            message="Too many API requests, please slow down",
        ),
    }


async def build_services(
    settings: Settings,
    *,
    store: Optional[DatasetStore] = None,
    assistant: Optional[QueryAssistant] = None,
    rate_limit_backend: Optional[RateLimitBackend] = None,
) -> Services:
    """
    Create and initialize all services.

    Args:
        settings: Application settings
        store: Dataset store (defaults to the SQLAlchemy-backed store)
        assistant: Query assistant (defaults to one built from settings)
        rate_limit_backend: Counter backend (defaults to Redis when
            REDIS_URL is set, otherwise in-memory)
    """
    database = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    await database.init()
    logger.info(f"Database ready: {database.engine.url.render_as_string(hide_password=True)}")

    store = store or SqlAlchemyDatasetStore(database)
    hub = BroadcastHub()
    validator = QueryValidator(default_limit=settings.DEFAULT_QUERY_LIMIT)

    datasets = DatasetService(database, store)
    engine = QueryEngine(store, datasets.collection_for)

    redis: Optional[RedisClient] = None
    if rate_limit_backend is None:
        if settings.REDIS_URL:
            redis = RedisClient(settings.REDIS_URL)
            await redis.connect()
            rate_limit_backend = RedisRateLimitBackend(redis)
        else:
            rate_limit_backend = MemoryRateLimitBackend()

    assistant = assistant or QueryAssistant(
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.OPENAI_BASE_URL,
        model=settings.OPENAI_MODEL,
        timeout=settings.AI_TIMEOUT_SECONDS,
        validator=validator,
    )

    return Services(
        settings=settings,
        database=database,
        store=store,
        hub=hub,
        sessions=SessionService(database, hub, store),
        datasets=datasets,
        queries=QueryLifecycleManager(database, engine, hub, validator),
        chat=ChatService(database),
        assistant=assistant,
        limiters=build_limiters(settings, rate_limit_backend),
        redis=redis,
    )
