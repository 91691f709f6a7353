"""
FastAPI dependencies shared by the routers.
"""

from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request

from ..runtime.context import Principal
from ..service.container import Services


USER_ID_HEADER = "X-User-Id"
USER_NAME_HEADER = "X-User-Name"


def get_services(request: Request) -> Services:
    """Services built by the app lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized. Run the app through its lifespan.")
    return services


async def get_principal(request: Request) -> Principal:
    """
    Get the caller from request headers.

    The upstream auth proxy sets X-User-Id (and optionally X-User-Name).
    Without it the principal is anonymous and only its origin is known.
    """
    user_id = request.headers.get(USER_ID_HEADER) or None
    return Principal(
        id=user_id,
        name=request.headers.get(USER_NAME_HEADER) or user_id,
        origin=request.client.host if request.client else None,
    )


def rate_limited(limiter_name: str) -> Callable:
    """
    Dependency that counts the call against a named limiter.

    Usage:
        @router.post("/execute")
        async def execute(principal: Principal = Depends(rate_limited("query"))):
            ...
    """

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_principal),
    ) -> Principal:
        limiter = get_services(request).limiters[limiter_name]
        await limiter.check(principal.rate_limit_key)
        return principal

    return dependency
