"""
Custom exceptions for the QueryJam system.
"""

from __future__ import annotations

from typing import Optional


class QueryJamError(Exception):
    """Base exception for all QueryJam errors."""

    status_code: int = 500

    def __init__(self, message: str = "Internal error"):
        self.message = message
        super().__init__(message)


class NotFoundError(QueryJamError):
    """Raised when a session, dataset or query does not exist."""

    status_code = 404

    def __init__(self, entity: str, identifier: Optional[str] = None, message: Optional[str] = None):
        self.entity = entity
        self.identifier = identifier
        super().__init__(message or f"{entity} not found")


class AuthenticationError(QueryJamError):
    """Raised when a request carries no principal."""

    status_code = 401

    def __init__(self, message: str = "Not authorized to access this route"):
        super().__init__(message)


class AccessDeniedError(QueryJamError):
    """Raised when an authenticated principal is not allowed to act."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


ForbiddenError = AccessDeniedError


class ValidationError(QueryJamError):
    """Raised when a submission is malformed or uses disallowed operators."""

    status_code = 400

    def __init__(self, errors: list[str] | str):
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("; ".join(self.errors))


class RateLimitExceeded(ValidationError):
    """Raised when a caller exceeds its request window."""

    status_code = 429

    def __init__(self, message: str, retry_after: float = 0.0):
        self.retry_after = retry_after
        super().__init__(message)


class ExecutionError(QueryJamError):
    """Raised by a dataset store when a query cannot be run."""

    def __init__(self, message: str, collection: Optional[str] = None):
        self.collection = collection
        super().__init__(message)


class UpstreamUnavailableError(QueryJamError):
    """Raised when the text-generation service is unconfigured or unreachable."""

    status_code = 503

    def __init__(self, message: str = "AI service not configured"):
        super().__init__(message)
