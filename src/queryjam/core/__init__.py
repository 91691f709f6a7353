"""
Core module - errors, wire models and query validation.
"""

from __future__ import annotations

from .errors import (
    AccessDeniedError,
    AuthenticationError,
    ExecutionError,
    ForbiddenError,
    NotFoundError,
    QueryJamError,
    RateLimitExceeded,
    UpstreamUnavailableError,
    ValidationError,
)
from .query_types import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    DatasetQueryRequest,
    ExecutionResult,
    NormalizedOrder,
    QueryDetail,
    QueryHistoryResponse,
    QueryResults,
    QuerySubmission,
    QuerySummary,
    SubmitQueryResponse,
)
from .validator import DENIED_OPERATORS, QueryValidator

__all__ = [
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
    # Query types
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "DatasetQueryRequest",
    "NormalizedOrder",
    "ExecutionResult",
    "QueryResults",
    "QuerySubmission",
    "SubmitQueryResponse",
    "QuerySummary",
    "QueryDetail",
    "QueryHistoryResponse",
    # Validation
    "DENIED_OPERATORS",
    "QueryValidator",
]
