"""
Query text validator and parser.

Parses raw query text into a DatasetQueryRequest and rejects requests that
reference server-side evaluation operators.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .query_types import DEFAULT_LIMIT, DatasetQueryRequest


# Operators that would let a client run code inside the store
DENIED_OPERATORS = ("$where", "$function", "$accumulator", "$expr")


class QueryValidator:
    """
    Validates and parses query text.

    Usage:
        validator = QueryValidator()
        validator.ensure_safe(text)
        errors, request = validator.parse(text)
    """

    def __init__(
        self,
        denied_operators: Iterable[str] = DENIED_OPERATORS,
        default_limit: int = DEFAULT_LIMIT,
    ):
        self.denied_operators = tuple(denied_operators)
        self.default_limit = default_limit

    def find_denied(self, text: str) -> list[str]:
        """
        Return the denylisted operators present in the text.

        The text is checked as written and, when it is valid JSON, once more
        re-serialized so escaped spellings like "\\u0024where" are caught.
        """
        candidates = [text]
        try:
            candidates.append(json.dumps(json.loads(text)))
        except (TypeError, ValueError):
            pass

        found = []
        for op in self.denied_operators:
            if any(op in candidate for candidate in candidates):
                found.append(op)
        return found

    def ensure_safe(self, text: str) -> None:
        """Raise ValidationError if the text uses a denylisted operator."""
        found = self.find_denied(text)
        if found:
            raise ValidationError(
                [f"Operator '{op}' is not allowed in queries" for op in found]
            )

    def parse(self, text: str) -> tuple[list[str], DatasetQueryRequest | None]:
        """
        Parse query text.

        Returns:
            Tuple of (errors, request).
            If errors is non-empty, request is None.
        """
        try:
            raw: Any = json.loads(text)
        except (TypeError, ValueError) as e:
            return [f"Query text is not valid JSON: {e}"], None

        if not isinstance(raw, dict):
            return ["Query must be a JSON object"], None

        if raw.get("limit") is None:
            raw = {**raw, "limit": self.default_limit}

        try:
            request = DatasetQueryRequest.model_validate(raw)
        except PydanticValidationError as e:
            errors = []
            for err in e.errors():
                loc = ".".join(str(part) for part in err["loc"]) or "query"
                errors.append(f"{loc}: {err['msg']}")
            return errors, None

        return [], request
