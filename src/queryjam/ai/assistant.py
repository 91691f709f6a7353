"""
HTTP client for the query assistant.

Calls an OpenAI-compatible POST /chat/completions endpoint to turn natural
language into query text, explain queries and errors, and suggest
improvements.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from ..core.errors import UpstreamUnavailableError, ValidationError
from ..core.validator import QueryValidator

logger = logging.getLogger(__name__)


GENERATE_PROMPT = """You are a query assistant for JSON datasets. Generate a query object based on the user's natural language request. Return only valid JSON for the query object, no explanations.

The query object may contain "filter", "projection", "sort", "limit" and "skip".

Schema information: {schema}

Examples:
- "Find users older than 25" -> {{"filter": {{"age": {{"$gt": 25}}}}}}
- "Get products in electronics category" -> {{"filter": {{"category": "Electronics"}}}}"""

EXPLAIN_PROMPT = "Explain this dataset query in simple terms."
SUGGEST_PROMPT = "Suggest improvements for this dataset query. Return a JSON array of suggestion strings."
EXPLAIN_ERROR_PROMPT = "Explain this query error in simple terms and suggest a fix."


def _strip_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class QueryAssistant:
    """
    Text-generation client.

    Usage:
        assistant = QueryAssistant(api_key="sk-...")
        query_text = await assistant.generate("people over 30", columns)
        explanation = await assistant.explain(query_text)
        await assistant.close()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-3.5-turbo",
        timeout: float = 30.0,
        validator: Optional[QueryValidator] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize assistant.

        Args:
            api_key: API key; without one every call raises UpstreamUnavailableError
            base_url: API root (e.g., "https://api.openai.com/v1")
            model: Chat model name
            timeout: HTTP request timeout in seconds
            validator: Used to reject generated queries with denylisted operators
            transport: Custom httpx transport (tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.validator = validator or QueryValidator()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _complete(
        self,
        system_prompt: str,
        user_content: str,
        *,
        max_tokens: int = 300,
        temperature: float = 0.2,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        Raises:
            UpstreamUnavailableError: No API key, transport failure or non-200 reply
        """
        if not self.enabled:
            raise UpstreamUnavailableError()

        client = await self._get_client()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.RequestError as e:
            logger.error(f"AI request failed: {e}")
            raise UpstreamUnavailableError("AI service unreachable")

        if response.status_code != 200:
            logger.error(f"AI API error: {response.status_code} {response.text[:200]}")
            raise UpstreamUnavailableError(f"AI API error: {response.status_code}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError):
            raise UpstreamUnavailableError("AI API returned an unexpected response")

        return content.strip()

    async def generate(self, prompt: str, columns: Optional[list[dict[str, Any]]] = None) -> str:
        """
        Natural language -> query text.

        Raises:
            ValidationError: Reply is not a JSON object or uses a denylisted operator
        """
        schema = json.dumps(columns) if columns else "No schema provided"
        reply = await self._complete(
            GENERATE_PROMPT.format(schema=schema),
            prompt,
            max_tokens=200,
            temperature=0.1,
        )

        query_text = _strip_fences(reply)
        if not query_text:
            raise ValidationError("No query generated")

        try:
            parsed = json.loads(query_text)
        except ValueError:
            raise ValidationError("Failed to generate query: reply is not valid JSON")
        if not isinstance(parsed, dict):
            raise ValidationError("Failed to generate query: reply is not a JSON object")

        self.validator.ensure_safe(query_text)
        logger.info("AI generated query successfully")
        return query_text

    async def explain(self, query_text: str) -> str:
        reply = await self._complete(EXPLAIN_PROMPT, query_text)
        return reply or "No explanation available"

    async def suggest(self, query_text: str) -> list[str]:
        reply = await self._complete(SUGGEST_PROMPT, query_text, temperature=0.3)
        try:
            suggestions = json.loads(_strip_fences(reply))
        except ValueError:
            return [reply] if reply else []
        if isinstance(suggestions, list):
            return [str(item) for item in suggestions]
        return [str(suggestions)]

    async def explain_error(self, error_message: str) -> str:
        """
        Plain-language explanation of a query error.

        Falls back to the error message itself when the assistant is
        unavailable.
        """
        try:
            reply = await self._complete(EXPLAIN_ERROR_PROMPT, error_message)
        except UpstreamUnavailableError as e:
            logger.info(f"Explain-error fallback: {e.message}")
            return error_message
        return reply or error_message
