"""
Query assistant endpoints.

- POST /ai/generate       - Natural language -> query text
- POST /ai/explain        - Explain a query
- POST /ai/suggest        - Suggest improvements for a query
- POST /ai/explain-error  - Explain a query error (falls back to the message itself)

All endpoints answer 503 when the text-generation API is not configured or
unreachable, except explain-error.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..core.errors import NotFoundError
from ..core.schemas import (
    ExplainErrorRequest,
    ExplainQueryRequest,
    ExplanationResponse,
    GenerateQueryRequest,
    GenerateQueryResponse,
    SuggestionsResponse,
)
from ..runtime.context import Principal
from ..runtime.sessions import require_user
from ..service.container import Services
from .deps import get_services, rate_limited

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/generate")
async def generate_query(
    data: GenerateQueryRequest,
    principal: Principal = Depends(rate_limited("ai")),
    services: Services = Depends(get_services),
) -> dict:
    require_user(principal)

    columns = None
    if data.dataset_id:
        try:
            dataset = await services.datasets.get(principal, data.dataset_id)
            columns = dataset.columns
        except NotFoundError:
            logger.info(f"Generating without schema, dataset {data.dataset_id} not found")

    query_text = await services.assistant.generate(data.prompt, columns)
    return GenerateQueryResponse(query=query_text).to_wire()


@router.post("/explain")
async def explain_query(
    data: ExplainQueryRequest,
    principal: Principal = Depends(rate_limited("ai")),
    services: Services = Depends(get_services),
) -> dict:
    require_user(principal)
    explanation = await services.assistant.explain(data.query)
    return ExplanationResponse(explanation=explanation).to_wire()


@router.post("/suggest")
async def suggest_improvements(
    data: ExplainQueryRequest,
    principal: Principal = Depends(rate_limited("ai")),
    services: Services = Depends(get_services),
) -> dict:
    require_user(principal)
    suggestions = await services.assistant.suggest(data.query)
    return SuggestionsResponse(suggestions=suggestions).to_wire()


@router.post("/explain-error")
async def explain_error(
    data: ExplainErrorRequest,
    principal: Principal = Depends(rate_limited("ai")),
    services: Services = Depends(get_services),
) -> dict:
    require_user(principal)
    explanation = await services.assistant.explain_error(data.error_message)
    return ExplanationResponse(explanation=explanation).to_wire()
