"""
FastAPI router for queries and datasets.

Endpoints:
- POST   /queries/execute              - Run a query in a session
- GET    /queries/history/{session_id} - Session query history (newest first)
- GET    /queries/{query_id}           - One query with its results
- DELETE /queries/{query_id}           - Delete a query (author or session owner)

- POST   /datasets                     - Register a dataset from JSON rows
- GET    /datasets                     - Datasets of a session (?sessionId=) or own datasets
- GET    /datasets/{dataset_id}        - Dataset metadata
- DELETE /datasets/{dataset_id}        - Delete a dataset and its rows (owner)

Query submission:
    {
        "sessionId": "9f0c...",
        "datasetId": "41ab...",
        "queryText": "{\"filter\": {\"age\": {\"$gt\": 30}}, \"sort\": {\"age\": -1}, \"limit\": 5}"
    }
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.query_types import (
    QueryDetail,
    QueryHistoryResponse,
    QuerySubmission,
    SubmitQueryResponse,
)
from ..core.schemas import DatasetCreate, DatasetOut
from ..runtime.context import Principal
from ..runtime.lifecycle import summarize
from ..service.container import Services
from .deps import get_principal, get_services, rate_limited


router = APIRouter()


# === Queries ===

@router.post("/queries/execute")
async def execute_query(
    submission: QuerySubmission,
    principal: Principal = Depends(rate_limited("query")),
    services: Services = Depends(get_services),
) -> dict:
    """
    Execute a query.

    The requester gets the full result page; other session members only
    see the started/finished events on their live stream.
    """
    response: SubmitQueryResponse = await services.queries.submit(principal, submission)
    return response.to_wire()


@router.get("/queries/history/{session_id}")
async def query_history(
    session_id: str,
    page: int = Query(1),
    limit: int = Query(20),
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    queries, page, limit = await services.queries.history(principal, session_id, page, limit)
    return QueryHistoryResponse(
        queries=summarize(queries),
        page=page,
        limit=limit,
    ).to_wire()


@router.get("/queries/{query_id}")
async def get_query(
    query_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    query = await services.queries.get(principal, query_id)
    return {"success": True, "query": QueryDetail.from_record(query).to_wire()}


@router.delete("/queries/{query_id}")
async def delete_query(
    query_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    await services.queries.delete(principal, query_id)
    return {"success": True, "message": "Query deleted"}


# === Datasets ===

@router.post("/datasets", status_code=201)
async def create_dataset(
    data: DatasetCreate,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    dataset = await services.datasets.register(principal, data)
    return {
        "success": True,
        "dataset": DatasetOut.model_validate(dataset).to_wire(),
        "rowCount": len(data.rows),
    }


@router.get("/datasets")
async def list_datasets(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    datasets = await services.datasets.list_for(principal, session_id)
    return {
        "success": True,
        "datasets": [DatasetOut.model_validate(d).to_wire() for d in datasets],
    }


@router.get("/datasets/{dataset_id}")
async def get_dataset(
    dataset_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    dataset = await services.datasets.get(principal, dataset_id)
    return {"success": True, "dataset": DatasetOut.model_validate(dataset).to_wire()}


@router.delete("/datasets/{dataset_id}")
async def delete_dataset(
    dataset_id: str,
    principal: Principal = Depends(get_principal),
    services: Services = Depends(get_services),
) -> dict:
    await services.datasets.delete(principal, dataset_id)
    return {"success": True, "message": "Dataset deleted"}
