"""
Pydantic models for the query pipeline.

These define the structure of query submissions, the dataset query request
consumed by the execution engine, and the results handed back to clients.
Wire models use camelCase aliases; Python code uses snake_case attributes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DEFAULT_LIMIT = 1000
MAX_LIMIT = 10_000


class CamelModel(BaseModel):
    """Base for every model that crosses the HTTP or WebSocket boundary."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# --- Dataset query request (consumed by the execution engine) ---

class NormalizedOrder(BaseModel):
    """
    Normalized order representation.

    Input: {"created_at": -1} or "-created_at"
    Normalized: NormalizedOrder(field="created_at", dir="desc")
    """
    field: str
    dir: Literal["asc", "desc"]


class DatasetQueryRequest(BaseModel):
    """
    Structured query against a dataset collection.

    Every field is optional:
    {
        "filter": {"age": {"$gt": 25}},
        "projection": {"name": 1, "age": 1},
        "sort": {"age": -1},
        "limit": 50,
        "skip": 0
    }
    """

    model_config = ConfigDict(extra="ignore")

    filter: dict[str, Any] = Field(default_factory=dict)
    projection: dict[str, Any] = Field(default_factory=dict)
    sort: Union[dict[str, int], list[str]] = Field(default_factory=dict)
    limit: int = Field(DEFAULT_LIMIT, gt=0, le=MAX_LIMIT)
    skip: int = Field(0, ge=0)

    @field_validator("filter", "projection", "sort", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("limit", mode="before")
    @classmethod
    def _default_limit(cls, value: Any) -> Any:
        return DEFAULT_LIMIT if value is None else value

    @field_validator("skip", mode="before")
    @classmethod
    def _default_skip(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("sort")
    @classmethod
    def _check_sort_directions(cls, value: Union[dict[str, int], list[str]]):
        if isinstance(value, dict):
            for field_name, direction in value.items():
                if direction not in (1, -1):
                    raise ValueError(f"sort direction for '{field_name}' must be 1 or -1")
        return value

    def normalized_sort(self) -> list[NormalizedOrder]:
        """Sort keys in priority order."""
        if isinstance(self.sort, dict):
            return [
                NormalizedOrder(field=name, dir="desc" if direction == -1 else "asc")
                for name, direction in self.sort.items()
            ]

        order = []
        for item in self.sort:
            if item.startswith("-"):
                order.append(NormalizedOrder(field=item[1:], dir="desc"))
            else:
                order.append(NormalizedOrder(field=item, dir="asc"))
        return order


# --- Execution results ---

class QueryResults(CamelModel):
    """Result payload stored on a terminal Query and returned to the requester."""
    data: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    limited: bool = False


class ExecutionResult(CamelModel):
    """
    Outcome of a single engine run.

    `data` is the bounded row page (at most `limit` rows), `count` the
    filter-only match total, `limited` the truncation flag and
    `execution_time` the elapsed wall-clock milliseconds.
    """
    success: bool
    data: list[dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    limited: bool = False
    execution_time: int = 0
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str, execution_time: int = 0) -> ExecutionResult:
        return cls(success=False, error=error, execution_time=execution_time)

    def results(self) -> QueryResults:
        return QueryResults(data=self.data, count=self.count, limited=self.limited)


# --- Submission / history API ---

QueryStatus = Literal["running", "success", "error"]


class QuerySubmission(CamelModel):
    """
    POST /queries/execute

    {"sessionId": "...", "datasetId": "...", "queryText": "{\"filter\": {}}"}
    """
    session_id: str
    dataset_id: Optional[str] = None
    query_text: str = Field(min_length=1)
    query_type: str = "filter"


class SubmitQueryResponse(CamelModel):
    success: bool
    query_id: str
    results: Optional[QueryResults] = None
    execution_time: int = 0
    error: Optional[str] = None


class QuerySummary(CamelModel):
    """Query record without row data; used by history and broadcasts."""
    id: str
    session_id: str
    user_id: str
    dataset_id: Optional[str] = None
    query_text: str
    query_type: str
    status: QueryStatus
    execution_time: int = 0
    error_message: Optional[str] = None
    count: Optional[int] = None
    limited: Optional[bool] = None
    created_at: datetime

    @classmethod
    def from_record(cls, query: Any) -> QuerySummary:
        results = query.results or {}
        return cls(
            id=query.id,
            session_id=query.session_id,
            user_id=query.user_id,
            dataset_id=query.dataset_id,
            query_text=query.query_text,
            query_type=query.query_type,
            status=query.status,
            execution_time=query.execution_time,
            error_message=query.error_message,
            count=results.get("count"),
            limited=results.get("limited"),
            created_at=query.created_at,
        )


class QueryDetail(QuerySummary):
    results: Optional[QueryResults] = None

    @classmethod
    def from_record(cls, query: Any) -> QueryDetail:
        summary = QuerySummary.from_record(query)
        results = QueryResults(**query.results) if query.results else None
        return cls(**summary.model_dump(), results=results)


class QueryHistoryResponse(CamelModel):
    success: bool = True
    queries: list[QuerySummary]
    page: int
    limit: int
