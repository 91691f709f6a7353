"""
Query execution engine - runs a DatasetQueryRequest against a dataset store.

Handles:
- Resolving a dataset id to its backing collection
- Fetching limit + 1 rows to detect truncation without a second scan
- Counting the filter-only match total independently of skip/limit
- Capturing every store failure into a failed ExecutionResult
"""

from __future__ import annotations

import json
import logging
import time
from typing import Awaitable, Callable, Optional

from ..core.errors import ExecutionError
from ..core.query_types import DatasetQueryRequest, ExecutionResult
from .store import DatasetStore

logger = logging.getLogger(__name__)


CollectionResolver = Callable[[str], Awaitable[Optional[str]]]

DATASET_NOT_FOUND = "Dataset not found"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class QueryEngine:
    """
    Executes dataset queries.

    Usage:
        engine = QueryEngine(store, resolve_collection)
        result = await engine.execute(dataset_id, request)
        if result.success:
            ...
    """

    def __init__(self, store: DatasetStore, resolve_collection: CollectionResolver):
        """
        Initialize engine.

        Args:
            store: Dataset store holding the rows
            resolve_collection: Async callable mapping a dataset id to its
                collection name (None when the dataset does not exist)
        """
        self.store = store
        self.resolve_collection = resolve_collection

    async def execute(
        self,
        dataset_id: Optional[str],
        request: DatasetQueryRequest,
    ) -> ExecutionResult:
        """
        Run the request against the dataset.

        Never raises for dataset or store problems; callers branch on
        `result.success`.
        """
        collection = await self.resolve_collection(dataset_id) if dataset_id else None
        if not collection:
            return ExecutionResult.failure(DATASET_NOT_FOUND)

        start = time.perf_counter()
        try:
            docs = await self.store.find(
                collection,
                query_filter=request.filter,
                projection=request.projection,
                sort=request.normalized_sort(),
                skip=request.skip,
                limit=request.limit + 1,
            )
            limited = len(docs) > request.limit
            data = docs[: request.limit] if limited else docs

            count = await self.store.count(collection, query_filter=request.filter)
        except ExecutionError as e:
            logger.warning(f"Query on {collection} failed: {e}")
            return ExecutionResult.failure(str(e), _elapsed_ms(start))
        except Exception as e:
            logger.error(f"Store error on {collection}: {e}", exc_info=True)
            return ExecutionResult.failure(str(e) or e.__class__.__name__, _elapsed_ms(start))

        execution_time = _elapsed_ms(start)
        logger.info(
            f"Query on {collection} took {execution_time}ms "
            f"({len(data)}/{count} rows): {json.dumps(request.filter, default=str)[:200]}"
        )

        return ExecutionResult(
            success=True,
            data=data,
            count=count,
            limited=limited,
            execution_time=execution_time,
        )
