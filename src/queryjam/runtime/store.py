"""
Dataset store adapters.

A dataset's rows live in a named logical collection. The execution engine
only relies on the DatasetStore contract:

- find(collection, filter, projection, sort, skip, limit)
- count(collection, filter)

Two implementations:
- InMemoryDatasetStore: dict of collections, for development and tests
- SqlAlchemyDatasetStore: rows persisted as JSON documents (DatasetRow)
"""

from __future__ import annotations

import abc
import copy
import logging
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select

from ..core.errors import ExecutionError
from ..core.query_types import NormalizedOrder
from ..service.database import Database
from ..service.models import DatasetRow, new_id
from .documents import run_count, run_find

logger = logging.getLogger(__name__)


def _with_ids(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    docs = []
    for row in rows:
        if not isinstance(row, dict):
            raise ExecutionError("Dataset rows must be JSON objects")
        doc = copy.deepcopy(row)
        doc.setdefault("_id", new_id())
        docs.append(doc)
    return docs


class DatasetStore(abc.ABC):
    """Generic document store for dataset rows."""

    @abc.abstractmethod
    async def insert_many(self, collection: str, rows: Iterable[dict[str, Any]]) -> int:
        """Append rows to a collection; returns the number inserted."""

    @abc.abstractmethod
    async def find(
        self,
        collection: str,
        query_filter: Optional[dict[str, Any]] = None,
        projection: Optional[dict[str, Any]] = None,
        sort: Optional[list[NormalizedOrder]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Rows matching the filter, ordered, paginated and projected."""

    @abc.abstractmethod
    async def count(self, collection: str, query_filter: Optional[dict[str, Any]] = None) -> int:
        """Number of rows matching the filter."""

    @abc.abstractmethod
    async def drop(self, collection: str) -> None:
        """Remove a collection and all its rows."""


class InMemoryDatasetStore(DatasetStore):
    """
    Collections held in process memory.

    Usage:
        store = InMemoryDatasetStore()
        await store.insert_many("ds_1", [{"age": 30}, {"age": 41}])
        rows = await store.find("ds_1", {"age": {"$gt": 35}})
    """

    def __init__(self):
        self._collections: dict[str, list[dict[str, Any]]] = {}

    async def insert_many(self, collection: str, rows: Iterable[dict[str, Any]]) -> int:
        docs = _with_ids(rows)
        self._collections.setdefault(collection, []).extend(docs)
        return len(docs)

    async def find(
        self,
        collection: str,
        query_filter: Optional[dict[str, Any]] = None,
        projection: Optional[dict[str, Any]] = None,
        sort: Optional[list[NormalizedOrder]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        docs = self._collections.get(collection, [])
        return run_find(docs, query_filter, projection, sort or [], skip, limit)

    async def count(self, collection: str, query_filter: Optional[dict[str, Any]] = None) -> int:
        return run_count(self._collections.get(collection, []), query_filter)

    async def drop(self, collection: str) -> None:
        self._collections.pop(collection, None)

    def collection_names(self) -> list[str]:
        return list(self._collections)


class SqlAlchemyDatasetStore(DatasetStore):
    """
    Collections persisted in the `dataset_rows` table.

    Rows are loaded per collection in insertion order and evaluated with the
    same document matcher as the in-memory store.
    """

    def __init__(self, database: Database):
        self.database = database

    async def insert_many(self, collection: str, rows: Iterable[dict[str, Any]]) -> int:
        docs = _with_ids(rows)
        if not docs:
            return 0

        async with self.database.session() as db:
            result = await db.execute(
                select(func.max(DatasetRow.position)).where(DatasetRow.collection_name == collection)
            )
            start = (result.scalar() or 0) + 1
            db.add_all(
                DatasetRow(collection_name=collection, position=start + offset, data=doc)
                for offset, doc in enumerate(docs)
            )
            await db.commit()

        logger.info(f"Inserted {len(docs)} rows into {collection}")
        return len(docs)

    async def _load(self, collection: str) -> list[dict[str, Any]]:
        async with self.database.session() as db:
            result = await db.execute(
                select(DatasetRow.data)
                .where(DatasetRow.collection_name == collection)
                .order_by(DatasetRow.position)
            )
            return list(result.scalars().all())

    async def find(
        self,
        collection: str,
        query_filter: Optional[dict[str, Any]] = None,
        projection: Optional[dict[str, Any]] = None,
        sort: Optional[list[NormalizedOrder]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        docs = await self._load(collection)
        return run_find(docs, query_filter, projection, sort or [], skip, limit)

    async def count(self, collection: str, query_filter: Optional[dict[str, Any]] = None) -> int:
        if not query_filter:
            async with self.database.session() as db:
                result = await db.execute(
                    select(func.count()).select_from(DatasetRow).where(DatasetRow.collection_name == collection)
                )
                return result.scalar() or 0
        return run_count(await self._load(collection), query_filter)

    async def drop(self, collection: str) -> None:
        async with self.database.session() as db:
            await db.execute(delete(DatasetRow).where(DatasetRow.collection_name == collection))
            await db.commit()
