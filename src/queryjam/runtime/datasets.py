"""
Dataset registration and lookup.

A dataset is metadata (name, inferred columns, owning session) plus a
store collection holding its rows. The execution engine reaches the
collection through `DatasetService.collection_for`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import delete, select

from ..core.errors import AccessDeniedError, NotFoundError, ValidationError
from ..core.schemas import ColumnDef, DatasetCreate
from ..iam.access import can_edit, has_access
from ..service.database import Database
from ..service.models import Dataset, new_id
from .context import Principal
from .sessions import load_session, require_user
from .store import DatasetStore

logger = logging.getLogger(__name__)


def infer_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "string"


def infer_columns(rows: list[dict[str, Any]]) -> list[ColumnDef]:
    """Column names in first-seen order, typed from the first non-null value."""
    types: dict[str, Optional[str]] = {}
    for row in rows:
        for key, value in row.items():
            if key == "_id":
                continue
            if types.get(key) is None:
                types[key] = None if value is None else infer_type(value)
    return [ColumnDef(name=name, type=kind or "string") for name, kind in types.items()]


class DatasetService:
    """
    Dataset management.

    Usage:
        service = DatasetService(database, store)
        dataset = await service.register(principal, DatasetCreate(name="people", rows=[...]))
        engine = QueryEngine(store, service.collection_for)
    """

    def __init__(self, database: Database, store: DatasetStore):
        self.database = database
        self.store = store

    async def register(self, principal: Principal, data: DatasetCreate) -> Dataset:
        user_id = require_user(principal)

        if any(not isinstance(row, dict) for row in data.rows):
            raise ValidationError("Dataset rows must be JSON objects")

        async with self.database.session() as db:
            if data.session_id:
                session = await load_session(db, data.session_id)
                if not can_edit(session, user_id):
                    raise AccessDeniedError("You do not have permission to add datasets to this session")

            dataset = Dataset(
                id=new_id(),
                name=data.name,
                description=data.description,
                owner_id=user_id,
                session_id=data.session_id,
                collection_name=f"ds_{new_id()}",
                columns=[c.model_dump() for c in infer_columns(data.rows)],
            )
            db.add(dataset)
            await db.commit()

        inserted = await self.store.insert_many(dataset.collection_name, data.rows)
        logger.info(f"Dataset {dataset.id} registered with {inserted} rows")
        return dataset

    async def list_for(self, principal: Principal, session_id: Optional[str] = None) -> list[Dataset]:
        """Datasets of a session, or the caller's own datasets."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            stmt = select(Dataset).order_by(Dataset.created_at.desc())
            if session_id:
                session = await load_session(db, session_id)
                if not has_access(session, user_id):
                    raise AccessDeniedError("You do not have access to this session")
                stmt = stmt.where(Dataset.session_id == session_id)
            else:
                stmt = stmt.where(Dataset.owner_id == user_id)

            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def get(self, principal: Principal, dataset_id: str) -> Dataset:
        user_id = require_user(principal)

        async with self.database.session() as db:
            dataset = await db.get(Dataset, dataset_id)
            if dataset is None:
                raise NotFoundError("Dataset", dataset_id)

            if dataset.owner_id != user_id:
                session = await load_session(db, dataset.session_id) if dataset.session_id else None
                if session is None or not has_access(session, user_id):
                    raise AccessDeniedError("You do not have access to this dataset")
            return dataset

    async def delete(self, principal: Principal, dataset_id: str) -> None:
        """Drop a dataset's rows and its record; owner only."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            dataset = await db.get(Dataset, dataset_id)
            if dataset is None:
                raise NotFoundError("Dataset", dataset_id)
            if dataset.owner_id != user_id:
                raise AccessDeniedError("Not authorized to delete dataset")

        await self.store.drop(dataset.collection_name)

        async with self.database.session() as db:
            await db.execute(delete(Dataset).where(Dataset.id == dataset_id))
            await db.commit()

        logger.info(f"Dataset {dataset_id} deleted by {user_id}")

    async def collection_for(self, dataset_id: str) -> Optional[str]:
        """Collection backing a dataset, or None when the dataset is unknown."""
        async with self.database.session() as db:
            result = await db.execute(
                select(Dataset.collection_name).where(Dataset.id == dataset_id)
            )
            return result.scalar()
