"""Tests for the query execution engine."""

import pytest
import pytest_asyncio

from queryjam.core.errors import ExecutionError
from queryjam.core.query_types import DatasetQueryRequest
from queryjam.runtime.executor import DATASET_NOT_FOUND, QueryEngine
from queryjam.runtime.store import InMemoryDatasetStore

from .conftest import PEOPLE


@pytest_asyncio.fixture
async def engine_with_people():
    store = InMemoryDatasetStore()
    await store.insert_many("ds_people", PEOPLE)

    async def resolve(dataset_id):
        return "ds_people" if dataset_id == "people" else None

    return QueryEngine(store, resolve)


class TestExecute:

    @pytest.mark.asyncio
    async def test_limit_truncates_and_flags(self, engine_with_people):
        result = await engine_with_people.execute("people", DatasetQueryRequest(limit=5))
        assert result.success
        assert len(result.data) == 5
        assert result.limited is True
        assert result.count == 8

    @pytest.mark.asyncio
    async def test_exact_fit_is_not_limited(self, engine_with_people):
        result = await engine_with_people.execute("people", DatasetQueryRequest(limit=8))
        assert len(result.data) == 8
        assert result.limited is False

    @pytest.mark.asyncio
    async def test_count_independent_of_skip_and_limit(self, engine_with_people):
        request = DatasetQueryRequest(filter={"city": "Oslo"}, skip=2, limit=1)
        result = await engine_with_people.execute("people", request)
        assert result.count == 3
        assert len(result.data) == 1
        assert result.limited is False

    @pytest.mark.asyncio
    async def test_sort_on_projected_out_field(self, engine_with_people):
        request = DatasetQueryRequest(projection={"name": 1, "_id": 0}, sort={"age": 1}, limit=3)
        result = await engine_with_people.execute("people", request)
        assert result.data == [{"name": "Dana"}, {"name": "Brian"}, {"name": "Hana"}]

    @pytest.mark.asyncio
    async def test_unknown_dataset(self, engine_with_people):
        result = await engine_with_people.execute("nope", DatasetQueryRequest())
        assert not result.success
        assert result.error == DATASET_NOT_FOUND
        assert result.data == [] and result.count == 0 and result.execution_time == 0

    @pytest.mark.asyncio
    async def test_missing_dataset_id(self, engine_with_people):
        result = await engine_with_people.execute(None, DatasetQueryRequest())
        assert result.error == DATASET_NOT_FOUND

    @pytest.mark.asyncio
    async def test_bad_operator_is_captured(self, engine_with_people):
        result = await engine_with_people.execute(
            "people", DatasetQueryRequest(filter={"age": {"$near": 3}})
        )
        assert not result.success
        assert "$near" in result.error

    @pytest.mark.asyncio
    async def test_store_crash_is_captured(self):
        class BrokenStore(InMemoryDatasetStore):
            async def find(self, *args, **kwargs):
                raise ConnectionError("store offline")

        async def resolve(dataset_id):
            return "ds"

        result = await QueryEngine(BrokenStore(), resolve).execute("x", DatasetQueryRequest())
        assert not result.success
        assert result.error == "store offline"

    @pytest.mark.asyncio
    async def test_count_failure_is_captured(self):
        class CountFails(InMemoryDatasetStore):
            async def count(self, collection, query_filter=None):
                raise ExecutionError("count failed", collection)

        async def resolve(dataset_id):
            return "ds"

        result = await QueryEngine(CountFails(), resolve).execute("x", DatasetQueryRequest())
        assert not result.success
        assert result.error == "count failed"
