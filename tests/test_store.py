"""Tests for document matching and the dataset stores."""

import pytest

from queryjam.core.errors import ExecutionError
from queryjam.core.query_types import NormalizedOrder
from queryjam.runtime.documents import matches, order, project
from queryjam.runtime.store import InMemoryDatasetStore, SqlAlchemyDatasetStore

from .conftest import PEOPLE


class TestMatches:

    @pytest.mark.parametrize("query_filter, expected", [
        ({}, True),
        ({"city": "Oslo"}, True),
        ({"city": "Bergen"}, False),
        ({"age": {"$gt": 40}}, True),
        ({"age": {"$gte": 41, "$lt": 42}}, True),
        ({"age": {"$ne": 41}}, False),
        ({"city": {"$in": ["Oslo", "Bergen"]}}, True),
        ({"city": {"$nin": ["Oslo"]}}, False),
        ({"tags": "db"}, True),
        ({"tags": {"$size": 2}}, True),
        ({"missing": {"$exists": False}}, True),
        ({"missing": None}, True),
        ({"name": {"$regex": "^ch", "$options": "i"}}, True),
        ({"age": {"$not": {"$gt": 40}}}, False),
        ({"$or": [{"city": "Bergen"}, {"age": 41}]}, True),
        ({"$nor": [{"city": "Oslo"}]}, False),
        ({"$and": [{"city": "Oslo"}, {"age": {"$lt": 30}}]}, False),
        ({"age": {"$gt": "40"}}, False),
    ])
    def test_operators(self, query_filter, expected):
        doc = {"name": "Chen", "age": 41, "city": "Oslo", "tags": ["ops", "db"]}
        assert matches(doc, query_filter) is expected

    def test_unknown_operator_raises(self):
        with pytest.raises(ExecutionError):
            matches({"a": 1}, {"a": {"$near": 1}})

    def test_dotted_path(self):
        assert matches({"address": {"city": "Oslo"}}, {"address.city": "Oslo"})


class TestProjectionAndOrder:

    def test_inclusion_keeps_id(self):
        assert project({"_id": "1", "a": 1, "b": 2}, {"a": 1}) == {"_id": "1", "a": 1}

    def test_inclusion_without_id(self):
        assert project({"_id": "1", "a": 1, "b": 2}, {"a": 1, "_id": 0}) == {"a": 1}

    def test_exclusion(self):
        assert project({"_id": "1", "a": 1, "b": 2}, {"b": 0}) == {"_id": "1", "a": 1}

    def test_mixed_projection_raises(self):
        with pytest.raises(ExecutionError):
            project({"a": 1, "b": 2}, {"a": 1, "b": 0})

    def test_multi_key_order_nulls_first(self):
        docs = [{"c": "b", "n": 2}, {"c": None, "n": 5}, {"c": "a", "n": 1}, {"c": "b", "n": 9}]
        result = order(docs, [NormalizedOrder(field="c", dir="asc"), NormalizedOrder(field="n", dir="desc")])
        assert [d["n"] for d in result] == [5, 1, 9, 2]


@pytest.fixture(params=["memory", "sqlalchemy"])
def any_store(request, database):
    if request.param == "memory":
        return InMemoryDatasetStore()
    return SqlAlchemyDatasetStore(database)


class TestStores:

    @pytest.mark.asyncio
    async def test_find_pipeline(self, any_store):
        await any_store.insert_many("people", PEOPLE)

        rows = await any_store.find(
            "people",
            query_filter={"city": "Oslo"},
            projection={"name": 1, "_id": 0},
            sort=[NormalizedOrder(field="age", dir="desc")],
            skip=1,
            limit=1,
        )
        assert rows == [{"name": "Chen"}]

    @pytest.mark.asyncio
    async def test_count_ignores_pagination(self, any_store):
        await any_store.insert_many("people", PEOPLE)
        assert await any_store.count("people") == 8
        assert await any_store.count("people", {"city": "Oslo"}) == 3

    @pytest.mark.asyncio
    async def test_rows_get_ids_and_insertion_order(self, any_store):
        await any_store.insert_many("people", PEOPLE[:3])
        await any_store.insert_many("people", PEOPLE[3:5])
        rows = await any_store.find("people")
        assert [r["name"] for r in rows] == ["Ada", "Brian", "Chen", "Dana", "Eli"]
        assert all(r["_id"] for r in rows)

    @pytest.mark.asyncio
    async def test_input_rows_not_mutated(self, any_store):
        rows = [{"a": 1}]
        await any_store.insert_many("c", rows)
        assert rows == [{"a": 1}]

    @pytest.mark.asyncio
    async def test_drop(self, any_store):
        await any_store.insert_many("people", PEOPLE)
        await any_store.drop("people")
        assert await any_store.count("people") == 0
        assert await any_store.find("people") == []
