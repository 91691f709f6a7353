"""Tests for query text validation and parsing."""

import pytest

from queryjam.core.errors import ValidationError
from queryjam.core.query_types import DEFAULT_LIMIT, DatasetQueryRequest, NormalizedOrder
from queryjam.core.validator import QueryValidator


@pytest.fixture
def validator():
    return QueryValidator()


class TestDenylist:

    @pytest.mark.parametrize("op", ["$where", "$function", "$accumulator", "$expr"])
    def test_denied_operator_rejected(self, validator, op):
        text = f'{{"filter": {{"{op}": "this.a > 1"}}}}'
        with pytest.raises(ValidationError) as exc:
            validator.ensure_safe(text)
        assert op in exc.value.message

    def test_escaped_operator_rejected(self, validator):
        text = '{"filter": {"\\u0024where": "1"}}'
        assert validator.find_denied(text) == ["$where"]

    def test_nested_operator_rejected(self, validator):
        text = '{"filter": {"$and": [{"a": 1}, {"$expr": {"$gt": ["$a", 1]}}]}}'
        assert "$expr" in validator.find_denied(text)

    def test_regular_query_passes(self, validator):
        validator.ensure_safe('{"filter": {"age": {"$gt": 30}}, "sort": {"age": -1}}')


class TestParse:

    def test_defaults(self, validator):
        errors, request = validator.parse("{}")
        assert errors == []
        assert request.filter == {}
        assert request.limit == DEFAULT_LIMIT
        assert request.skip == 0

    def test_configured_default_limit(self):
        errors, request = QueryValidator(default_limit=25).parse('{"filter": {}}')
        assert request.limit == 25

    def test_explicit_limit_wins_over_default(self):
        errors, request = QueryValidator(default_limit=25).parse('{"limit": 5}')
        assert request.limit == 5

    def test_invalid_json(self, validator):
        errors, request = validator.parse("{filter:")
        assert request is None
        assert errors[0].startswith("Query text is not valid JSON")

    def test_non_object(self, validator):
        errors, request = validator.parse("[1, 2]")
        assert request is None
        assert errors == ["Query must be a JSON object"]

    @pytest.mark.parametrize("text, field", [
        ('{"limit": 0}', "limit"),
        ('{"limit": 10001}', "limit"),
        ('{"skip": -1}', "skip"),
        ('{"sort": {"age": 2}}', "sort"),
        ('{"filter": [1]}', "filter"),
    ])
    def test_bad_fields(self, validator, text, field):
        errors, request = validator.parse(text)
        assert request is None
        assert any(e.startswith(field) for e in errors)

    def test_unknown_keys_ignored(self, validator):
        errors, request = validator.parse('{"filter": {"a": 1}, "explain": true}')
        assert errors == []
        assert request.filter == {"a": 1}


class TestNormalizedSort:

    def test_mapping(self):
        request = DatasetQueryRequest(sort={"city": 1, "age": -1})
        assert request.normalized_sort() == [
            NormalizedOrder(field="city", dir="asc"),
            NormalizedOrder(field="age", dir="desc"),
        ]

    def test_list(self):
        request = DatasetQueryRequest(sort=["-age", "name"])
        assert request.normalized_sort() == [
            NormalizedOrder(field="age", dir="desc"),
            NormalizedOrder(field="name", dir="asc"),
        ]
