"""
Document matching, projection and ordering.

Evaluates Mongo-style filter documents against plain dict rows using a
fixed operator table. Nothing in a filter is ever evaluated as code.

    {"age": {"$gte": 18}, "$or": [{"city": "Oslo"}, {"city": "Bergen"}]}
"""

from __future__ import annotations

import copy
import re
from typing import Any, Callable, Iterable, Optional

from ..core.errors import ExecutionError
from ..core.query_types import NormalizedOrder


_MISSING = object()

LOGICAL_OPS = {"$and", "$or", "$nor"}


def get_path(doc: Any, path: str) -> Any:
    """Resolve a dotted field path; returns _MISSING when absent."""
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _bracket(value: Any) -> int:
    """Type bracket used for comparisons and ordering."""
    if value is None or value is _MISSING:
        return 0
    if isinstance(value, bool):
        return 3
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    return 4


def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    # Only values of the same type bracket are comparable
    if left is _MISSING or _bracket(left) != _bracket(right):
        return False
    try:
        return op(left, right)
    except TypeError:
        return False


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _op_in(value: Any, expected: Any) -> bool:
    if not isinstance(expected, list):
        raise ExecutionError("$in needs an array")
    return any(_equals(value, candidate) for candidate in expected)


def _op_regex(value: Any, pattern: Any, options: str = "") -> bool:
    if not isinstance(value, str):
        return False
    flags = 0
    if "i" in options:
        flags |= re.IGNORECASE
    if "m" in options:
        flags |= re.MULTILINE
    try:
        return re.search(str(pattern), value, flags) is not None
    except re.error as e:
        raise ExecutionError(f"Invalid regular expression: {e}")


def _op_size(value: Any, expected: Any) -> bool:
    return isinstance(value, list) and len(value) == expected


def _match_operators(value: Any, expression: dict[str, Any]) -> bool:
    """Evaluate an operator expression like {"$gt": 5, "$lt": 10}."""
    for op, operand in expression.items():
        if op == "$options":
            continue
        if op == "$eq":
            ok = _equals(value, operand)
        elif op == "$ne":
            ok = not _equals(value, operand)
        elif op == "$gt":
            ok = _compare(value, operand, lambda a, b: a > b)
        elif op == "$gte":
            ok = _compare(value, operand, lambda a, b: a >= b)
        elif op == "$lt":
            ok = _compare(value, operand, lambda a, b: a < b)
        elif op == "$lte":
            ok = _compare(value, operand, lambda a, b: a <= b)
        elif op == "$in":
            ok = _op_in(value, operand)
        elif op == "$nin":
            ok = not _op_in(value, operand)
        elif op == "$exists":
            ok = (value is not _MISSING) == bool(operand)
        elif op == "$regex":
            ok = _op_regex(value, operand, expression.get("$options", ""))
        elif op == "$size":
            ok = _op_size(value, operand)
        elif op == "$not":
            if not isinstance(operand, dict):
                raise ExecutionError("$not needs an operator expression")
            ok = not _match_operators(value, operand)
        else:
            raise ExecutionError(f"Unknown operator: {op}")

        if not ok:
            return False
    return True


def _is_operator_expression(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(str(key).startswith("$") for key in condition)
    )


def matches(doc: dict[str, Any], query_filter: Optional[dict[str, Any]]) -> bool:
    """True if the document satisfies every clause of the filter."""
    if not query_filter:
        return True

    for key, condition in query_filter.items():
        if key in LOGICAL_OPS:
            if not isinstance(condition, list) or not condition:
                raise ExecutionError(f"{key} needs a non-empty array")
            results = [matches(doc, clause) for clause in condition]
            if key == "$and" and not all(results):
                return False
            if key == "$or" and not any(results):
                return False
            if key == "$nor" and any(results):
                return False
            continue

        if key.startswith("$"):
            raise ExecutionError(f"Unknown top-level operator: {key}")

        value = get_path(doc, key)
        if _is_operator_expression(condition):
            if not _match_operators(value, condition):
                return False
        elif not _equals(value, condition):
            return False

    return True


def project(doc: dict[str, Any], projection: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Apply an inclusion or exclusion projection.

    {"name": 1} keeps name (and _id); {"secret": 0} drops secret.
    """
    if not projection:
        return copy.deepcopy(doc)

    fields = {key: bool(value) for key, value in projection.items()}
    id_flag = fields.pop("_id", None)
    modes = set(fields.values())
    if len(modes) > 1:
        raise ExecutionError("Projection cannot mix inclusion and exclusion")

    if modes == {True}:
        result = {key: copy.deepcopy(doc[key]) for key in fields if key in doc}
        if id_flag is not False and "_id" in doc:
            result = {"_id": doc["_id"], **result}
        return result

    excluded = set(fields)
    if id_flag is False:
        excluded.add("_id")
    return {key: copy.deepcopy(value) for key, value in doc.items() if key not in excluded}


def _sort_key(field: str) -> Callable[[dict[str, Any]], tuple]:
    def key(doc: dict[str, Any]) -> tuple:
        value = get_path(doc, field)
        bracket = _bracket(value)
        if bracket == 0:
            return (0, 0)
        if bracket == 4:
            return (4, repr(value))
        return (bracket, value)
    return key


def order(docs: list[dict[str, Any]], orders: Iterable[NormalizedOrder]) -> list[dict[str, Any]]:
    """Stable multi-key sort; missing and null values sort first."""
    result = list(docs)
    for item in reversed(list(orders)):
        result.sort(key=_sort_key(item.field), reverse=item.dir == "desc")
    return result


def run_find(
    docs: Iterable[dict[str, Any]],
    query_filter: Optional[dict[str, Any]],
    projection: Optional[dict[str, Any]],
    orders: Iterable[NormalizedOrder],
    skip: int,
    limit: Optional[int],
) -> list[dict[str, Any]]:
    """filter -> sort -> skip -> limit -> project over in-memory documents."""
    selected = [doc for doc in docs if matches(doc, query_filter)]
    selected = order(selected, orders)
    end = None if limit is None else skip + limit
    return [project(doc, projection) for doc in selected[skip:end]]


def run_count(docs: Iterable[dict[str, Any]], query_filter: Optional[dict[str, Any]]) -> int:
    return sum(1 for doc in docs if matches(doc, query_filter))
