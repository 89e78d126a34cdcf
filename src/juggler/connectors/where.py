"""Where-clause evaluation, ordering, paging, and projection for in-process connectors."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from functools import cmp_to_key
from typing import Any, Final

from juggler.hooks.context import Query

_MISSING: Final[object] = object()

_Comparator = Callable[[Any, Any], bool]


def _compare(op: Callable[[Any, Any], bool]) -> _Comparator:
    def run(actual: Any, expected: Any) -> bool:
        if actual is None or expected is None:
            return False
        try:
            return op(actual, expected)
        except TypeError:
            return False

    return run


def _inq(actual: Any, expected: Any) -> bool:
    return actual in _as_sequence(expected, "inq")


def _nin(actual: Any, expected: Any) -> bool:
    return actual not in _as_sequence(expected, "nin")


def _like(actual: Any, expected: Any) -> bool:
    return isinstance(actual, str) and re.search(str(expected), actual) is not None


def _between(actual: Any, expected: Any) -> bool:
    bounds = _as_sequence(expected, "between")
    if len(bounds) != 2:
        raise ValueError("between requires exactly two bounds")
    return _compare(lambda a, b: b[0] <= a <= b[1])(actual, bounds)


_OPERATORS: Final[dict[str, _Comparator]] = {
    "eq": lambda actual, expected: actual == expected,
    "neq": lambda actual, expected: actual != expected,
    "gt": _compare(lambda a, b: a > b),
    "gte": _compare(lambda a, b: a >= b),
    "lt": _compare(lambda a, b: a < b),
    "lte": _compare(lambda a, b: a <= b),
    "inq": _inq,
    "nin": _nin,
    "like": _like,
    "nlike": lambda actual, expected: not _like(actual, expected),
    "between": _between,
}


def matches(record: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    """True when ``record`` satisfies every condition in ``where``."""

    if not where:
        return True
    for key, condition in where.items():
        if key == "and":
            if not all(matches(record, item) for item in _as_clauses(condition, "and")):
                return False
            continue
        if key == "or":
            if not any(matches(record, item) for item in _as_clauses(condition, "or")):
                return False
            continue
        if not _matches_condition(record.get(key, _MISSING), condition):
            return False
    return True


def apply_query(records: Iterable[Mapping[str, Any]], query: Query) -> list[dict[str, Any]]:
    """Filter, order, page, and project ``records`` according to ``query``."""

    selected = [dict(record) for record in records if matches(record, query.where)]
    if query.order:
        selected = order_records(selected, query.order)

    start = query.start
    if start:
        selected = selected[start:]
    if query.limit is not None:
        selected = selected[: query.limit]

    if query.fields:
        selected = [project(record, query.fields) for record in selected]
    return selected


def order_records(
    records: list[dict[str, Any]], order: str | Sequence[str]
) -> list[dict[str, Any]]:
    clauses = [order] if isinstance(order, str) else list(order)
    keys: list[tuple[str, bool]] = []
    for clause in clauses:
        parts = str(clause).split()
        if not parts or len(parts) > 2:
            raise ValueError(f"invalid order clause: {clause!r}")
        direction = parts[1].upper() if len(parts) == 2 else "ASC"
        if direction not in {"ASC", "DESC"}:
            raise ValueError(f"invalid order direction: {clause!r}")
        keys.append((parts[0], direction == "DESC"))

    def compare(left: Mapping[str, Any], right: Mapping[str, Any]) -> int:
        for name, descending in keys:
            result = _compare_values(left.get(name), right.get(name))
            if result:
                return -result if descending else result
        return 0

    return sorted(records, key=cmp_to_key(compare))


def project(
    record: Mapping[str, Any], fields: Sequence[str] | Mapping[str, bool]
) -> dict[str, Any]:
    if isinstance(fields, Mapping):
        included = [name for name, flag in fields.items() if flag]
        if included:
            return {name: record.get(name) for name in included}
        excluded = {name for name, flag in fields.items() if not flag}
        return {name: value for name, value in record.items() if name not in excluded}
    return {name: record.get(name) for name in fields}


def _matches_condition(actual: Any, condition: Any) -> bool:
    if actual is _MISSING:
        actual = None
    if _is_operator_clause(condition):
        return all(_OPERATORS[op](actual, expected) for op, expected in condition.items())
    return actual == condition


def _is_operator_clause(condition: Any) -> bool:
    if not isinstance(condition, Mapping) or not condition:
        return False
    return all(key in _OPERATORS for key in condition)


def _compare_values(left: Any, right: Any) -> int:
    if left is None and right is None:
        return 0
    if left is None:
        return 1
    if right is None:
        return -1
    try:
        if left < right:
            return -1
        if left > right:
            return 1
    except TypeError:
        return (str(left) > str(right)) - (str(left) < str(right))
    return 0


def _as_sequence(value: Any, op: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValueError(f"{op} requires a list of values")
    return value


def _as_clauses(value: Any, op: str) -> Sequence[Mapping[str, Any]]:
    clauses = _as_sequence(value, op)
    for clause in clauses:
        if not isinstance(clause, Mapping):
            raise ValueError(f"{op} clauses must be mappings")
    return clauses


__all__ = ["apply_query", "matches", "order_records", "project"]
