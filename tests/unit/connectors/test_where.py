"""Where-clause matching, ordering, paging, and projection."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from juggler.connectors.where import apply_query, matches, order_records, project
from juggler.hooks import Query

RECORDS = [
    {"id": "1", "name": "alpha", "size": 3},
    {"id": "2", "name": "beta", "size": 1},
    {"id": "3", "name": "gamma", "size": None},
]


@pytest.mark.parametrize(
    ("where", "expected"),
    [
        ({}, ["1", "2", "3"]),
        (None, ["1", "2", "3"]),
        ({"name": "beta"}, ["2"]),
        ({"id": {"neq": "1"}}, ["2", "3"]),
        ({"size": {"gt": 1}}, ["1"]),
        ({"size": {"gte": 1, "lt": 3}}, ["2"]),
        ({"size": {"lte": 3}}, ["1", "2"]),
        ({"id": {"inq": ["1", "3"]}}, ["1", "3"]),
        ({"id": {"nin": ["1", "3"]}}, ["2"]),
        ({"name": {"like": "^a"}}, ["1"]),
        ({"name": {"nlike": "a$"}}, []),
        ({"size": {"between": [1, 2]}}, ["2"]),
        ({"or": [{"id": "1"}, {"name": "gamma"}]}, ["1", "3"]),
        ({"and": [{"size": {"gte": 1}}, {"name": {"neq": "alpha"}}]}, ["2"]),
        ({"missing": None}, ["1", "2", "3"]),
    ],
)
def test_matches_operators(where, expected) -> None:
    assert [record["id"] for record in RECORDS if matches(record, where)] == expected


def test_invalid_operator_arguments_raise() -> None:
    with pytest.raises(ValueError):
        matches(RECORDS[0], {"id": {"inq": "1"}})
    with pytest.raises(ValueError):
        matches(RECORDS[0], {"size": {"between": [1]}})
    with pytest.raises(ValueError):
        matches(RECORDS[0], {"or": ["not a clause"]})


def test_order_records_sorts_nulls_last_and_supports_desc() -> None:
    assert [r["id"] for r in order_records(list(RECORDS), "size")] == ["2", "1", "3"]
    assert [r["id"] for r in order_records(list(RECORDS), ["name DESC"])] == ["3", "2", "1"]
    with pytest.raises(ValueError):
        order_records(list(RECORDS), "name sideways")


def test_project_with_list_and_mapping() -> None:
    assert project(RECORDS[0], ["id"]) == {"id": "1"}
    assert project(RECORDS[0], {"name": True}) == {"name": "alpha"}
    assert project(RECORDS[0], {"size": False}) == {"id": "1", "name": "alpha"}


def test_apply_query_pages_after_ordering() -> None:
    query = Query(order="name DESC", offset=1, limit=1, fields=["name"])

    assert apply_query(RECORDS, query) == [{"name": "beta"}]


@given(
    values=st.lists(st.integers(min_value=-50, max_value=50), max_size=20),
    threshold=st.integers(min_value=-50, max_value=50),
)
@settings(max_examples=25, derandomize=True)
def test_property_gt_and_lte_partition_records(values: list[int], threshold: int) -> None:
    records = [{"id": str(index), "value": value} for index, value in enumerate(values)]

    above = [r["id"] for r in records if matches(r, {"value": {"gt": threshold}})]
    at_or_below = [r["id"] for r in records if matches(r, {"value": {"lte": threshold}})]

    assert sorted(above + at_or_below, key=int) == [r["id"] for r in records]
    assert not set(above) & set(at_or_below)
