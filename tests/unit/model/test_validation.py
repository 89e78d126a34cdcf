"""Presence and type validation of model payloads."""

from __future__ import annotations

import pytest

from juggler import ValidationError
from juggler.model import ModelBuilder, assert_valid, validate


@pytest.fixture
def definition():
    builder = ModelBuilder()
    builder.define(
        "Person",
        {"name": {"type": "string", "required": True}, "age": "number", "active": bool},
    )
    return builder.definition("Person")


def test_valid_payload_returns_none(definition) -> None:
    assert validate(definition, {"name": "Ann", "age": 3, "active": True}) is None


@pytest.mark.parametrize("blank", [None, ""])
def test_blank_required_property_fails_presence(definition, blank) -> None:
    error = validate(definition, {"name": blank})

    assert isinstance(error, ValidationError)
    assert error.details.codes == {"name": ["presence"]}
    assert "`name` can't be blank" in str(error)


def test_type_mismatches_are_reported_per_field(definition) -> None:
    error = validate(definition, {"name": "Ann", "age": "old", "active": 1})

    assert error is not None
    assert error.codes == {"age": ["type"], "active": ["type"]}
    assert error.details.to_dict()["model"] == "Person"


def test_booleans_are_not_numbers(definition) -> None:
    error = validate(definition, {"name": "Ann", "age": True})

    assert error is not None
    assert error.codes == {"age": ["type"]}


def test_partial_validation_skips_absent_properties(definition) -> None:
    assert validate(definition, {"age": 4}, partial=True) is None
    assert validate(definition, {"name": ""}, partial=True) is not None


def test_assert_valid_raises(definition) -> None:
    with pytest.raises(ValidationError):
        assert_valid(definition, {})
