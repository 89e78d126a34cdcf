"""Property-level validation for instances and update payloads."""

from __future__ import annotations

from collections.abc import Mapping

from juggler.constants import CODE_PRESENCE, CODE_TYPE
from juggler.errors import ValidationDetails, ValidationError
from juggler.model.definition import ModelDefinition, PropertyDefinition


def validate(
    definition: ModelDefinition,
    payload: Mapping[str, object],
    *,
    partial: bool = False,
) -> ValidationError | None:
    """Return a ``ValidationError`` describing every failing property, or ``None``.

    With ``partial`` set, properties absent from ``payload`` are skipped, for
    payloads that will be merged into an existing record.
    """

    codes: dict[str, list[str]] = {}
    messages: dict[str, list[str]] = {}

    for prop in definition.properties.values():
        if partial and prop.name not in payload:
            continue
        value = payload.get(prop.name)
        if prop.required and not prop.id and _is_blank(value):
            _add(codes, messages, prop.name, CODE_PRESENCE, "can't be blank")
            continue
        if value is not None and not _matches_type(prop, value):
            _add(
                codes,
                messages,
                prop.name,
                CODE_TYPE,
                f"is not a valid {prop.value_type.__name__}",
            )

    if not codes:
        return None
    return ValidationError(
        ValidationDetails(model_name=definition.name, codes=codes, messages=messages)
    )


def assert_valid(
    definition: ModelDefinition, payload: Mapping[str, object], *, partial: bool = False
) -> None:
    error = validate(definition, payload, partial=partial)
    if error is not None:
        raise error


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value == ""


def _matches_type(prop: PropertyDefinition, value: object) -> bool:
    expected = prop.value_type
    if expected is object:
        return True
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


def _add(
    codes: dict[str, list[str]],
    messages: dict[str, list[str]],
    name: str,
    code: str,
    message: str,
) -> None:
    codes.setdefault(name, []).append(code)
    messages.setdefault(name, []).append(message)


__all__ = ["assert_valid", "validate"]
