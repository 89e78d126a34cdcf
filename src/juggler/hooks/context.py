"""Operation-scoped context records passed through observer chains.

Each DAO operation builds exactly one context variant per notification. The
record is mutable: observers may rewrite its fields, and the calling operation
re-reads them after the chain completes.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

_QUERY_KEYS: Final[frozenset[str]] = frozenset(
    {"where", "limit", "offset", "skip", "order", "fields"}
)


@dataclass(slots=True)
class Query:
    """Filter descriptor used by find/count/delete lookups."""

    where: dict[str, Any] = field(default_factory=dict)
    limit: int | None = None
    offset: int | None = None
    skip: int | None = None
    order: str | list[str] | None = None
    fields: list[str] | dict[str, bool] | None = None

    @classmethod
    def coerce(cls, value: object) -> Query:
        """Normalize ``None``, a ``Query``, or a filter mapping into a ``Query``."""

        if value is None:
            return cls()
        if isinstance(value, Query):
            if value.where is None:
                value.where = {}
            return value
        if not isinstance(value, Mapping):
            raise TypeError(f"query must be a mapping or Query, got {type(value).__name__}")

        unknown = sorted(str(key) for key in value if key not in _QUERY_KEYS)
        if unknown:
            raise ValueError(f"unsupported filter keys: {', '.join(unknown)}")

        where = value.get("where")
        if where is None:
            where = {}
        if not isinstance(where, Mapping):
            raise TypeError(f"where must be a mapping, got {type(where).__name__}")
        return cls(
            where=copy.deepcopy(dict(where)),
            limit=_optional_int(value.get("limit"), "limit"),
            offset=_optional_int(value.get("offset"), "offset"),
            skip=_optional_int(value.get("skip"), "skip"),
            order=copy.deepcopy(value.get("order")),
            fields=copy.deepcopy(value.get("fields")),
        )

    @property
    def start(self) -> int:
        if self.offset is not None:
            return self.offset
        if self.skip is not None:
            return self.skip
        return 0

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"where": copy.deepcopy(self.where)}
        for key in ("limit", "offset", "skip", "order", "fields"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = copy.deepcopy(value)
        return payload


@dataclass(slots=True)
class HookContext:
    """Common base: every context references the model class being operated on."""

    model: Any

    def to_dict(self) -> dict[str, Any]:
        return {"model": _model_label(self.model)}


@dataclass(slots=True)
class QueryContext(HookContext):
    query: Query = field(default_factory=Query)

    def to_dict(self) -> dict[str, Any]:
        return {"model": _model_label(self.model), "query": Query.coerce(self.query).to_dict()}


@dataclass(slots=True)
class SaveContext(HookContext):
    """Context for ``before save``/``after save``.

    Whole-instance writes populate ``instance``; partial updates populate
    ``where`` and ``data`` instead.
    """

    instance: Any = None
    data: dict[str, Any] | None = None
    where: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": _model_label(self.model)}
        if self.instance is not None:
            payload["instance"] = _snapshot(self.instance)
        if self.where is not None:
            payload["where"] = copy.deepcopy(self.where)
        if self.data is not None:
            payload["data"] = copy.deepcopy(self.data)
        return payload


@dataclass(slots=True)
class DeleteContext(HookContext):
    where: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"model": _model_label(self.model), "where": copy.deepcopy(self.where)}


def snapshot_context(context: object) -> object:
    """Render any context object as plain data for assertions and log fields."""

    to_dict = getattr(context, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(context, Mapping):
        return {str(key): _snapshot(value) for key, value in context.items()}
    return repr(context)


def _snapshot(value: object) -> object:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return copy.deepcopy(value)


def _model_label(model: object) -> str:
    name = getattr(model, "model_name", None)
    if isinstance(name, str):
        return f"[Model {name}]"
    return repr(model)


def _optional_int(value: object, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    return value


__all__ = [
    "DeleteContext",
    "HookContext",
    "Query",
    "QueryContext",
    "SaveContext",
    "snapshot_context",
]
