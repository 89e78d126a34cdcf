"""Storage connector contract consumed by the data-access wrapper."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from juggler.hooks.context import Query

Record = dict[str, Any]


@runtime_checkable
class Connector(Protocol):
    """Asynchronous per-operation storage primitives.

    Every method is a suspension point. Connectors never run observers; the
    data-access wrapper notifies before and after calling them.
    """

    name: str

    def define(self, model_name: str, id_property: str) -> None: ...

    async def create(self, model_name: str, data: Mapping[str, Any]) -> object: ...

    async def all(self, model_name: str, query: Query) -> list[Record]: ...

    async def count(self, model_name: str, where: Mapping[str, Any] | None) -> int: ...

    async def save(self, model_name: str, data: Mapping[str, Any]) -> Record: ...

    async def update_attributes(
        self, model_name: str, record_id: object, data: Mapping[str, Any]
    ) -> Record: ...

    async def destroy_all(self, model_name: str, where: Mapping[str, Any] | None) -> int: ...


@runtime_checkable
class AtomicUpsertConnector(Connector, Protocol):
    """Connector with a combined find-and-write primitive.

    Atomic upserts bypass the wrapper's lookup step, so lookup criteria
    rewritten by ``query`` observers are not applied on this path.
    """

    async def update_or_create(
        self, model_name: str, data: Mapping[str, Any]
    ) -> tuple[Record, bool]: ...


def supports_atomic_upsert(connector: object) -> bool:
    update_or_create = getattr(connector, "update_or_create", None)
    if not callable(update_or_create):
        return False
    return bool(getattr(connector, "atomic_upserts", True))


__all__ = ["AtomicUpsertConnector", "Connector", "Record", "supports_atomic_upsert"]
