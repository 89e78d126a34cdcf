"""In-process storage connector backed by insertion-ordered dictionaries."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Mapping
from typing import Any

from juggler.connectors.base import Record
from juggler.connectors.where import apply_query, matches
from juggler.constants import DEFAULT_ID_PROPERTY
from juggler.errors import ConnectorError, DuplicateIdError
from juggler.hooks.context import Query

logger = logging.getLogger(__name__)


class MemoryConnector:
    """Connector that keeps each model's records in memory.

    Generated ids are decimal strings from a per-model counter. Records are
    deep-copied on the way in and out, so callers never alias stored state.
    ``atomic_upserts`` exposes ``update_or_create`` as an atomic primitive.
    """

    name = "memory"

    def __init__(self, *, atomic_upserts: bool = False) -> None:
        self.atomic_upserts = atomic_upserts
        self._records: dict[str, dict[object, Record]] = {}
        self._counters: dict[str, int] = {}
        self._id_properties: dict[str, str] = {}

    def define(self, model_name: str, id_property: str = DEFAULT_ID_PROPERTY) -> None:
        self._id_properties[model_name] = id_property
        self._records.setdefault(model_name, {})
        self._counters.setdefault(model_name, 0)

    async def create(self, model_name: str, data: Mapping[str, Any]) -> object:
        await asyncio.sleep(0)
        record = self._insert(model_name, data)
        return record[self._id_property(model_name)]

    async def all(self, model_name: str, query: Query) -> list[Record]:
        await asyncio.sleep(0)
        records = self._table(model_name).values()
        return copy.deepcopy(apply_query(records, query))

    async def count(self, model_name: str, where: Mapping[str, Any] | None) -> int:
        await asyncio.sleep(0)
        return sum(1 for record in self._table(model_name).values() if matches(record, where))

    async def save(self, model_name: str, data: Mapping[str, Any]) -> Record:
        await asyncio.sleep(0)
        id_property = self._id_property(model_name)
        record_id = data.get(id_property)
        if record_id is None:
            return copy.deepcopy(self._insert(model_name, data))

        record = copy.deepcopy(dict(data))
        self._table(model_name)[record_id] = record
        return copy.deepcopy(record)

    async def update_attributes(
        self, model_name: str, record_id: object, data: Mapping[str, Any]
    ) -> Record:
        await asyncio.sleep(0)
        table = self._table(model_name)
        if record_id not in table:
            raise ConnectorError(
                f"could not update attributes: {model_name} {record_id!r} not found"
            )
        id_property = self._id_property(model_name)
        table[record_id].update(
            {key: copy.deepcopy(value) for key, value in data.items() if key != id_property}
        )
        return copy.deepcopy(table[record_id])

    async def destroy_all(self, model_name: str, where: Mapping[str, Any] | None) -> int:
        await asyncio.sleep(0)
        table = self._table(model_name)
        doomed = [record_id for record_id, record in table.items() if matches(record, where)]
        for record_id in doomed:
            del table[record_id]
        logger.debug("memory connector removed %d %s records", len(doomed), model_name)
        return len(doomed)

    async def update_or_create(
        self, model_name: str, data: Mapping[str, Any]
    ) -> tuple[Record, bool]:
        await asyncio.sleep(0)
        table = self._table(model_name)
        id_property = self._id_property(model_name)
        record_id = data.get(id_property)
        if record_id is not None and record_id in table:
            table[record_id].update(copy.deepcopy(dict(data)))
            return copy.deepcopy(table[record_id]), False
        return copy.deepcopy(self._insert(model_name, data)), True

    def _insert(self, model_name: str, data: Mapping[str, Any]) -> Record:
        table = self._table(model_name)
        id_property = self._id_property(model_name)
        record = copy.deepcopy(dict(data))
        record_id = record.get(id_property)
        if record_id is None:
            record_id = self._next_id(model_name)
            record[id_property] = record_id
        elif record_id in table:
            raise DuplicateIdError(model_name, record_id)
        table[record_id] = record
        return record

    def _next_id(self, model_name: str) -> str:
        table = self._table(model_name)
        while True:
            self._counters[model_name] = self._counters.get(model_name, 0) + 1
            candidate = str(self._counters[model_name])
            if candidate not in table:
                return candidate

    def _table(self, model_name: str) -> dict[object, Record]:
        return self._records.setdefault(model_name, {})

    def _id_property(self, model_name: str) -> str:
        return self._id_properties.get(model_name, DEFAULT_ID_PROPERTY)


__all__ = ["MemoryConnector"]
