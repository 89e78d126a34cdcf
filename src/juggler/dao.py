"""Data-access wrapper: notifies observers around every storage primitive.

Each operation builds its pre-operation context, runs the observer chain,
re-reads the (possibly mutated) context, validates save payloads, calls the
connector, then runs the post-operation chain. A failing pre-operation chain
aborts before any storage call. A failing post-operation chain is raised after
the write has been committed; nothing is rolled back.
"""

from __future__ import annotations

import copy
import functools
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from juggler.connectors.base import supports_atomic_upsert
from juggler.constants import (
    OP_AFTER_DELETE,
    OP_AFTER_SAVE,
    OP_BEFORE_DELETE,
    OP_BEFORE_SAVE,
    OP_QUERY,
)
from juggler.errors import BulkOperationError
from juggler.hooks.context import DeleteContext, Query, QueryContext, SaveContext
from juggler.model.validation import assert_valid
from juggler.observability.logging import correlation_scope
from juggler.utils.concurrency import ConcurrencyLimiter, gather_bounded

if TYPE_CHECKING:
    from juggler.connectors.base import Connector
    from juggler.datasource import DataSource
    from juggler.model.definition import ModelDefinition
    from juggler.model.instance import PersistedModel

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

_COMBINATOR_KEYS = frozenset({"and", "or"})


def _scoped(
    operation: str,
) -> Callable[[Callable[..., Awaitable[ResultT]]], Callable[..., Awaitable[ResultT]]]:
    """Bind ``model``/``operation`` correlation fields for the wrapped call."""

    def decorator(method: Callable[..., Awaitable[ResultT]]) -> Callable[..., Awaitable[ResultT]]:
        @functools.wraps(method)
        async def wrapper(self: DataAccessObject, *args: Any, **kwargs: Any) -> ResultT:
            with correlation_scope(model=self.model_name, operation=operation):
                logger.debug("%s.%s", self.model_name, operation)
                return await method(self, *args, **kwargs)

        return wrapper

    return decorator


class DataAccessObject:
    """CRUD surface for one model class bound to one data source."""

    def __init__(self, model: type[PersistedModel], datasource: DataSource) -> None:
        self._model = model
        self._datasource = datasource

    @property
    def model(self) -> type[PersistedModel]:
        return self._model

    @property
    def model_name(self) -> str:
        return self._model.model_name

    @property
    def connector(self) -> Connector:
        return self._datasource.connector

    @property
    def definition(self) -> ModelDefinition:
        return self._model._definition()

    @property
    def bulk_concurrency(self) -> int:
        return int(self._datasource.settings["dao"]["bulk_concurrency"])

    @property
    def uses_atomic_upserts(self) -> bool:
        return bool(self._datasource.settings["dao"]["atomic_upserts"]) and (
            supports_atomic_upsert(self.connector)
        )

    # -- queries -------------------------------------------------------------

    @_scoped("find")
    async def find(self, filter: object = None, *, notify: bool = True) -> list[PersistedModel]:
        query = await self._notify_query(_copy_query(filter), notify=notify)
        records = await self.connector.all(self.model_name, query)
        return [self._model.from_record(record) for record in records]

    @_scoped("find_one")
    async def find_one(
        self, filter: object = None, *, notify: bool = True
    ) -> PersistedModel | None:
        query = _copy_query(filter)
        query.limit = 1
        query = await self._notify_query(query, notify=notify)
        records = await self.connector.all(self.model_name, query)
        if not records:
            return None
        return self._model.from_record(records[0])

    async def find_by_id(self, record_id: Any, *, notify: bool = True) -> PersistedModel | None:
        where = {self.definition.id_property: record_id}
        return await self.find_one({"where": where}, notify=notify)

    @_scoped("count")
    async def count(self, where: Mapping[str, Any] | None = None, *, notify: bool = True) -> int:
        query = Query(where=copy.deepcopy(dict(where or {})))
        query = await self._notify_query(query, notify=notify)
        return await self.connector.count(self.model_name, query.where)

    # -- creation ------------------------------------------------------------

    @_scoped("create")
    async def create(self, data: Any = None) -> Any:
        """Create one instance, or one per item when ``data`` is a list.

        A list with failing items raises ``BulkOperationError`` after every
        item has been attempted.
        """

        if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
            return await self._create_many(data)
        return await self._insert(self._coerce_instance(data))

    async def _create_many(self, items: Sequence[Any]) -> list[Any]:
        errors: list[BaseException | None] = [None] * len(items)
        results: list[Any] = [None] * len(items)

        async def create_item(index: int, item: Any) -> None:
            try:
                instance = self._coerce_instance(item)
                results[index] = instance
                results[index] = await self._insert(instance)
            except Exception as exc:
                logger.debug("bulk create item %d of %s failed: %s", index, self.model_name, exc)
                errors[index] = exc

        limiter = ConcurrencyLimiter(self.bulk_concurrency)
        await gather_bounded(
            (create_item(index, item) for index, item in enumerate(items)),
            limiter=limiter,
        )
        logger.debug(
            "bulk create of %d %s items (peak concurrency %d of %d)",
            len(items),
            self.model_name,
            limiter.peak,
            limiter.limit,
        )
        if any(error is not None for error in errors):
            raise BulkOperationError(errors, results)
        return results

    @_scoped("find_or_create")
    async def find_or_create(
        self, filter: object = None, data: Mapping[str, Any] | None = None
    ) -> tuple[PersistedModel, bool]:
        """Return ``(instance, created)``.

        Save observers fire only when no record matched the lookup.
        """

        query = _copy_query(filter)
        if data is None:
            data = _equality_defaults(query.where)
        query.limit = 1
        query.offset = 0
        query.skip = 0

        query = await self._notify_query(query)
        records = await self.connector.all(self.model_name, query)
        if records:
            return self._model.from_record(records[0]), False
        return await self._insert(self._coerce_instance(data)), True

    @_scoped("update_or_create")
    async def update_or_create(self, data: Mapping[str, Any] | PersistedModel) -> PersistedModel:
        payload = _payload_of(data)
        id_property = self.definition.id_property
        record_id = payload.get(id_property)

        if self.uses_atomic_upserts:
            return await self._atomic_update_or_create(payload, record_id)

        if record_id is None:
            return await self._insert(self._model(payload))

        lookup = {id_property: record_id}
        query = await self._notify_query(Query(where=copy.deepcopy(lookup)))
        records = await self.connector.all(self.model_name, query)
        if not records:
            if query.where != lookup:
                # The lookup was redirected; the caller's id named nothing.
                payload.pop(id_property, None)
            return await self._insert(self._model(payload))

        instance = self._model.from_record(records[0])
        instance.set_attributes(
            {key: value for key, value in payload.items() if key != id_property}
        )
        return await self._replace(instance)

    async def _atomic_update_or_create(
        self, payload: dict[str, Any], record_id: Any
    ) -> PersistedModel:
        # Lookup criteria rewritten by query observers are not applied here.
        if record_id is not None:
            lookup = {self.definition.id_property: record_id}
            await self._notify_query(Query(where=lookup))

        context = await self._model.notify(
            OP_BEFORE_SAVE, SaveContext(model=self._model, instance=self._model(payload))
        )
        instance = context.instance
        values = _without_unset(instance.to_dict(), payload)
        # Only an update may leave properties to the stored record.
        target_id = values.get(self.definition.id_property)
        updating = target_id is not None and (
            await self.connector.count(
                self.model_name, {self.definition.id_property: target_id}
            )
            > 0
        )
        assert_valid(self.definition, values, partial=updating)
        record, created = await self.connector.update_or_create(self.model_name, values)
        logger.debug("atomic upsert of %s %s", self.model_name, "created" if created else "updated")
        saved = self._model.from_record(record)
        context = await self._model.notify(
            OP_AFTER_SAVE, SaveContext(model=self._model, instance=saved)
        )
        return context.instance

    # -- instance writes -----------------------------------------------------

    @_scoped("save")
    async def save(self, instance: PersistedModel) -> PersistedModel:
        if instance.get_id() is None:
            return await self._insert(instance)
        return await self._replace(instance)

    @_scoped("update_attributes")
    async def update_attributes(
        self, instance: PersistedModel, data: Mapping[str, Any] | None = None
    ) -> PersistedModel:
        id_property = self.definition.id_property
        record_id = _require_id(instance, id_property)

        context = await self._model.notify(
            OP_BEFORE_SAVE,
            SaveContext(
                model=self._model,
                data=copy.deepcopy(dict(data or {})),
                where={id_property: record_id},
            ),
        )
        changes = {
            key: value for key, value in (context.data or {}).items() if key != id_property
        }
        merged = instance.to_dict()
        merged.update(changes)
        assert_valid(self.definition, merged)

        await self.connector.update_attributes(self.model_name, record_id, changes)
        instance.set_attributes(changes)

        context = await self._model.notify(
            OP_AFTER_SAVE, SaveContext(model=self._model, instance=instance)
        )
        return context.instance

    # -- deletion ------------------------------------------------------------

    @_scoped("delete_all")
    async def delete_all(
        self, where: Mapping[str, Any] | None = None, *, notify: bool = True
    ) -> int:
        return await self._delete_where(copy.deepcopy(dict(where or {})), notify=notify)

    @_scoped("delete")
    async def delete(self, instance: PersistedModel) -> int:
        id_property = self.definition.id_property
        return await self._delete_where({id_property: _require_id(instance, id_property)})

    async def _delete_where(self, where: dict[str, Any], *, notify: bool = True) -> int:
        if notify:
            where = (await self._notify_query(Query(where=where))).where
            context = await self._model.notify(
                OP_BEFORE_DELETE, DeleteContext(model=self._model, where=where)
            )
            where = dict(context.where or {})

        removed = await self.connector.destroy_all(self.model_name, where)
        logger.debug("deleted %d %s records", removed, self.model_name)

        if notify:
            await self._model.notify(OP_AFTER_DELETE, DeleteContext(model=self._model, where=where))
        return removed

    # -- shared steps --------------------------------------------------------

    async def _notify_query(self, query: Query, *, notify: bool = True) -> Query:
        if not notify:
            return query
        context = await self._model.notify(OP_QUERY, QueryContext(model=self._model, query=query))
        return Query.coerce(context.query)

    async def _insert(self, instance: PersistedModel) -> PersistedModel:
        context = await self._model.notify(
            OP_BEFORE_SAVE, SaveContext(model=self._model, instance=instance)
        )
        instance = context.instance
        payload = instance.to_dict()
        assert_valid(self.definition, payload)

        instance.set_id(await self.connector.create(self.model_name, payload))

        context = await self._model.notify(
            OP_AFTER_SAVE, SaveContext(model=self._model, instance=instance)
        )
        return context.instance

    async def _replace(self, instance: PersistedModel) -> PersistedModel:
        context = await self._model.notify(
            OP_BEFORE_SAVE, SaveContext(model=self._model, instance=instance)
        )
        instance = context.instance
        payload = instance.to_dict()
        assert_valid(self.definition, payload)

        instance.set_attributes(await self.connector.save(self.model_name, payload))

        context = await self._model.notify(
            OP_AFTER_SAVE, SaveContext(model=self._model, instance=instance)
        )
        return context.instance

    def _coerce_instance(self, data: Any) -> PersistedModel:
        if isinstance(data, self._model):
            return data
        if data is not None and not isinstance(data, Mapping):
            raise TypeError(
                f"{self.model_name} data must be a mapping, got {type(data).__name__}"
            )
        return self._model(data)


def _copy_query(filter: object) -> Query:
    if isinstance(filter, Query):
        return copy.deepcopy(filter)
    return Query.coerce(filter)


def _payload_of(data: Mapping[str, Any] | PersistedModel) -> dict[str, Any]:
    to_dict = getattr(data, "to_dict", None)
    if callable(to_dict):
        # Unset properties of an instance read as ``None``; they must not
        # overwrite stored values.
        return {key: value for key, value in to_dict().items() if value is not None}
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping or model instance, got {type(data).__name__}")
    return copy.deepcopy(dict(data))


def _equality_defaults(where: Mapping[str, Any]) -> dict[str, Any]:
    """Seed creation data from the plain ``field: value`` entries of a where clause."""

    return {
        key: copy.deepcopy(value)
        for key, value in where.items()
        if key not in _COMBINATOR_KEYS and not isinstance(value, Mapping)
    }


def _without_unset(values: Mapping[str, Any], payload: Mapping[str, Any]) -> dict[str, Any]:
    """Drop ``None`` properties the caller never supplied."""

    return {
        key: value for key, value in values.items() if value is not None or key in payload
    }


def _require_id(instance: PersistedModel, id_property: str) -> Any:
    record_id = instance.get_id()
    if record_id is None:
        raise ValueError(f"{instance.model_name} instance has no {id_property!r}; save it first")
    return record_id


__all__ = ["DataAccessObject"]
