"""Binds a model builder, a storage connector, and runtime settings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from juggler.config.schema import assert_valid_config, default_config, merge_config
from juggler.connectors.memory import MemoryConnector
from juggler.dao import DataAccessObject
from juggler.errors import ModelDefinitionError
from juggler.model.definition import ModelBuilder
from juggler.observability.instrumentation import NotifyTrace

if TYPE_CHECKING:
    from juggler.connectors.base import Connector
    from juggler.hooks.notifier import Notifier
    from juggler.hooks.registry import ObserverRegistry
    from juggler.model.instance import PersistedModel

logger = logging.getLogger(__name__)


class DataSource:
    """Entry point for defining persisted models over one connector.

    ``settings`` is a full or partial config mapping; missing keys fall back to
    the built-in defaults. Without an explicit ``connector`` one is built from
    ``settings["datasource"]["connector"]``.
    """

    def __init__(
        self,
        connector: Connector | None = None,
        *,
        settings: Mapping[str, object] | None = None,
        builder: ModelBuilder | None = None,
    ) -> None:
        self._settings = assert_valid_config(merge_config(default_config(), settings or {}))
        observability = self._settings["observability"]

        if builder is None:
            trace = NotifyTrace(
                buffer_size=observability["trace_buffer_size"],
                enabled=observability["trace_notifications"],
            )
            builder = ModelBuilder(trace=trace)
        self._builder = builder
        self._connector = connector if connector is not None else self._default_connector()
        self._daos: dict[str, DataAccessObject] = {}

        logger.debug(
            "data source ready",
            extra={"connector": getattr(self._connector, "name", type(self._connector).__name__)},
        )

    @property
    def settings(self) -> dict[str, Any]:
        return self._settings

    @property
    def connector(self) -> Connector:
        return self._connector

    @property
    def builder(self) -> ModelBuilder:
        return self._builder

    @property
    def observer_registry(self) -> ObserverRegistry:
        return self._builder.observers

    @property
    def notifier(self) -> Notifier:
        return self._builder.notifier

    @property
    def trace(self) -> NotifyTrace | None:
        return self._builder.notifier.trace

    def create_model(
        self,
        name: str,
        properties: Mapping[str, object] | None = None,
        *,
        base: str | type[PersistedModel] | None = None,
    ) -> type[PersistedModel]:
        """Define ``name`` on this data source's builder and attach it."""

        model = self._builder.define(name, properties, base=base)
        return self.attach(model)

    def attach(self, model: type[PersistedModel]) -> type[PersistedModel]:
        if model.builder is not self._builder:
            raise ModelDefinitionError(
                f"model {model.model_name!r} belongs to a different model builder"
            )
        model.datasource = self
        self._connector.define(model.model_name, model._definition().id_property)
        self._daos.pop(model.model_name, None)
        return model

    def dao_for(self, model: type[PersistedModel]) -> DataAccessObject:
        if model.datasource is not self:
            raise ModelDefinitionError(
                f"model {model.model_name!r} is not attached to this data source"
            )
        dao = self._daos.get(model.model_name)
        if dao is None or dao.model is not model:
            dao = DataAccessObject(model, self)
            self._daos[model.model_name] = dao
        return dao

    def _default_connector(self) -> Connector:
        # ``datasource.connector`` is validated against the supported names.
        return MemoryConnector(atomic_upserts=self._settings["dao"]["atomic_upserts"])


__all__ = ["DataSource"]
