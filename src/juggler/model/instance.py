"""Model classes: attribute-bag instances plus the class-level data-access surface."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from juggler.errors import ModelDefinitionError, ModelNotAttachedError

if TYPE_CHECKING:
    from juggler.dao import DataAccessObject
    from juggler.datasource import DataSource
    from juggler.hooks.registry import Observer
    from juggler.model.definition import ModelBuilder, ModelDefinition

ContextT = TypeVar("ContextT")
ModelT = TypeVar("ModelT", bound="PersistedModel")


class PersistedModel:
    """Base class for every model produced by ``ModelBuilder.define``.

    Declared properties become instance attributes (``None`` unless a default
    is declared). Any other public attribute set on an instance, for example
    by an observer, is carried along in ``to_dict()`` and persisted.
    """

    model_name: ClassVar[str] = "PersistedModel"
    definition: ClassVar[ModelDefinition | None] = None
    builder: ClassVar[ModelBuilder | None] = None
    datasource: ClassVar[DataSource | None] = None

    def __init__(self, data: Mapping[str, Any] | None = None, **attributes: Any) -> None:
        definition = self._definition()
        for prop in definition.properties.values():
            setattr(self, prop.name, prop.default_value())
        payload = dict(data or {})
        payload.update(attributes)
        self.set_attributes(payload)

    # -- instance data -------------------------------------------------------

    def set_attributes(self, data: Mapping[str, Any]) -> None:
        declared = self._definition().properties
        for key, value in data.items():
            if not isinstance(key, str) or not key or key.startswith("_"):
                raise ValueError(f"invalid attribute name for {self.model_name}: {key!r}")
            if key not in declared and hasattr(type(self), key):
                raise ValueError(f"{self.model_name}.{key} clashes with a model attribute")
            setattr(self, key, copy.deepcopy(value))

    def to_dict(self) -> dict[str, Any]:
        """Declared properties first, then extra attributes, as a deep copy."""

        return {
            key: copy.deepcopy(value)
            for key, value in vars(self).items()
            if not key.startswith("_")
        }

    def get_id(self) -> Any:
        return getattr(self, self._definition().id_property, None)

    def set_id(self, value: Any) -> None:
        setattr(self, self._definition().id_property, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PersistedModel):
            return NotImplemented
        return self.model_name == other.model_name and self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in self.to_dict().items())
        return f"{self.model_name}({fields})"

    # -- observers -----------------------------------------------------------

    @classmethod
    def observe(cls, operation: str, observer: Observer) -> Observer:
        """Register ``observer`` for ``operation`` on this model and its descendants."""

        cls._builder().observers.register(cls.model_name, operation, observer)
        return observer

    @classmethod
    async def notify(cls, operation: str, context: ContextT) -> ContextT:
        """Run this model's observer chain for ``operation`` against ``context``."""

        return await cls._builder().notifier.notify(cls.model_name, operation, context)

    @classmethod
    def extend(
        cls: type[ModelT],
        name: str,
        properties: Mapping[str, object] | None = None,
    ) -> type[ModelT]:
        """Define a derived model that inherits properties and observers."""

        derived = cls._builder().define(name, properties, base=cls.model_name)
        if cls.datasource is not None:
            cls.datasource.attach(derived)
        return derived  # type: ignore[return-value]

    # -- class-level data access --------------------------------------------

    @classmethod
    async def find(
        cls: type[ModelT], filter: object = None, *, notify: bool = True
    ) -> list[ModelT]:
        return await cls._dao().find(filter, notify=notify)

    @classmethod
    async def find_one(
        cls: type[ModelT], filter: object = None, *, notify: bool = True
    ) -> ModelT | None:
        return await cls._dao().find_one(filter, notify=notify)

    @classmethod
    async def find_by_id(
        cls: type[ModelT], record_id: Any, *, notify: bool = True
    ) -> ModelT | None:
        return await cls._dao().find_by_id(record_id, notify=notify)

    @classmethod
    async def count(cls, where: Mapping[str, Any] | None = None, *, notify: bool = True) -> int:
        return await cls._dao().count(where, notify=notify)

    @classmethod
    async def create(cls, data: Any = None) -> Any:
        """Create one instance from a mapping, or many from a list of mappings."""

        return await cls._dao().create(data)

    @classmethod
    async def find_or_create(
        cls: type[ModelT], filter: object = None, data: Mapping[str, Any] | None = None
    ) -> tuple[ModelT, bool]:
        return await cls._dao().find_or_create(filter, data)

    @classmethod
    async def update_or_create(cls: type[ModelT], data: Mapping[str, Any]) -> ModelT:
        return await cls._dao().update_or_create(data)

    upsert = update_or_create

    @classmethod
    async def delete_all(
        cls, where: Mapping[str, Any] | None = None, *, notify: bool = True
    ) -> int:
        return await cls._dao().delete_all(where, notify=notify)

    destroy_all = delete_all

    # -- instance-level data access -----------------------------------------

    async def save(self: ModelT) -> ModelT:
        return await self._dao().save(self)

    async def update_attributes(self: ModelT, data: Mapping[str, Any] | None = None) -> ModelT:
        return await self._dao().update_attributes(self, data)

    async def delete(self) -> int:
        return await self._dao().delete(self)

    destroy = delete

    # -- plumbing ------------------------------------------------------------

    @classmethod
    def from_record(cls: type[ModelT], record: Mapping[str, Any]) -> ModelT:
        return cls(record)

    @classmethod
    def _definition(cls) -> ModelDefinition:
        if cls.definition is None:
            raise ModelDefinitionError(
                "PersistedModel cannot be used directly; define a model with ModelBuilder.define"
            )
        return cls.definition

    @classmethod
    def _builder(cls) -> ModelBuilder:
        if cls.builder is None:
            raise ModelDefinitionError(f"model {cls.model_name!r} has no model builder")
        return cls.builder

    @classmethod
    def _dao(cls) -> DataAccessObject:
        if cls.datasource is None:
            raise ModelNotAttachedError(
                f"model {cls.model_name!r} is not attached to a data source"
            )
        return cls.datasource.dao_for(cls)


__all__ = ["PersistedModel"]
