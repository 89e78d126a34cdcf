"""Model descriptors and the builder that owns them.

``ModelBuilder`` is the arena of ``ModelDefinition`` records addressed by
model name. Inheritance is an explicit ``base`` name on each definition, which
the observer registry walks when resolving inherited observers.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

from juggler.constants import DEFAULT_ID_PROPERTY
from juggler.errors import ModelDefinitionError
from juggler.hooks.notifier import Notifier
from juggler.hooks.registry import ObserverRegistry

if TYPE_CHECKING:
    from juggler.model.instance import PersistedModel
    from juggler.observability.instrumentation import NotifyTrace

_MODEL_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_PROPERTY_KEYS: Final[frozenset[str]] = frozenset({"type", "required", "id", "default"})
_TYPE_ALIASES: Final[dict[str, type]] = {
    "string": str,
    "str": str,
    "number": float,
    "float": float,
    "int": int,
    "integer": int,
    "boolean": bool,
    "bool": bool,
    "object": dict,
    "dict": dict,
    "array": list,
    "list": list,
    "any": object,
}


@dataclass(frozen=True, slots=True)
class PropertyDefinition:
    """Declared model property."""

    name: str
    value_type: type = object
    required: bool = False
    id: bool = False
    default: Any = None

    def default_value(self) -> Any:
        return copy.deepcopy(self.default)


@dataclass(slots=True)
class ModelDefinition:
    """Named schema descriptor; ``base`` links to the parent definition by name."""

    name: str
    properties: dict[str, PropertyDefinition] = field(default_factory=dict)
    base: str | None = None

    @property
    def id_property(self) -> str:
        for prop in self.properties.values():
            if prop.id:
                return prop.name
        return DEFAULT_ID_PROPERTY

    @property
    def required_properties(self) -> tuple[str, ...]:
        return tuple(prop.name for prop in self.properties.values() if prop.required)


class ModelBuilder:
    """Defines models and owns the observer registry they share."""

    def __init__(self, *, trace: NotifyTrace | None = None) -> None:
        self._definitions: dict[str, ModelDefinition] = {}
        self._models: dict[str, type[PersistedModel]] = {}
        self.observers = ObserverRegistry(self._parent_of)
        self.notifier = Notifier(self.observers, trace=trace)

    def define(
        self,
        name: str,
        properties: Mapping[str, object] | None = None,
        *,
        base: str | type[PersistedModel] | None = None,
    ) -> type[PersistedModel]:
        """Define a model class named ``name``.

        ``properties`` maps property names to a type, a type alias string, or
        a mapping with ``type``/``required``/``id``/``default`` keys. A derived
        model inherits its base's properties; its own declarations win.
        """

        from juggler.model.instance import PersistedModel

        model_name = _validate_model_name(name)
        if model_name in self._definitions:
            raise ModelDefinitionError(f"model {model_name!r} is already defined")

        base_name = _resolve_base_name(base)
        merged: dict[str, PropertyDefinition] = {}
        parent_class: type[PersistedModel] = PersistedModel
        if base_name is not None:
            if base_name not in self._definitions:
                raise ModelDefinitionError(f"base model {base_name!r} is not defined")
            merged.update(self._definitions[base_name].properties)
            parent_class = self._models[base_name]

        for prop_name, spec in (properties or {}).items():
            if hasattr(PersistedModel, prop_name):
                raise ModelDefinitionError(
                    f"{model_name}.{prop_name}: name clashes with a model method or attribute"
                )
            merged[prop_name] = _parse_property(model_name, prop_name, spec)

        if not any(prop.id for prop in merged.values()):
            existing = merged.get(DEFAULT_ID_PROPERTY)
            merged[DEFAULT_ID_PROPERTY] = PropertyDefinition(
                name=DEFAULT_ID_PROPERTY,
                value_type=existing.value_type if existing is not None else object,
                id=True,
            )

        definition = ModelDefinition(name=model_name, properties=merged, base=base_name)
        model_class = type(
            model_name,
            (parent_class,),
            {
                "__module__": parent_class.__module__,
                "__qualname__": model_name,
                "model_name": model_name,
                "definition": definition,
                "builder": self,
            },
        )
        self._definitions[model_name] = definition
        self._models[model_name] = model_class
        return model_class

    def definition(self, name: str) -> ModelDefinition:
        try:
            return self._definitions[name]
        except KeyError:
            raise ModelDefinitionError(f"model {name!r} is not defined") from None

    def get_model(self, name: str) -> type[PersistedModel]:
        try:
            return self._models[name]
        except KeyError:
            raise ModelDefinitionError(f"model {name!r} is not defined") from None

    def model_names(self) -> tuple[str, ...]:
        return tuple(self._definitions)

    def _parent_of(self, name: str) -> str | None:
        definition = self._definitions.get(name)
        if definition is None:
            return None
        return definition.base


def _validate_model_name(name: object) -> str:
    if not isinstance(name, str) or not _MODEL_NAME_PATTERN.match(name):
        raise ModelDefinitionError(f"invalid model name: {name!r}")
    return name


def _resolve_base_name(base: object) -> str | None:
    if base is None:
        return None
    if isinstance(base, str):
        return base
    model_name = getattr(base, "model_name", None)
    if isinstance(model_name, str):
        return model_name
    raise ModelDefinitionError(f"base must be a model class or name, got {type(base).__name__}")


def _parse_property(model_name: str, prop_name: str, spec: object) -> PropertyDefinition:
    if not isinstance(prop_name, str) or not prop_name or prop_name.startswith("_"):
        raise ModelDefinitionError(f"{model_name}: invalid property name {prop_name!r}")

    if spec is None:
        return PropertyDefinition(name=prop_name)
    if isinstance(spec, (type, str)):
        return PropertyDefinition(
            name=prop_name, value_type=_parse_type(model_name, prop_name, spec)
        )
    if not isinstance(spec, Mapping):
        raise ModelDefinitionError(
            f"{model_name}.{prop_name}: property spec must be a type or mapping"
        )

    unknown = sorted(str(key) for key in spec if key not in _PROPERTY_KEYS)
    if unknown:
        raise ModelDefinitionError(
            f"{model_name}.{prop_name}: unknown property options {', '.join(unknown)}"
        )
    return PropertyDefinition(
        name=prop_name,
        value_type=_parse_type(model_name, prop_name, spec.get("type", object)),
        required=bool(spec.get("required", False)),
        id=bool(spec.get("id", False)),
        default=copy.deepcopy(spec.get("default")),
    )


def _parse_type(model_name: str, prop_name: str, value: object) -> type:
    if isinstance(value, type):
        return value
    if isinstance(value, str):
        alias = _TYPE_ALIASES.get(value.strip().lower())
        if alias is not None:
            return alias
    raise ModelDefinitionError(f"{model_name}.{prop_name}: unsupported type {value!r}")


__all__ = ["ModelBuilder", "ModelDefinition", "PropertyDefinition"]
