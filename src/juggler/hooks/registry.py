"""Per-model observer storage with base-to-derived resolution."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

from juggler.errors import ModelDefinitionError, ObserverRegistrationError

Observer = Callable[..., object]
ParentLookup = Callable[[str], str | None]

_MAX_LINEAGE_DEPTH: Final[int] = 256


@dataclass(frozen=True, slots=True)
class _Registration:
    operation: str
    observer: Observer


class ObserverRegistry:
    """Ordered observer lists keyed by model name, then operation name.

    Models are addressed by name; ``parent_of`` maps a model name to its base
    model name (or ``None``). Registering on a derived model only ever touches
    that model's own lists, so base models never see derived observers.

    Registration is expected to happen at model-definition time. The registry
    takes no locks; ``resolve`` returns a tuple snapshot so a chain that is
    already running is unaffected by later registrations.
    """

    def __init__(self, parent_of: ParentLookup) -> None:
        if not callable(parent_of):
            raise ValueError("parent_of must be callable")
        self._parent_of = parent_of
        self._observers: dict[str, dict[str, list[_Registration]]] = {}

    def register(self, model_name: str, operation: str, observer: Observer) -> None:
        """Append ``observer`` to ``model_name``'s list for ``operation``."""

        operation_name = _normalize_operation(operation)
        if not callable(observer):
            raise ObserverRegistrationError(
                f"observer for {operation_name!r} must be callable, got {type(observer).__name__}"
            )
        per_model = self._observers.setdefault(model_name, {})
        per_model.setdefault(operation_name, []).append(
            _Registration(operation=operation_name, observer=observer)
        )

    def own(self, model_name: str, operation: str) -> tuple[Observer, ...]:
        """Observers registered directly on ``model_name`` (no inheritance)."""

        registrations = self._observers.get(model_name, {}).get(operation, ())
        return tuple(item.observer for item in registrations)

    def resolve(self, model_name: str, operation: str) -> tuple[Observer, ...]:
        """Observers to run for ``model_name``: most-base ancestor first."""

        resolved: list[Observer] = []
        for name in self.lineage(model_name):
            resolved.extend(self.own(name, operation))
        return tuple(resolved)

    def lineage(self, model_name: str) -> tuple[str, ...]:
        """Model names from the most-base ancestor down to ``model_name``."""

        chain: list[str] = []
        seen: set[str] = set()
        current: str | None = model_name
        while current is not None:
            if current in seen or len(chain) >= _MAX_LINEAGE_DEPTH:
                raise ModelDefinitionError(f"inheritance cycle detected at model {current!r}")
            seen.add(current)
            chain.append(current)
            current = self._parent_of(current)
        chain.reverse()
        return tuple(chain)

    def operations(self, model_name: str) -> tuple[str, ...]:
        """Operation names with at least one own observer, in first-registration order."""

        return tuple(self._observers.get(model_name, {}))

    def count(self, model_name: str, operation: str | None = None) -> int:
        per_model = self._observers.get(model_name, {})
        if operation is not None:
            return len(per_model.get(operation, ()))
        return sum(len(items) for items in per_model.values())


def _normalize_operation(operation: object) -> str:
    if not isinstance(operation, str):
        raise ObserverRegistrationError(
            f"operation name must be a string, got {type(operation).__name__}"
        )
    if not operation.strip():
        raise ObserverRegistrationError("operation name must not be blank")
    return operation


__all__ = ["Observer", "ObserverRegistry", "ParentLookup"]
