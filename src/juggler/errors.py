"""Exception taxonomy for model definition, validation, storage, and bulk operations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field


class JugglerError(Exception):
    """Base class for errors raised by juggler itself."""


class ModelDefinitionError(JugglerError):
    """Raised when a model cannot be defined, extended, or looked up."""


class ModelNotAttachedError(ModelDefinitionError):
    """Raised when a data-access operation runs on a model without a data source."""


class ObserverRegistrationError(JugglerError, ValueError):
    """Raised when ``observe`` receives an unusable operation name or callback."""


class ObserverFailure(JugglerError):
    """Wraps a non-exception failure value passed to an observer's ``proceed``."""

    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"observer failed: {reason!r}")


@dataclass(frozen=True, slots=True)
class ValidationDetails:
    """Per-field failure codes and messages produced by the validator."""

    model_name: str
    codes: dict[str, list[str]] = field(default_factory=dict)
    messages: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "model": self.model_name,
            "codes": {key: list(value) for key, value in self.codes.items()},
            "messages": {key: list(value) for key, value in self.messages.items()},
        }


class ValidationError(JugglerError):
    """Raised when a model instance or update payload fails validation."""

    def __init__(self, details: ValidationDetails) -> None:
        self.details = details
        parts = [
            f"`{name}` {message}"
            for name, messages in details.messages.items()
            for message in messages
        ]
        summary = "; ".join(parts) if parts else "unknown validation failure"
        super().__init__(f"The `{details.model_name}` instance is not valid. Details: {summary}.")

    @property
    def codes(self) -> Mapping[str, list[str]]:
        return self.details.codes


class ConnectorError(JugglerError):
    """Raised by storage connectors for backend-level failures."""


class DuplicateIdError(ConnectorError):
    """Raised when a record is created with an id that already exists."""

    def __init__(self, model_name: str, record_id: object) -> None:
        self.model_name = model_name
        self.record_id = record_id
        super().__init__(f"duplicate id {record_id!r} for model {model_name!r}")


class BulkOperationError(JugglerError):
    """Raised when some items of an array-form operation failed.

    ``errors`` and ``results`` are positionally aligned with the input list;
    successful positions hold ``None`` in ``errors``.
    """

    def __init__(self, errors: Sequence[BaseException | None], results: Sequence[object]) -> None:
        self.errors: list[BaseException | None] = list(errors)
        self.results: list[object] = list(results)
        failed = sum(1 for item in self.errors if item is not None)
        super().__init__(f"{failed} of {len(self.errors)} items failed")

    def __len__(self) -> int:
        return len(self.errors)

    def __getitem__(self, index: int) -> BaseException | None:
        return self.errors[index]


__all__ = [
    "BulkOperationError",
    "ConnectorError",
    "DuplicateIdError",
    "JugglerError",
    "ModelDefinitionError",
    "ModelNotAttachedError",
    "ObserverFailure",
    "ObserverRegistrationError",
    "ValidationDetails",
    "ValidationError",
]
