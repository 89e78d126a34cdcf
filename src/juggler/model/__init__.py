"""Model definitions, persisted model classes, and validation."""

from juggler.model.definition import ModelBuilder, ModelDefinition, PropertyDefinition
from juggler.model.instance import PersistedModel
from juggler.model.validation import assert_valid, validate

__all__ = [
    "ModelBuilder",
    "ModelDefinition",
    "PersistedModel",
    "PropertyDefinition",
    "assert_valid",
    "validate",
]
