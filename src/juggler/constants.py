"""Stable constants shared across the juggler data-access layer."""

from __future__ import annotations

from typing import Final

# Operation names understood by the DAO wrapper.
OP_QUERY: Final[str] = "query"
OP_BEFORE_SAVE: Final[str] = "before save"
OP_AFTER_SAVE: Final[str] = "after save"
OP_BEFORE_DELETE: Final[str] = "before delete"
OP_AFTER_DELETE: Final[str] = "after delete"

BUILTIN_OPERATIONS: Final[tuple[str, ...]] = (
    OP_QUERY,
    OP_BEFORE_SAVE,
    OP_AFTER_SAVE,
    OP_BEFORE_DELETE,
    OP_AFTER_DELETE,
)

# Model defaults.
DEFAULT_ID_PROPERTY: Final[str] = "id"
DEFAULT_CONNECTOR: Final[str] = "memory"
SUPPORTED_CONNECTORS: Final[tuple[str, ...]] = ("memory",)

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Validation failure codes.
CODE_PRESENCE: Final[str] = "presence"
CODE_TYPE: Final[str] = "type"

__all__ = [
    "BUILTIN_OPERATIONS",
    "CODE_PRESENCE",
    "CODE_TYPE",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONNECTOR",
    "DEFAULT_ID_PROPERTY",
    "OP_AFTER_DELETE",
    "OP_AFTER_SAVE",
    "OP_BEFORE_DELETE",
    "OP_BEFORE_SAVE",
    "OP_QUERY",
    "SUPPORTED_CONNECTORS",
]
