"""Observer registry, notifier, and operation contexts."""

from juggler.hooks.context import (
    DeleteContext,
    HookContext,
    Query,
    QueryContext,
    SaveContext,
    snapshot_context,
)
from juggler.hooks.notifier import Notifier
from juggler.hooks.registry import Observer, ObserverRegistry

__all__ = [
    "DeleteContext",
    "HookContext",
    "Notifier",
    "Observer",
    "ObserverRegistry",
    "Query",
    "QueryContext",
    "SaveContext",
    "snapshot_context",
]
