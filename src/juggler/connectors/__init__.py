"""Storage connectors and the connector contract."""

from juggler.connectors.base import (
    AtomicUpsertConnector,
    Connector,
    Record,
    supports_atomic_upsert,
)
from juggler.connectors.memory import MemoryConnector

__all__ = [
    "AtomicUpsertConnector",
    "Connector",
    "MemoryConnector",
    "Record",
    "supports_atomic_upsert",
]
