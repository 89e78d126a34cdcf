"""
juggler: observer hooks around asynchronous model persistence.

Models are defined on a ``DataSource``; observers registered with
``Model.observe(operation, observer)`` run in sequence, base model first,
before and after each storage call made by the data-access wrapper.

Importing the package has no side effects (no config loading, no logging
setup).
"""

from juggler.constants import (
    OP_AFTER_DELETE,
    OP_AFTER_SAVE,
    OP_BEFORE_DELETE,
    OP_BEFORE_SAVE,
    OP_QUERY,
)
from juggler.dao import DataAccessObject
from juggler.datasource import DataSource
from juggler.errors import (
    BulkOperationError,
    ConnectorError,
    DuplicateIdError,
    JugglerError,
    ModelDefinitionError,
    ModelNotAttachedError,
    ObserverFailure,
    ObserverRegistrationError,
    ValidationError,
)
from juggler.hooks import DeleteContext, HookContext, Query, QueryContext, SaveContext
from juggler.model import ModelBuilder, PersistedModel

__version__ = "0.1.0"

__all__ = [
    "BulkOperationError",
    "ConnectorError",
    "DataAccessObject",
    "DataSource",
    "DeleteContext",
    "DuplicateIdError",
    "HookContext",
    "JugglerError",
    "ModelBuilder",
    "ModelDefinitionError",
    "ModelNotAttachedError",
    "OP_AFTER_DELETE",
    "OP_AFTER_SAVE",
    "OP_BEFORE_DELETE",
    "OP_BEFORE_SAVE",
    "OP_QUERY",
    "ObserverFailure",
    "ObserverRegistrationError",
    "PersistedModel",
    "Query",
    "QueryContext",
    "SaveContext",
    "ValidationError",
    "__version__",
]
