"""Public observability primitives: structured logging and notification tracing."""

from juggler.observability.instrumentation import (
    DispatchError,
    NotificationRecord,
    NotifyTrace,
    TraceListener,
)
from juggler.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    correlation_scope,
    get_active_logging_handle,
    get_correlation_context,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "DispatchError",
    "LoggingConfig",
    "LoggingHandle",
    "NotificationRecord",
    "NotifyTrace",
    "TraceListener",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
