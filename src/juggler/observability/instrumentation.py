"""Notification tracing: call-order observability for observer chains."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final

_DEFAULT_BUFFER_SIZE: Final[int] = 512
_DEFAULT_ERROR_BUFFER: Final[int] = 128


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    """One notification as seen by the notifier, before its chain runs."""

    sequence: int
    model_name: str
    operation: str
    observer_count: int


@dataclass(frozen=True, slots=True)
class DispatchError:
    """Trace listener failure captured without interrupting the notifier."""

    sequence: int
    target: str
    error_type: str
    message: str


TraceListener = Callable[[NotificationRecord], object]


class NotifyTrace:
    """Ring buffer of notifications plus synchronous listeners.

    Listener exceptions are recorded as ``DispatchError`` and never reach the
    operation that triggered the notification.
    """

    def __init__(self, *, buffer_size: int = _DEFAULT_BUFFER_SIZE, enabled: bool = True) -> None:
        if not isinstance(buffer_size, int):
            raise ValueError(f"buffer_size must be an integer, got {type(buffer_size).__name__}")
        if buffer_size <= 0:
            raise ValueError("buffer_size must be > 0")

        self.enabled = enabled
        self._buffer = deque[NotificationRecord](maxlen=buffer_size)
        self._listeners: dict[int, TraceListener] = {}
        self._dispatch_errors = deque[DispatchError](maxlen=_DEFAULT_ERROR_BUFFER)
        self._next_token = 1
        self._next_sequence = 1
        self._lock = threading.RLock()

    def subscribe(self, listener: TraceListener) -> int:
        """Register a listener called for every recorded notification."""

        if not callable(listener):
            raise ValueError("listener must be callable")
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
        return token

    def unsubscribe(self, token: int) -> bool:
        with self._lock:
            return self._listeners.pop(token, None) is not None

    def record(self, model_name: str, operation: str, observer_count: int) -> NotificationRecord:
        with self._lock:
            record = NotificationRecord(
                sequence=self._next_sequence,
                model_name=model_name,
                operation=operation,
                observer_count=observer_count,
            )
            self._next_sequence += 1
            if self.enabled:
                self._buffer.append(record)
            listeners = tuple(self._listeners.values())

        for listener in listeners:
            try:
                listener(record)
            except Exception as exc:  # noqa: BLE001
                with self._lock:
                    self._dispatch_errors.append(
                        DispatchError(
                            sequence=record.sequence,
                            target=_callback_name(listener),
                            error_type=type(exc).__name__,
                            message=str(exc),
                        )
                    )
        return record

    def history(
        self,
        *,
        model_name: str | None = None,
        operation: str | None = None,
        limit: int | None = None,
    ) -> tuple[NotificationRecord, ...]:
        """Buffered notifications in the order they were issued."""

        with self._lock:
            records = tuple(self._buffer)

        filtered = [
            record
            for record in records
            if (model_name is None or record.model_name == model_name)
            and (operation is None or record.operation == operation)
        ]
        if limit is not None:
            if limit <= 0:
                return ()
            filtered = filtered[-limit:]
        return tuple(filtered)

    def operations(self, *, model_name: str | None = None) -> tuple[str, ...]:
        return tuple(record.operation for record in self.history(model_name=model_name))

    def dispatch_errors(self) -> tuple[DispatchError, ...]:
        with self._lock:
            return tuple(self._dispatch_errors)

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()
            self._dispatch_errors.clear()


def _callback_name(callback: object) -> str:
    module = getattr(callback, "__module__", None)
    qualname = getattr(callback, "__qualname__", None)
    if isinstance(module, str) and isinstance(qualname, str):
        return f"{module}.{qualname}"
    return repr(callback)


__all__ = ["DispatchError", "NotificationRecord", "NotifyTrace", "TraceListener"]
