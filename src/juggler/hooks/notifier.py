"""Sequential asynchronous observer chains.

A notification resolves the observers for ``(model, operation)`` and runs them
one at a time against a single shared context object. Observer *i+1* starts
only after observer *i* has completed; the first failure stops the chain and
is raised to the caller unchanged.

Two observer shapes are accepted:

- ``observer(ctx)`` which may be a coroutine function; returning means success
  and raising means failure.
- ``observer(ctx, proceed)`` (two required positional parameters) which must
  call ``proceed()`` or ``proceed(error)`` exactly once, possibly from a later
  loop callback.

No timeout is applied. An observer that never calls ``proceed`` stalls its
chain indefinitely; cancellation is left to the task that awaits ``notify``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, TypeVar

from juggler.errors import ObserverFailure

if TYPE_CHECKING:
    from juggler.hooks.registry import Observer, ObserverRegistry
    from juggler.observability.instrumentation import NotifyTrace

logger = logging.getLogger(__name__)

ContextT = TypeVar("ContextT")


class Notifier:
    """Runs resolved observer chains for one ``ObserverRegistry``."""

    def __init__(self, registry: ObserverRegistry, *, trace: NotifyTrace | None = None) -> None:
        self._registry = registry
        self._trace = trace

    @property
    def registry(self) -> ObserverRegistry:
        return self._registry

    @property
    def trace(self) -> NotifyTrace | None:
        return self._trace

    async def notify(self, model_name: str, operation: str, context: ContextT) -> ContextT:
        """Run every observer for ``operation`` on ``model_name`` against ``context``.

        Returns the same (possibly mutated) context object. Raises the first
        observer error; observers after the failing one never run.
        """

        observers = self._registry.resolve(model_name, operation)
        if self._trace is not None:
            self._trace.record(model_name, operation, len(observers))

        logger.debug(
            "notify %s on %s (%d observers)",
            operation,
            model_name,
            len(observers),
            extra={"model": model_name, "operation": operation},
        )

        # Completion is never synchronous, observers or not.
        await asyncio.sleep(0)

        for index, observer in enumerate(observers):
            try:
                await _run_observer(observer, context)
            except Exception as exc:
                logger.debug(
                    "observer %d/%d for %s on %s failed: %s",
                    index + 1,
                    len(observers),
                    operation,
                    model_name,
                    exc,
                    extra={"model": model_name, "operation": operation},
                )
                raise
        return context


async def _run_observer(observer: Observer, context: object) -> None:
    if _takes_continuation(observer):
        await _run_continuation_observer(observer, context)
        return

    result = observer(context)
    if inspect.isawaitable(result):
        await result


async def _run_continuation_observer(observer: Observer, context: object) -> None:
    loop = asyncio.get_running_loop()
    completion: asyncio.Future[None] = loop.create_future()
    name = _callback_name(observer)

    def proceed(error: object = None) -> None:
        if completion.done():
            logger.warning("observer %s called proceed more than once; ignoring", name)
            return
        if error is None:
            completion.set_result(None)
        elif isinstance(error, BaseException):
            completion.set_exception(error)
        else:
            completion.set_exception(ObserverFailure(error))

    try:
        result = observer(context, proceed)
        if inspect.isawaitable(result):
            await result
    except Exception:
        if completion.done():
            completion.exception()
        raise
    await completion


def _takes_continuation(observer: Observer) -> bool:
    try:
        signature = inspect.signature(observer)
    except (TypeError, ValueError):
        return False

    # Only required positional parameters count; defaults and *args do not.
    required = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return False
        if (
            parameter.kind
            in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
            and parameter.default is inspect.Parameter.empty
        ):
            required += 1
    return required >= 2


def _callback_name(callback: object) -> str:
    qualname = getattr(callback, "__qualname__", None)
    if isinstance(qualname, str):
        return qualname
    return repr(callback)


__all__ = ["Notifier"]
