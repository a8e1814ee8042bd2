from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from conclave_core.logging import get_logger

if TYPE_CHECKING:
    from conclave_runtime.plugin import EventHandler

logger = get_logger("events")


class EventBus:
    """Named, multi-subscriber notification channel.

    ``emit`` never awaits: handlers are called in registration order
    and any coroutine they return is scheduled as a background task.
    Each handler runs under its own error capture, so one failing
    subscriber cannot suppress the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def on(self, event_name: str, handler: EventHandler) -> None:
        self._handlers[event_name].append(handler)

    def handlers(self, event_name: str) -> list[EventHandler]:
        return list(self._handlers.get(event_name, []))

    def emit(
        self, event_names: str | list[str], payload: Any
    ) -> list[BaseException]:
        """Deliver *payload* to every handler of each named event.

        Returns the exceptions raised synchronously by handlers.
        """
        names = [event_names] if isinstance(event_names, str) else event_names
        errors: list[BaseException] = []

        for name in names:
            for handler in list(self._handlers.get(name, [])):
                try:
                    result = handler(payload)
                    if inspect.isawaitable(result):
                        self._schedule(name, result)
                except Exception as exc:
                    logger.exception("Event handler for %s failed", name)
                    errors.append(exc)

        return errors

    def _schedule(self, name: str, awaitable: Any) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError(
                f"Async handler for {name} needs a running event loop"
            ) from None
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(t: asyncio.Task[Any]) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    "Async event handler for %s failed", name, exc_info=exc
                )

        task.add_done_callback(_done)

    async def drain(self) -> None:
        """Wait for every scheduled handler coroutine to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
