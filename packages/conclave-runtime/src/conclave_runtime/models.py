from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Any, Protocol

from conclave_core.errors import ModelNotFoundError
from conclave_core.logging import get_logger
from conclave_core.types import LogEntry

if TYPE_CHECKING:
    from conclave_runtime.plugin import ModelHandler
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("models")


class ModelSelectionStrategy(Protocol):
    """Chooses one handler out of those registered for a model type."""

    def select(
        self, model_type: str, handlers: list[ModelHandler]
    ) -> ModelHandler | None: ...


class FirstRegistered:
    """The first registrant for a model type wins permanently."""

    def select(
        self, model_type: str, handlers: list[ModelHandler]
    ) -> ModelHandler | None:
        return handlers[0] if handlers else None


class RoundRobin:
    """Rotate across every handler registered for a model type."""

    def __init__(self) -> None:
        self._counters: dict[str, itertools.count[int]] = {}

    def select(
        self, model_type: str, handlers: list[ModelHandler]
    ) -> ModelHandler | None:
        if not handlers:
            return None
        counter = self._counters.setdefault(model_type, itertools.count())
        return handlers[next(counter) % len(handlers)]


def _summarize_response(response: Any) -> Any:
    # Embedding vectors would bloat the audit log.
    if isinstance(response, list) and all(
        isinstance(x, int | float) and not isinstance(x, bool)
        for x in response
    ):
        return "[array]"
    return response


class ModelRegistry:
    """Maps a model-type key to an ordered list of handlers."""

    def __init__(
        self,
        runtime: AgentRuntime,
        strategy: ModelSelectionStrategy | None = None,
    ) -> None:
        self._runtime = runtime
        self._strategy = strategy or FirstRegistered()
        self._handlers: dict[str, list[ModelHandler]] = {}

    @property
    def strategy(self) -> ModelSelectionStrategy:
        return self._strategy

    def register(self, model_type: str, handler: ModelHandler) -> None:
        key = str(model_type)
        self._handlers.setdefault(key, []).append(handler)
        logger.debug(
            "Model handler registered for %s (%d total)",
            key,
            len(self._handlers[key]),
        )

    def resolve(self, model_type: str) -> ModelHandler | None:
        key = str(model_type)
        return self._strategy.select(key, self._handlers.get(key, []))

    def has(self, model_type: str) -> bool:
        return bool(self._handlers.get(str(model_type)))

    def model_types(self) -> list[str]:
        return [k for k, v in self._handlers.items() if v]

    async def invoke(self, model_type: str, params: Any) -> Any:
        """Call the selected handler and audit the call.

        Raises ``ModelNotFoundError`` if nothing is registered for
        *model_type*. Handler exceptions propagate unchanged.
        """
        key = str(model_type)
        handler = self.resolve(key)
        if handler is None:
            raise ModelNotFoundError(key)

        response = await handler(self._runtime, params)

        agent_id = self._runtime.agent_id
        await self._runtime.get_database_adapter().log(LogEntry(
            entity_id=agent_id,
            room_id=agent_id,
            type=f"useModel:{key}",
            body={
                "modelType": key,
                "params": list(params) if isinstance(params, dict) else [],
                "response": _summarize_response(response),
            },
        ))
        return response
