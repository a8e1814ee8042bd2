from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from conclave_core.logging import get_logger
from conclave_core.types import LogEntry

if TYPE_CHECKING:
    from conclave_core.types import Memory, State

    from conclave_runtime.plugin import Evaluator, HandlerCallback
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("evaluators")


class EvaluatorRunner:
    """Validates and runs evaluators after a response cycle."""

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime
        self._evaluators: list[Evaluator] = []

    def register(self, evaluator: Evaluator) -> None:
        self._evaluators.append(evaluator)

    @property
    def evaluators(self) -> list[Evaluator]:
        return list(self._evaluators)

    async def _select(
        self,
        evaluator: Evaluator,
        message: Memory,
        state: State | None,
        did_respond: bool,
    ) -> Evaluator | None:
        if evaluator.handler is None:
            return None
        if not did_respond and not evaluator.always_run:
            return None
        if await evaluator.validate(self._runtime, message, state):
            return evaluator
        return None

    async def _run(
        self,
        evaluator: Evaluator,
        message: Memory,
        state: State,
        callback: HandlerCallback | None,
        responses: list[Memory] | None,
    ) -> None:
        await evaluator.handler(  # type: ignore[misc]
            self._runtime, message, state, {}, callback, responses
        )
        await self._runtime.get_database_adapter().log(LogEntry(
            entity_id=message.entity_id,
            room_id=message.room_id,
            type="evaluator",
            body={
                "evaluator": evaluator.name,
                "messageId": message.id,
                "message": message.content.text,
                "state": state,
            },
        ))

    async def evaluate(
        self,
        message: Memory,
        state: State | None = None,
        did_respond: bool = False,
        callback: HandlerCallback | None = None,
        responses: list[Memory] | None = None,
    ) -> list[Evaluator]:
        """Run every evaluator whose gate and validator pass.

        Returns the selected evaluators, not their handler results.
        """
        candidates = await asyncio.gather(*(
            self._select(e, message, state, did_respond)
            for e in self._evaluators
        ))
        selected = [e for e in candidates if e is not None]

        if not selected:
            return []

        state = await self._runtime.compose_state(
            message,
            filter_list=self._runtime.settings.evaluator_state_providers,
        )

        await asyncio.gather(*(
            self._run(e, message, state, callback, responses)
            for e in selected
        ))
        return selected
