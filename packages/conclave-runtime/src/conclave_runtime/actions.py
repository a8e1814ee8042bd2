"""Action resolution and dispatch."""
from __future__ import annotations

from typing import TYPE_CHECKING

from conclave_core.logging import get_logger
from conclave_core.types import LogEntry

if TYPE_CHECKING:
    from conclave_core.types import Memory, State

    from conclave_runtime.plugin import Action, HandlerCallback
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("actions")


def normalize_action_name(name: str) -> str:
    """Lower-case *name* and strip every underscore."""
    return name.lower().replace("_", "")


def _contains_either_way(a: str, b: str) -> bool:
    return a in b or b in a


def resolve_action(requested: str, actions: list[Action]) -> Action | None:
    """Find the action a response asked for.

    Two passes over the registered actions, both on normalized names
    and both accepting substring containment in either direction:

    1. the action's own name, in registration order;
    2. the action's similes, in registration order then simile order.

    A name that normalizes to the empty string never resolves.
    """
    wanted = normalize_action_name(requested)
    if not wanted:
        return None

    for action in actions:
        if _contains_either_way(wanted, normalize_action_name(action.name)):
            return action

    for action in actions:
        for simile in action.similes:
            normalized = normalize_action_name(simile)
            if normalized and _contains_either_way(wanted, normalized):
                return action

    return None


class ActionDispatcher:
    """Executes the actions named in candidate responses."""

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime
        self._actions: list[Action] = []

    def register(self, action: Action) -> None:
        logger.info(
            "%s(%s) - Registering action: %s",
            self._runtime.character.name,
            self._runtime.agent_id,
            action.name,
        )
        self._actions.append(action)

    @property
    def actions(self) -> list[Action]:
        return list(self._actions)

    async def process_actions(
        self,
        message: Memory,
        responses: list[Memory],
        state: State | None = None,
        callback: HandlerCallback | None = None,
    ) -> None:
        """Run every action named in *responses*, in order.

        State is recomposed before each action. Unknown or handler-less
        actions are logged and skipped; a handler exception aborts the
        whole batch and propagates to the caller.
        """
        refresh = self._runtime.settings.action_state_providers

        for response in responses:
            requested = response.content.actions
            if not requested:
                logger.warning("No action found in the response content.")
                continue

            logger.debug(
                "Found actions: %s",
                [normalize_action_name(a.name) for a in self._actions],
            )

            for name in requested:
                state = await self._runtime.compose_state(message, refresh)

                logger.info("Calling action: %s", name)
                action = resolve_action(name, self._actions)
                if action is None:
                    logger.error(
                        "No action found for %r in response %s",
                        name,
                        response.id,
                    )
                    continue

                if action.handler is None:
                    logger.error("Action %s has no handler.", action.name)
                    continue

                try:
                    logger.info("Executing handler for action: %s", action.name)
                    await action.handler(
                        self._runtime, message, state, {}, callback, responses
                    )
                    logger.info("Action %s executed successfully.", action.name)

                    await self._runtime.get_database_adapter().log(LogEntry(
                        entity_id=message.entity_id,
                        room_id=message.room_id,
                        type="action",
                        body={
                            "action": action.name,
                            "message": message.content.text,
                            "messageId": message.id,
                            "state": state,
                            "responses": responses,
                        },
                    ))
                except Exception:
                    logger.exception("Action %s failed", action.name)
                    raise
