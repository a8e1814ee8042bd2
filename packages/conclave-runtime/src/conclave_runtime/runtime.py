from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Any, NoReturn

from conclave_core.config import KnowledgeConfig, RuntimeSettings
from conclave_core.errors import EntityNotFoundError, SetupError
from conclave_core.ids import create_unique_uuid, string_to_uuid
from conclave_core.logging import get_logger
from conclave_core.types import (
    ChannelType,
    Character,
    Entity,
    ModelType,
    Room,
    State,
    World,
)

from conclave_runtime.actions import ActionDispatcher
from conclave_runtime.evaluators import EvaluatorRunner
from conclave_runtime.events import EventBus
from conclave_runtime.knowledge import KnowledgePipeline
from conclave_runtime.models import ModelRegistry
from conclave_runtime.plugins import PluginInstaller, load_plugins
from conclave_runtime.services import ServiceRegistry
from conclave_runtime.state import StateComposer
from conclave_runtime.tasks import TaskWorkerRegistry

if TYPE_CHECKING:
    from conclave_core.types import KnowledgeItem, Memory

    from conclave_runtime.knowledge import KnowledgeOptions
    from conclave_runtime.models import ModelSelectionStrategy
    from conclave_runtime.plugin import (
        Action,
        EventHandler,
        Evaluator,
        HandlerCallback,
        ModelHandler,
        Plugin,
        Provider,
        Route,
        Service,
        TaskWorker,
    )
    from conclave_runtime.protocols.splitter import TextSplitter
    from conclave_runtime.protocols.storage import DatabaseAdapter

logger = get_logger("runtime")


class AgentRuntime:
    """One agent's orchestration engine.

    Owns the model, service and task registries, the event bus, the
    registered actions, evaluators and providers, and the per-message
    state cache. Nothing is shared between runtime instances.

    Usage:
        runtime = AgentRuntime(character=character, adapter=adapter,
                               plugins=[my_plugin])
        await runtime.initialize()
        state = await runtime.compose_state(message)
        await runtime.process_actions(message, responses, state)
        await runtime.evaluate(message, state, did_respond=True)
    """

    def __init__(
        self,
        character: Character,
        *,
        agent_id: str | None = None,
        adapter: DatabaseAdapter | None = None,
        plugins: list[Plugin] | None = None,
        conversation_length: int = 32,
        settings: RuntimeSettings | None = None,
        knowledge: KnowledgeConfig | None = None,
        splitter: TextSplitter | None = None,
        model_strategy: ModelSelectionStrategy | None = None,
    ) -> None:
        self.character = character
        self.agent_id: str = (
            character.id or agent_id or string_to_uuid(character.name)
        )
        self.settings = settings or RuntimeSettings()
        self.routes: list[Route] = []

        self._adapter: DatabaseAdapter | None = None
        self._conversation_length = conversation_length
        self._initial_plugins: list[Plugin] = list(plugins or [])

        self.models = ModelRegistry(self, model_strategy)
        self.services = ServiceRegistry(self)
        self.task_workers = TaskWorkerRegistry()
        self.events = EventBus()
        self.installer = PluginInstaller(self)
        self.state_composer = StateComposer(self)
        self.dispatcher = ActionDispatcher(self)
        self.evaluator_runner = EvaluatorRunner(self)
        self.knowledge = KnowledgePipeline(self, splitter, knowledge)

        if adapter is not None:
            self.register_database_adapter(adapter)

        logger.info("Agent ID: %s", self.agent_id)

    # ── Accessors ───────────────────────────────────────────────────

    @property
    def actions(self) -> list[Action]:
        return self.dispatcher.actions

    @property
    def evaluators(self) -> list[Evaluator]:
        return self.evaluator_runner.evaluators

    @property
    def providers(self) -> list[Provider]:
        return self.state_composer.providers

    @property
    def plugins(self) -> list[Plugin]:
        return self.installer.plugins

    def get_conversation_length(self) -> int:
        return self._conversation_length

    # ── Storage adapter ─────────────────────────────────────────────

    def register_database_adapter(self, adapter: DatabaseAdapter) -> None:
        """Bind *adapter* unless one is bound already (first wins)."""
        if self._adapter is adapter:
            return
        if self._adapter is not None:
            logger.warning(
                "Database adapter already registered. Additional adapters will be ignored."
            )
            return
        self._adapter = adapter

    def get_database_adapter(self) -> DatabaseAdapter:
        if self._adapter is None:
            raise SetupError(
                f"No database adapter registered for agent {self.agent_id}"
            )
        return self._adapter

    @property
    def has_database_adapter(self) -> bool:
        return self._adapter is not None

    # ── Lifecycle ───────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Bootstrap the agent: storage, plugins, self room, knowledge.

        Raises ``SetupError`` on any failure; the runtime is then not
        operational.
        """
        name = self.character.name

        plugins = list(self._initial_plugins)
        if self.character.plugins:
            plugins = load_plugins(self.character.plugins) + plugins

        # A plugin may bring the adapter, so bind those before touching storage.
        if self._adapter is None:
            for plugin in plugins:
                if plugin.adapter is not None:
                    self.register_database_adapter(plugin.adapter)
                    break

        try:
            adapter = self.get_database_adapter()
            await adapter.init()
            await adapter.ensure_agent_exists(self.character)

            if await adapter.get_entity_by_id(self.agent_id) is None:
                created = await adapter.create_entity(Entity(
                    id=self.agent_id,
                    names=[name] if name else [],
                    metadata={},
                    agent_id=self.agent_id,
                ))
                if not created:
                    raise SetupError(
                        f"Failed to create entity for agent {self.agent_id}"
                    )
                logger.info("Agent entity created successfully for %s", name)
        except Exception as exc:
            logger.error("Failed to create agent entity: %s", exc)
            self._reraise_setup(exc)

        seen: set[str] = set()
        installs = []
        for plugin in plugins:
            if plugin.name in seen:
                continue
            seen.add(plugin.name)
            installs.append(self.installer.install(plugin))

        try:
            await asyncio.gather(
                self.ensure_room_exists(Room(
                    id=self.agent_id,
                    name=name,
                    source="self",
                    type=ChannelType.SELF,
                )),
                *installs,
            )
        except Exception as exc:
            logger.error("Failed to initialize: %s", exc)
            self._reraise_setup(exc)

        try:
            participants = await adapter.get_participants_for_room(self.agent_id)
            if self.agent_id not in participants:
                if not await adapter.add_participant(self.agent_id, self.agent_id):
                    raise SetupError(
                        f"Failed to add agent {self.agent_id} as participant to its own room"
                    )
                logger.info("Agent %s linked to its own room successfully", name)
        except Exception as exc:
            logger.error("Failed to add agent as participant: %s", exc)
            self._reraise_setup(exc)

        try:
            if self.character.knowledge:
                await self.process_character_knowledge(
                    [k for k in self.character.knowledge if isinstance(k, str)]
                )

            if self.models.has(ModelType.TEXT_EMBEDDING):
                await self.ensure_embedding_dimension()
            else:
                logger.warning(
                    "[%s] No TEXT_EMBEDDING model registered. "
                    "Skipping embedding dimension setup.",
                    name,
                )
        except Exception as exc:
            self._reraise_setup(exc)

    @staticmethod
    def _reraise_setup(exc: Exception) -> NoReturn:
        if isinstance(exc, SetupError):
            raise exc
        raise SetupError(str(exc) or type(exc).__name__) from exc

    async def stop(self) -> None:
        """Stop services, flush event handlers and close storage."""
        logger.debug("Stopping runtime for %s", self.character.name)
        await self.services.stop_all()
        await self.events.drain()
        if self._adapter is not None:
            await self._adapter.close()

    # ── Settings ────────────────────────────────────────────────────

    def get_setting(self, key: str) -> Any:
        """Resolve *key* from secrets, settings, nested secrets, then env.

        ``"true"``/``"false"`` become booleans; other falsy values become
        ``None``.
        """
        character = self.character
        nested = character.settings.get("secrets")
        value = (
            character.secrets.get(key)
            or character.settings.get(key)
            or (nested.get(key) if isinstance(nested, dict) else None)
            or os.environ.get(key)
        )
        if value == "true":
            return True
        if value == "false":
            return False
        return value or None

    def set_setting(self, key: str, value: Any, secret: bool = False) -> None:
        if secret:
            self.character.secrets[key] = value
        else:
            self.character.settings[key] = value

    # ── Registration ────────────────────────────────────────────────

    async def register_plugin(self, plugin: Plugin) -> None:
        await self.installer.install(plugin)

    def register_action(self, action: Action) -> None:
        self.dispatcher.register(action)

    def register_evaluator(self, evaluator: Evaluator) -> None:
        self.evaluator_runner.register(evaluator)

    def register_provider(self, provider: Provider) -> None:
        self.state_composer.register(provider)

    def register_model(self, model_type: str, handler: ModelHandler) -> None:
        self.models.register(model_type, handler)

    def get_model(self, model_type: str) -> ModelHandler | None:
        return self.models.resolve(model_type)

    async def use_model(self, model_type: str, params: Any) -> Any:
        return await self.models.invoke(model_type, params)

    async def register_service(self, service_cls: type[Service]) -> None:
        await self.services.register(service_cls)

    def get_service(self, service_type: str) -> Service | None:
        return self.services.get(service_type)

    def register_task_worker(self, worker: TaskWorker) -> None:
        self.task_workers.register(worker)

    def get_task_worker(self, name: str) -> TaskWorker | None:
        return self.task_workers.get(name)

    def register_event(self, event_name: str, handler: EventHandler) -> None:
        self.events.on(event_name, handler)

    def emit_event(
        self, event_names: str | list[str], payload: Any
    ) -> list[BaseException]:
        return self.events.emit(event_names, payload)

    # ── Turn processing ─────────────────────────────────────────────

    async def compose_state(
        self,
        message: Memory,
        filter_list: list[str] | None = None,
        include_list: list[str] | None = None,
    ) -> State:
        return await self.state_composer.compose_state(
            message, filter_list, include_list
        )

    async def process_actions(
        self,
        message: Memory,
        responses: list[Memory],
        state: State | None = None,
        callback: HandlerCallback | None = None,
    ) -> None:
        await self.dispatcher.process_actions(message, responses, state, callback)

    async def evaluate(
        self,
        message: Memory,
        state: State | None = None,
        did_respond: bool = False,
        callback: HandlerCallback | None = None,
        responses: list[Memory] | None = None,
    ) -> list[Evaluator]:
        return await self.evaluator_runner.evaluate(
            message, state, did_respond, callback, responses
        )

    # ── Knowledge ───────────────────────────────────────────────────

    async def add_knowledge(
        self, item: KnowledgeItem, options: KnowledgeOptions | None = None
    ) -> list[str]:
        return await self.knowledge.add_knowledge(item, options)

    async def get_knowledge(self, message: Memory) -> list[KnowledgeItem]:
        return await self.knowledge.get_knowledge(message)

    async def process_character_knowledge(self, items: list[str]) -> None:
        await self.knowledge.process_character_knowledge(items)

    async def ensure_embedding_dimension(self) -> None:
        """Probe the embedding model and size the adapter's vectors."""
        adapter = self.get_database_adapter()
        embedding = await self.use_model(ModelType.TEXT_EMBEDDING, None)
        if not embedding:
            raise SetupError(
                f"[{self.character.name}] Invalid embedding received"
            )
        logger.debug(
            "[%s] Setting embedding dimension: %d",
            self.character.name,
            len(embedding),
        )
        await adapter.ensure_embedding_dimension(len(embedding))

    # ── Rooms, worlds, participants ─────────────────────────────────

    async def ensure_world_exists(self, world: World) -> None:
        adapter = self.get_database_adapter()
        if await adapter.get_world(world.id) is not None:
            return
        logger.info("Creating world %s (%s)", world.id, world.name)
        await adapter.create_world(World(
            id=world.id,
            name=world.name,
            server_id=world.server_id or "default",
            agent_id=self.agent_id,
            metadata=dict(world.metadata),
        ))

    async def ensure_room_exists(self, room: Room) -> None:
        adapter = self.get_database_adapter()
        if await adapter.get_room(room.id) is not None:
            return
        await adapter.create_room(Room(
            id=room.id,
            name=room.name,
            source=room.source,
            type=room.type,
            channel_id=room.channel_id,
            server_id=room.server_id,
            world_id=room.world_id,
            agent_id=self.agent_id,
        ))
        logger.debug("Room %s created successfully.", room.id)

    async def ensure_participant_in_room(self, entity_id: str, room_id: str) -> None:
        adapter = self.get_database_adapter()
        if await adapter.get_entity_by_id(entity_id) is None:
            raise EntityNotFoundError(f"User {entity_id} not found")

        participants = await adapter.get_participants_for_room(room_id)
        if entity_id in participants:
            return
        if not await adapter.add_participant(entity_id, room_id):
            raise SetupError(
                f"Failed to add participant {entity_id} to room {room_id}"
            )
        logger.debug("Entity %s linked to room %s", entity_id, room_id)

    async def ensure_connection(
        self,
        *,
        entity_id: str,
        room_id: str,
        user_name: str | None = None,
        name: str | None = None,
        source: str | None = None,
        type: ChannelType | None = None,
        channel_id: str | None = None,
        server_id: str | None = None,
        world_id: str | None = None,
    ) -> None:
        """Make sure *entity_id* and the agent share room *room_id*.

        Creates the entity, its world (derived from *server_id* when no
        *world_id* is given) and the room as needed.
        """
        if entity_id == self.agent_id:
            raise ValueError("Agent should not connect to itself")

        if world_id is None and server_id:
            world_id = create_unique_uuid(self.agent_id, server_id)

        metadata = {source or "unknown": {"name": name, "userName": user_name}}
        adapter = self.get_database_adapter()

        if await adapter.get_entity_by_id(entity_id) is None:
            await adapter.create_entity(Entity(
                id=entity_id,
                names=[n for n in (name, user_name) if n],
                metadata=metadata,
                agent_id=self.agent_id,
            ))

        if world_id is not None:
            await self.ensure_world_exists(World(
                id=world_id,
                name=(
                    f"World for server {server_id}"
                    if server_id
                    else f"World for room {room_id}"
                ),
                server_id=server_id or "default",
                metadata=metadata,
            ))

        await self.ensure_room_exists(Room(
            id=room_id,
            source=source,
            type=type,
            channel_id=channel_id,
            server_id=server_id,
            world_id=world_id,
        ))

        try:
            await self.ensure_participant_in_room(entity_id, room_id)
            await self.ensure_participant_in_room(self.agent_id, room_id)
        except Exception as exc:
            logger.error("Failed to add participants: %s", exc)
            raise
