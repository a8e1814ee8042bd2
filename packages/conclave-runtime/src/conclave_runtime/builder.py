from __future__ import annotations

from typing import TYPE_CHECKING

from conclave_core.logging import get_logger

from conclave_runtime.runtime import AgentRuntime

if TYPE_CHECKING:
    from conclave_core.config import ConclaveConfig
    from conclave_core.types import Character

    from conclave_runtime.plugin import Plugin
    from conclave_runtime.protocols.storage import DatabaseAdapter

logger = get_logger("builder")


class RuntimeBuilder:
    """Build an AgentRuntime from configuration.

    Usage:
        config = ConclaveConfig.from_toml("conclave.toml")
        runtime = RuntimeBuilder(config).build(character, plugins=[...])
        await runtime.initialize()
    """

    def __init__(self, config: ConclaveConfig) -> None:
        self._config = config

    def build_adapter(self) -> DatabaseAdapter:
        tier = self._config.backend.tier
        logger.info("Building runtime with %s backend", tier)

        if tier == "memory":
            from conclave_runtime.backends.memory import InMemoryDatabaseAdapter
            return InMemoryDatabaseAdapter()
        elif tier == "sqlite":
            from conclave_runtime.backends.sqlite import SQLiteDatabaseAdapter
            return SQLiteDatabaseAdapter(
                self._config.backend.sqlite_path,
                wal=self._config.backend.sqlite_wal,
            )
        else:
            raise ValueError(f"Unknown backend tier: {tier!r}")

    def build(
        self,
        character: Character,
        *,
        plugins: list[Plugin] | None = None,
        agent_id: str | None = None,
    ) -> AgentRuntime:
        config = self._config
        return AgentRuntime(
            character,
            agent_id=agent_id,
            adapter=self.build_adapter(),
            plugins=plugins,
            conversation_length=config.agent.conversation_length,
            settings=config.runtime,
            knowledge=config.knowledge,
        )
