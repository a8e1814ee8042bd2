from __future__ import annotations

import pytest
from conclave_core.config import (
    AgentConfig,
    BackendConfig,
    ConclaveConfig,
    RuntimeSettings,
)
from conclave_core.types import Character
from conclave_runtime.backends.memory import InMemoryDatabaseAdapter
from conclave_runtime.backends.sqlite import SQLiteDatabaseAdapter
from conclave_runtime.builder import RuntimeBuilder
from conclave_runtime.plugin import Plugin
from conclave_runtime.runtime import AgentRuntime


class TestRuntimeBuilder:
    async def test_build_memory_backend(self):
        config = ConclaveConfig(backend=BackendConfig(tier="memory"))
        runtime = RuntimeBuilder(config).build(Character(name="Ada"))
        assert isinstance(runtime, AgentRuntime)
        assert isinstance(runtime.get_database_adapter(), InMemoryDatabaseAdapter)

    async def test_build_sqlite_backend(self, tmp_path):
        db_path = str(tmp_path / "test.db")
        config = ConclaveConfig(backend=BackendConfig(tier="sqlite", sqlite_path=db_path))
        runtime = RuntimeBuilder(config).build(Character(name="Ada"))
        assert isinstance(runtime.get_database_adapter(), SQLiteDatabaseAdapter)

        await runtime.initialize()
        await runtime.stop()
        assert (tmp_path / "test.db").exists()

    async def test_build_unknown_tier_raises(self):
        config = ConclaveConfig(backend=BackendConfig(tier="unknown"))
        with pytest.raises(ValueError, match="Unknown backend tier"):
            RuntimeBuilder(config).build(Character(name="Ada"))

    async def test_config_reaches_runtime(self):
        settings = RuntimeSettings(action_state_providers=["FACTS"])
        config = ConclaveConfig(agent=AgentConfig(conversation_length=4), runtime=settings)
        runtime = RuntimeBuilder(config).build(
            Character(name="Ada"), plugins=[Plugin(name="extra")], agent_id="fixed"
        )
        assert runtime.agent_id == "fixed"
        assert runtime.get_conversation_length() == 4
        assert runtime.settings.action_state_providers == ["FACTS"]

        await runtime.initialize()
        assert [p.name for p in runtime.plugins] == ["extra"]
