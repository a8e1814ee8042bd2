from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from conclave_core.types import Character, Content, Memory


@pytest.fixture(autouse=True)
def _reset_conclave_logging():
    yield
    root = logging.getLogger("conclave")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def character():
    return Character(name="Ada", bio="Test agent")


@pytest.fixture
def make_message():
    """Factory for messages addressed to an agent."""

    def _make(
        agent_id: str,
        text: str = "hello",
        actions: list[str] | None = None,
        message_id: str | None = None,
    ) -> Memory:
        return Memory(
            id=message_id or str(uuid4()),
            entity_id=str(uuid4()),
            room_id=str(uuid4()),
            agent_id=agent_id,
            content=Content(text=text, actions=list(actions or [])),
        )

    return _make


@pytest.fixture
def keyword_embedder():
    """A deterministic embedding model: one dimension per keyword."""
    keywords = ["cat", "dog", "fish", "bird"]
    calls: list = []

    async def embed(runtime, params):
        calls.append(params)
        if params is None:
            return [0.0] * len(keywords)
        text = params["text"].lower()
        vector = [float(text.count(k)) for k in keywords]
        return vector if any(vector) else [0.01] * len(keywords)

    embed.calls = calls
    return embed


@pytest_asyncio.fixture
async def memory_adapter():
    from conclave_runtime.backends.memory import InMemoryDatabaseAdapter
    return InMemoryDatabaseAdapter()


@pytest_asyncio.fixture
async def sqlite_db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "test.db")


@pytest_asyncio.fixture
async def sqlite_adapter(sqlite_db_path):
    from conclave_runtime.backends.sqlite import SQLiteDatabaseAdapter
    adapter = SQLiteDatabaseAdapter(sqlite_db_path)
    await adapter.init()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def runtime(character, memory_adapter):
    """A runtime over the in-memory adapter, not yet initialized."""
    from conclave_runtime.runtime import AgentRuntime
    rt = AgentRuntime(character, adapter=memory_adapter)
    yield rt
    await rt.events.drain()
