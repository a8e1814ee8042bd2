from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from conclave_core.types import (
        Character,
        Entity,
        LogEntry,
        Memory,
        Room,
        World,
    )


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Durable entities, rooms, worlds, memories and audit logging."""

    async def init(self) -> None: ...
    async def close(self) -> None: ...

    async def ensure_agent_exists(self, character: Character) -> None: ...
    async def get_entity_by_id(self, entity_id: str) -> Entity | None: ...
    async def create_entity(self, entity: Entity) -> bool: ...

    async def get_room(self, room_id: str) -> Room | None: ...
    async def create_room(self, room: Room) -> str: ...
    async def get_world(self, world_id: str) -> World | None: ...
    async def create_world(self, world: World) -> str: ...

    async def get_participants_for_room(self, room_id: str) -> list[str]: ...
    async def add_participant(self, entity_id: str, room_id: str) -> bool: ...

    async def log(self, entry: LogEntry) -> None: ...

    async def get_memory_by_id(self, memory_id: str) -> Memory | None: ...
    async def create_memory(self, memory: Memory, table_name: str) -> str: ...
    async def search_memories(
        self,
        *,
        table_name: str,
        embedding: list[float],
        room_id: str | None = None,
        count: int = 10,
        match_threshold: float = 0.0,
    ) -> list[Memory]: ...

    async def ensure_embedding_dimension(self, dimension: int) -> None: ...
