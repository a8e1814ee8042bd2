from __future__ import annotations

from typing import TYPE_CHECKING

from conclave_runtime.backends._similarity import check_dimension, rank_memories

if TYPE_CHECKING:
    from conclave_core.types import (
        Character,
        Entity,
        LogEntry,
        Memory,
        Room,
        World,
    )


class InMemoryDatabaseAdapter:
    """T0 storage adapter: Python dicts, cosine search in process."""

    def __init__(self) -> None:
        self._agents: dict[str, Character] = {}
        self._entities: dict[str, Entity] = {}
        self._rooms: dict[str, Room] = {}
        self._worlds: dict[str, World] = {}
        self._participants: dict[str, list[str]] = {}
        self._memories: dict[str, tuple[str, Memory]] = {}
        self._dimension: int | None = None
        self.logs: list[LogEntry] = []

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def ensure_agent_exists(self, character: Character) -> None:
        self._agents.setdefault(character.id or character.name, character)

    async def get_entity_by_id(self, entity_id: str) -> Entity | None:
        return self._entities.get(entity_id)

    async def create_entity(self, entity: Entity) -> bool:
        if entity.id in self._entities:
            return False
        self._entities[entity.id] = entity
        return True

    async def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    async def create_room(self, room: Room) -> str:
        self._rooms.setdefault(room.id, room)
        return room.id

    async def get_world(self, world_id: str) -> World | None:
        return self._worlds.get(world_id)

    async def create_world(self, world: World) -> str:
        self._worlds.setdefault(world.id, world)
        return world.id

    async def get_participants_for_room(self, room_id: str) -> list[str]:
        return list(self._participants.get(room_id, []))

    async def add_participant(self, entity_id: str, room_id: str) -> bool:
        members = self._participants.setdefault(room_id, [])
        if entity_id not in members:
            members.append(entity_id)
        return True

    async def log(self, entry: LogEntry) -> None:
        self.logs.append(entry)

    async def get_logs(
        self, *, room_id: str | None = None, type: str | None = None
    ) -> list[LogEntry]:
        return [
            e for e in self.logs
            if (room_id is None or e.room_id == room_id)
            and (type is None or e.type == type)
        ]

    async def get_memory_by_id(self, memory_id: str) -> Memory | None:
        found = self._memories.get(memory_id)
        return found[1] if found else None

    async def create_memory(self, memory: Memory, table_name: str) -> str:
        check_dimension(memory.embedding, self._dimension)
        self._memories[memory.id] = (table_name, memory)
        return memory.id

    async def search_memories(
        self,
        *,
        table_name: str,
        embedding: list[float],
        room_id: str | None = None,
        count: int = 10,
        match_threshold: float = 0.0,
    ) -> list[Memory]:
        check_dimension(embedding, self._dimension)
        candidates = (
            memory
            for table, memory in self._memories.values()
            if table == table_name
            and (room_id is None or memory.room_id == room_id)
        )
        return rank_memories(candidates, embedding, count, match_threshold)

    async def ensure_embedding_dimension(self, dimension: int) -> None:
        self._dimension = dimension
