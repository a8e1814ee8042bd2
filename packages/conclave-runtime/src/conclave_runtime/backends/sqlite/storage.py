from __future__ import annotations

from typing import TYPE_CHECKING, Any

from conclave_core.logging import get_logger
from conclave_core.types import (
    ChannelType,
    Content,
    Entity,
    LogEntry,
    Memory,
    MemoryMetadata,
    MemoryType,
    Room,
    World,
)

from conclave_runtime.backends._similarity import check_dimension, rank_memories
from conclave_runtime.backends.sqlite._db import dumps, get_connection, loads

if TYPE_CHECKING:
    import aiosqlite

    from conclave_core.types import Character

logger = get_logger("backends.sqlite")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    key TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS entities (
    id TEXT PRIMARY KEY,
    names TEXT NOT NULL DEFAULT '[]',
    metadata TEXT NOT NULL DEFAULT '{}',
    agent_id TEXT
);
CREATE TABLE IF NOT EXISTS worlds (
    id TEXT PRIMARY KEY,
    name TEXT,
    server_id TEXT NOT NULL,
    agent_id TEXT,
    metadata TEXT NOT NULL DEFAULT '{}'
);
CREATE TABLE IF NOT EXISTS rooms (
    id TEXT PRIMARY KEY,
    name TEXT,
    source TEXT,
    type TEXT,
    channel_id TEXT,
    server_id TEXT,
    world_id TEXT,
    agent_id TEXT
);
CREATE TABLE IF NOT EXISTS participants (
    room_id TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    joined_at INTEGER NOT NULL,
    PRIMARY KEY (room_id, entity_id)
);
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    table_name TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    room_id TEXT NOT NULL,
    agent_id TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at REAL NOT NULL,
    metadata TEXT,
    embedding TEXT
);
CREATE INDEX IF NOT EXISTS idx_memories_table_room
    ON memories(table_name, room_id);
CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_id TEXT NOT NULL,
    room_id TEXT NOT NULL,
    type TEXT NOT NULL,
    body TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class SQLiteDatabaseAdapter:
    """T1 storage adapter: one SQLite file, JSON columns.

    Embeddings are stored as JSON arrays and ranked in Python.
    """

    def __init__(self, db_path: str, wal: bool = True) -> None:
        self._db_path = db_path
        self._wal = wal
        self._conn: aiosqlite.Connection | None = None
        self._dimension: int | None = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteDatabaseAdapter used before init()")
        return self._conn

    async def init(self) -> None:
        if self._conn is not None:
            return
        self._conn = await get_connection(self._db_path, self._wal)
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()

        async with self._conn.execute(
            "SELECT value FROM meta WHERE key = 'embedding_dimension'"
        ) as cursor:
            row = await cursor.fetchone()
        if row:
            self._dimension = int(row[0])
        logger.debug("Opened SQLite store at %s", self._db_path)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    # ── Agents, entities ────────────────────────────────────────────

    async def ensure_agent_exists(self, character: Character) -> None:
        await self.conn.execute(
            "INSERT OR IGNORE INTO agents (key, name, data) VALUES (?, ?, ?)",
            (character.id or character.name, character.name, dumps(character)),
        )
        await self.conn.commit()

    async def get_entity_by_id(self, entity_id: str) -> Entity | None:
        async with self.conn.execute(
            "SELECT * FROM entities WHERE id = ?", (entity_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return Entity(
            id=row["id"],
            names=loads(row["names"]),
            metadata=loads(row["metadata"]),
            agent_id=row["agent_id"],
        )

    async def create_entity(self, entity: Entity) -> bool:
        cursor = await self.conn.execute(
            """INSERT OR IGNORE INTO entities (id, names, metadata, agent_id)
               VALUES (?, ?, ?, ?)""",
            (entity.id, dumps(entity.names), dumps(entity.metadata), entity.agent_id),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    # ── Rooms, worlds, participants ─────────────────────────────────

    async def get_room(self, room_id: str) -> Room | None:
        async with self.conn.execute(
            "SELECT * FROM rooms WHERE id = ?", (room_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return Room(
            id=row["id"],
            name=row["name"],
            source=row["source"],
            type=ChannelType(row["type"]) if row["type"] else None,
            channel_id=row["channel_id"],
            server_id=row["server_id"],
            world_id=row["world_id"],
            agent_id=row["agent_id"],
        )

    async def create_room(self, room: Room) -> str:
        await self.conn.execute(
            """INSERT OR IGNORE INTO rooms
               (id, name, source, type, channel_id, server_id, world_id, agent_id)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                room.id, room.name, room.source,
                room.type.value if room.type else None,
                room.channel_id, room.server_id, room.world_id, room.agent_id,
            ),
        )
        await self.conn.commit()
        return room.id

    async def get_world(self, world_id: str) -> World | None:
        async with self.conn.execute(
            "SELECT * FROM worlds WHERE id = ?", (world_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return World(
            id=row["id"],
            name=row["name"],
            server_id=row["server_id"],
            agent_id=row["agent_id"],
            metadata=loads(row["metadata"]),
        )

    async def create_world(self, world: World) -> str:
        await self.conn.execute(
            """INSERT OR IGNORE INTO worlds (id, name, server_id, agent_id, metadata)
               VALUES (?, ?, ?, ?, ?)""",
            (world.id, world.name, world.server_id, world.agent_id, dumps(world.metadata)),
        )
        await self.conn.commit()
        return world.id

    async def get_participants_for_room(self, room_id: str) -> list[str]:
        async with self.conn.execute(
            "SELECT entity_id FROM participants WHERE room_id = ? ORDER BY joined_at",
            (room_id,),
        ) as cursor:
            return [row[0] for row in await cursor.fetchall()]

    async def add_participant(self, entity_id: str, room_id: str) -> bool:
        await self.conn.execute(
            """INSERT OR IGNORE INTO participants (room_id, entity_id, joined_at)
               VALUES (?, ?, (SELECT COALESCE(MAX(joined_at), 0) + 1 FROM participants))""",
            (room_id, entity_id),
        )
        await self.conn.commit()
        return True

    # ── Logs ────────────────────────────────────────────────────────

    async def log(self, entry: LogEntry) -> None:
        await self.conn.execute(
            """INSERT INTO logs (entity_id, room_id, type, body, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (entry.entity_id, entry.room_id, entry.type, dumps(entry.body), entry.created_at),
        )
        await self.conn.commit()

    async def get_logs(
        self, *, room_id: str | None = None, type: str | None = None
    ) -> list[LogEntry]:
        query = "SELECT * FROM logs WHERE 1 = 1"
        params: list[Any] = []
        if room_id is not None:
            query += " AND room_id = ?"
            params.append(room_id)
        if type is not None:
            query += " AND type = ?"
            params.append(type)
        query += " ORDER BY id"
        async with self.conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [
            LogEntry(
                entity_id=row["entity_id"],
                room_id=row["room_id"],
                type=row["type"],
                body=loads(row["body"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    # ── Memories ────────────────────────────────────────────────────

    @staticmethod
    def _row_to_memory(row: aiosqlite.Row) -> Memory:
        content = loads(row["content"])
        raw_meta = loads(row["metadata"])
        metadata = None
        if raw_meta is not None:
            metadata = MemoryMetadata(
                type=MemoryType(raw_meta["type"]),
                document_id=raw_meta.get("document_id"),
                position=raw_meta.get("position"),
                timestamp=raw_meta["timestamp"],
            )
        return Memory(
            id=row["id"],
            entity_id=row["entity_id"],
            room_id=row["room_id"],
            agent_id=row["agent_id"],
            content=Content(**content),
            created_at=row["created_at"],
            metadata=metadata,
            embedding=loads(row["embedding"]),
        )

    async def get_memory_by_id(self, memory_id: str) -> Memory | None:
        async with self.conn.execute(
            "SELECT * FROM memories WHERE id = ?", (memory_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return self._row_to_memory(row) if row else None

    async def create_memory(self, memory: Memory, table_name: str) -> str:
        check_dimension(memory.embedding, self._dimension)
        await self.conn.execute(
            """INSERT OR REPLACE INTO memories
               (id, table_name, entity_id, room_id, agent_id,
                content, created_at, metadata, embedding)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                memory.id,
                table_name,
                memory.entity_id,
                memory.room_id,
                memory.agent_id,
                dumps(memory.content),
                memory.created_at,
                dumps(memory.metadata) if memory.metadata else None,
                dumps(memory.embedding) if memory.embedding is not None else None,
            ),
        )
        await self.conn.commit()
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
        query = (
            "SELECT * FROM memories"
            " WHERE table_name = ? AND embedding IS NOT NULL"
        )
        params: list[Any] = [table_name]
        if room_id is not None:
            query += " AND room_id = ?"
            params.append(room_id)
        async with self.conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return rank_memories(
            (self._row_to_memory(row) for row in rows),
            embedding,
            count,
            match_threshold,
        )

    async def ensure_embedding_dimension(self, dimension: int) -> None:
        await self.conn.execute(
            """INSERT INTO meta (key, value) VALUES ('embedding_dimension', ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value""",
            (str(dimension),),
        )
        await self.conn.commit()
        self._dimension = dimension
