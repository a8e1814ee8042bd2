from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any

# ── Model Types ──────────────────────────────────────────────────────

class ModelType(enum.StrEnum):
    """Well-known model categories. Any string key is accepted as well."""
    TEXT_SMALL = "TEXT_SMALL"
    TEXT_LARGE = "TEXT_LARGE"
    TEXT_EMBEDDING = "TEXT_EMBEDDING"
    OBJECT_SMALL = "OBJECT_SMALL"
    OBJECT_LARGE = "OBJECT_LARGE"


# ── Character ────────────────────────────────────────────────────────

@dataclass(slots=True)
class Character:
    """Agent identity and static configuration.

    Mutable only through ``AgentRuntime.set_setting``.
    """
    name: str
    id: str | None = None
    bio: str = ""
    plugins: list[str] = field(default_factory=list)
    knowledge: list[str] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)
    secrets: dict[str, Any] = field(default_factory=dict)


# ── Memory Types ─────────────────────────────────────────────────────

class MemoryType(enum.Enum):
    DOCUMENT = "document"
    FRAGMENT = "fragment"
    MESSAGE = "message"
    DESCRIPTION = "description"


@dataclass(frozen=True, slots=True)
class Content:
    """The payload of a memory."""
    text: str = ""
    in_reply_to: str | None = None
    actions: list[str] = field(default_factory=list)
    source: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class MemoryMetadata:
    type: MemoryType = MemoryType.MESSAGE
    document_id: str | None = None
    position: int | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True, slots=True)
class Memory:
    """A unit of recorded content."""
    id: str
    entity_id: str
    room_id: str
    agent_id: str
    content: Content = field(default_factory=Content)
    created_at: float = field(default_factory=time.time)
    metadata: MemoryMetadata | None = None
    embedding: list[float] | None = None
    similarity: float | None = None


@dataclass(frozen=True, slots=True)
class KnowledgeItem:
    id: str
    content: Content


# ── Rooms, Worlds, Entities ──────────────────────────────────────────

class ChannelType(enum.Enum):
    SELF = "SELF"
    DM = "DM"
    GROUP = "GROUP"
    VOICE_DM = "VOICE_DM"
    VOICE_GROUP = "VOICE_GROUP"
    FEED = "FEED"
    THREAD = "THREAD"
    WORLD = "WORLD"
    API = "API"


@dataclass(frozen=True, slots=True)
class Room:
    """A conversation channel."""
    id: str
    name: str | None = None
    source: str | None = None
    type: ChannelType | None = None
    channel_id: str | None = None
    server_id: str | None = None
    world_id: str | None = None
    agent_id: str | None = None


@dataclass(frozen=True, slots=True)
class World:
    """A server-level grouping of rooms."""
    id: str
    name: str | None = None
    server_id: str = "default"
    agent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Entity:
    """A participant identity."""
    id: str
    names: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    agent_id: str | None = None


# ── Audit Log ────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class LogEntry:
    """A structured audit record written through the storage adapter."""
    entity_id: str
    room_id: str
    type: str
    body: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


# ── State ────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class ProviderResult:
    """What a provider contributes to a state snapshot."""
    values: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)
    text: str = ""


@dataclass(slots=True)
class State:
    """Per-turn context snapshot. Never persisted."""
    values: dict[str, Any] = field(default_factory=dict)
    data: dict[str, Any] = field(default_factory=dict)
    text: str = ""

    @property
    def provider_names(self) -> list[str]:
        return list(self.data.get("providers", {}))
