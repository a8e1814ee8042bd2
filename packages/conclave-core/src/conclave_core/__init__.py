"""Conclave Core: shared types, ids, config, errors, and logging."""
from __future__ import annotations

from conclave_core._version import __version__
from conclave_core.character import character_from_dict, load_character
from conclave_core.config import (
    AgentConfig,
    BackendConfig,
    ConclaveConfig,
    KnowledgeConfig,
    LoggingConfig,
    RuntimeSettings,
)
from conclave_core.errors import (
    ConclaveError,
    ConfigError,
    EntityNotFoundError,
    ModelNotFoundError,
    NotFoundError,
    PluginLoadError,
    SetupError,
)
from conclave_core.ids import create_unique_uuid, string_to_uuid
from conclave_core.logging import get_logger, setup_logging
from conclave_core.types import (
    ChannelType,
    Character,
    Content,
    Entity,
    KnowledgeItem,
    LogEntry,
    Memory,
    MemoryMetadata,
    MemoryType,
    ModelType,
    ProviderResult,
    Room,
    State,
    World,
)

__all__ = [
    # Config
    "AgentConfig",
    "BackendConfig",
    # Types
    "ChannelType",
    "Character",
    "ConclaveConfig",
    # Errors
    "ConclaveError",
    "ConfigError",
    "Content",
    "Entity",
    "EntityNotFoundError",
    "KnowledgeConfig",
    "KnowledgeItem",
    "LogEntry",
    "LoggingConfig",
    "Memory",
    "MemoryMetadata",
    "MemoryType",
    "ModelNotFoundError",
    "ModelType",
    "NotFoundError",
    "PluginLoadError",
    "ProviderResult",
    "Room",
    "RuntimeSettings",
    "SetupError",
    "State",
    "World",
    # Version
    "__version__",
    # Character files
    "character_from_dict",
    # Ids
    "create_unique_uuid",
    # Logging
    "get_logger",
    "load_character",
    "setup_logging",
    "string_to_uuid",
]
