"""Capability variants a plugin can contribute to a runtime."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from conclave_core.types import Memory, ProviderResult, State

    from conclave_runtime.protocols.storage import DatabaseAdapter
    from conclave_runtime.runtime import AgentRuntime

HandlerCallback = Callable[[Any], Awaitable[Any]]

ProviderGet = Callable[
    ["AgentRuntime", "Memory", "State"], Awaitable["ProviderResult"]
]
Validator = Callable[
    ["AgentRuntime", "Memory", "State | None"], Awaitable[bool]
]
Handler = Callable[
    [
        "AgentRuntime",
        "Memory",
        "State",
        dict[str, Any],
        "HandlerCallback | None",
        "list[Memory] | None",
    ],
    Awaitable[Any],
]
ModelHandler = Callable[["AgentRuntime", Any], Awaitable[Any]]
EventHandler = Callable[[Any], Any]
PluginInit = Callable[[dict[str, Any], "AgentRuntime"], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Provider:
    """A named context source feeding state composition."""
    name: str
    get: ProviderGet
    description: str = ""
    position: int = 0
    private: bool = False
    dynamic: bool = False


@dataclass(frozen=True, slots=True)
class Action:
    """A named capability a response can request."""
    name: str
    handler: Handler | None = None
    similes: list[str] = field(default_factory=list)
    description: str = ""
    validate: Validator | None = None
    examples: list[Any] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Evaluator:
    """A post-hoc judge run after a response cycle."""
    name: str
    validate: Validator
    handler: Handler | None = None
    always_run: bool = False
    similes: list[str] = field(default_factory=list)
    description: str = ""


@dataclass(frozen=True, slots=True)
class TaskWorker:
    """A named background-task definition."""
    name: str
    execute: Callable[["AgentRuntime", dict[str, Any]], Awaitable[Any]]
    validate: Validator | None = None


@dataclass(frozen=True, slots=True)
class Route:
    """An HTTP route a plugin exposes. Stored, not served, by the core."""
    type: str
    path: str
    handler: Callable[..., Any]


class Service(ABC):
    """Base class for long-lived capability singletons.

    Subclasses set ``service_type`` and implement ``start`` (a factory
    returning a running instance) and ``stop``. The runtime keeps at
    most one live instance per ``service_type``.
    """

    service_type: ClassVar[str | None] = None
    capability_description: ClassVar[str] = ""

    def __init__(self, runtime: AgentRuntime | None = None) -> None:
        self._runtime = runtime

    @property
    def runtime(self) -> AgentRuntime | None:
        return self._runtime

    @classmethod
    @abstractmethod
    async def start(cls, runtime: AgentRuntime) -> Service:
        """Create and start an instance bound to *runtime*."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release whatever ``start`` acquired."""
        ...


@dataclass(slots=True)
class Plugin:
    """A manifest bundling any subset of capabilities."""
    name: str
    description: str = ""
    adapter: DatabaseAdapter | None = None
    actions: list[Action] = field(default_factory=list)
    evaluators: list[Evaluator] = field(default_factory=list)
    providers: list[Provider] = field(default_factory=list)
    models: dict[str, ModelHandler] = field(default_factory=dict)
    routes: list[Route] = field(default_factory=list)
    events: dict[str, list[EventHandler]] = field(default_factory=dict)
    services: list[type[Service]] = field(default_factory=list)
    task_workers: list[TaskWorker] = field(default_factory=list)
    init: PluginInit | None = None
    config: dict[str, Any] = field(default_factory=dict)
