"""Conclave Runtime: plugin-driven agent orchestration."""
from __future__ import annotations

from conclave_runtime.actions import (
    ActionDispatcher,
    normalize_action_name,
    resolve_action,
)
from conclave_runtime.builder import RuntimeBuilder
from conclave_runtime.evaluators import EvaluatorRunner
from conclave_runtime.events import EventBus
from conclave_runtime.knowledge import (
    KnowledgeOptions,
    KnowledgePipeline,
    TokenWindowSplitter,
)
from conclave_runtime.models import FirstRegistered, ModelRegistry, RoundRobin
from conclave_runtime.plugin import (
    Action,
    Evaluator,
    Plugin,
    Provider,
    Route,
    Service,
    TaskWorker,
)
from conclave_runtime.plugins import PluginInstaller, load_plugin, load_plugins
from conclave_runtime.protocols import DatabaseAdapter, TextSplitter
from conclave_runtime.runtime import AgentRuntime
from conclave_runtime.services import ServiceRegistry
from conclave_runtime.state import StateComposer
from conclave_runtime.tasks import TaskWorkerRegistry

__all__ = [
    "Action",
    "ActionDispatcher",
    "AgentRuntime",
    "DatabaseAdapter",
    "Evaluator",
    "EvaluatorRunner",
    "EventBus",
    "FirstRegistered",
    "KnowledgeOptions",
    "KnowledgePipeline",
    "ModelRegistry",
    "Plugin",
    "PluginInstaller",
    "Provider",
    "RoundRobin",
    "Route",
    "RuntimeBuilder",
    "Service",
    "ServiceRegistry",
    "StateComposer",
    "TaskWorker",
    "TaskWorkerRegistry",
    "TextSplitter",
    "TokenWindowSplitter",
    "load_plugin",
    "load_plugins",
    "normalize_action_name",
    "resolve_action",
]
