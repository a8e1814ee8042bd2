from __future__ import annotations

import asyncio
import importlib
from typing import TYPE_CHECKING

from conclave_core.errors import PluginLoadError
from conclave_core.logging import get_logger

from conclave_runtime.plugin import Plugin

if TYPE_CHECKING:
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("plugins")


def load_plugin(name: str) -> Plugin:
    """Import a plugin by name.

    ``"pkg.module"`` resolves to the module's ``plugin`` attribute and
    ``"pkg.module:attr"`` to the named attribute.
    """
    module_name, _, attr = name.partition(":")
    attr = attr or "plugin"
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginLoadError(f"Cannot import plugin module {module_name!r}") from exc

    plugin = getattr(module, attr, None)
    if not isinstance(plugin, Plugin):
        raise PluginLoadError(
            f"{name!r} does not name a Plugin (found {type(plugin).__name__})"
        )
    return plugin


def load_plugins(names: list[str]) -> list[Plugin]:
    return [load_plugin(name) for name in names]


class PluginInstaller:
    """Wires a plugin's capabilities into a runtime."""

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime
        self._plugins: list[Plugin] = []

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    def is_installed(self, name: str) -> bool:
        return any(p.name == name for p in self._plugins)

    async def install(self, plugin: Plugin) -> None:
        """Register every capability *plugin* declares, then run its init.

        Name tracking is idempotent; sub-registrations are not, so a
        plugin must not be installed twice. Errors propagate and earlier
        registrations stay in effect.
        """
        runtime = self._runtime

        if not self.is_installed(plugin.name):
            self._plugins.append(plugin)
        logger.debug("Installing plugin %s", plugin.name)

        if plugin.adapter is not None:
            runtime.register_database_adapter(plugin.adapter)

        for action in plugin.actions:
            runtime.register_action(action)

        for evaluator in plugin.evaluators:
            runtime.register_evaluator(evaluator)

        for provider in plugin.providers:
            runtime.register_provider(provider)

        for model_type, handler in plugin.models.items():
            runtime.register_model(model_type, handler)

        runtime.routes.extend(plugin.routes)

        for event_name, handlers in plugin.events.items():
            for handler in handlers:
                runtime.register_event(event_name, handler)

        if plugin.services:
            await asyncio.gather(
                *(runtime.register_service(s) for s in plugin.services)
            )

        for worker in plugin.task_workers:
            runtime.register_task_worker(worker)

        if plugin.init is not None:
            await plugin.init(plugin.config, runtime)

        logger.info("Plugin %s installed", plugin.name)
