from __future__ import annotations

import textwrap

import pytest
from conclave_core.errors import PluginLoadError
from conclave_core.types import ModelType, ProviderResult
from conclave_runtime.plugin import (
    Action,
    Evaluator,
    Plugin,
    Provider,
    Route,
    Service,
    TaskWorker,
)
from conclave_runtime.plugins import load_plugin, load_plugins


class GreeterService(Service):
    service_type = "greeter"

    @classmethod
    async def start(cls, runtime):
        return cls(runtime)

    async def stop(self):
        pass


async def _validate(runtime, message, state):
    return True


async def _provide(runtime, message, state):
    return ProviderResult(text="greeting context")


async def _model(runtime, params):
    return "hi"


async def _work(runtime, options):
    return None


def _full_plugin(order):
    async def init(config, runtime):
        order.append(("init", config, runtime.get_service("greeter") is not None))

    return Plugin(
        name="greeter",
        description="Says hello",
        actions=[Action(name="GREET")],
        evaluators=[Evaluator(name="GREETED", validate=_validate)],
        providers=[Provider(name="GREETING", get=_provide)],
        models={ModelType.TEXT_SMALL: _model},
        routes=[Route(type="GET", path="/hello", handler=lambda req: "hello")],
        events={"MESSAGE_RECEIVED": [lambda payload: order.append(("event", payload))]},
        services=[GreeterService],
        task_workers=[TaskWorker(name="greet-later", execute=_work)],
        init=init,
        config={"greeting": "hello"},
    )


class TestPluginInstaller:
    async def test_installs_every_capability(self, runtime):
        order = []
        await runtime.register_plugin(_full_plugin(order))

        assert [p.name for p in runtime.plugins] == ["greeter"]
        assert [a.name for a in runtime.actions] == ["GREET"]
        assert [e.name for e in runtime.evaluators] == ["GREETED"]
        assert [p.name for p in runtime.providers] == ["GREETING"]
        assert await runtime.use_model(ModelType.TEXT_SMALL, {}) == "hi"
        assert [r.path for r in runtime.routes] == ["/hello"]
        assert isinstance(runtime.get_service("greeter"), GreeterService)
        assert runtime.get_task_worker("greet-later") is not None

        runtime.emit_event("MESSAGE_RECEIVED", "ping")
        assert order == [("init", {"greeting": "hello"}, True), ("event", "ping")]

    async def test_name_tracking_is_idempotent(self, runtime):
        await runtime.register_plugin(Plugin(name="empty"))
        await runtime.register_plugin(Plugin(name="empty"))
        assert [p.name for p in runtime.plugins] == ["empty"]
        assert runtime.installer.is_installed("empty")

    async def test_reinstall_repeats_sub_registrations(self, runtime):
        plugin = Plugin(name="twice", actions=[Action(name="WAVE")])
        await runtime.register_plugin(plugin)
        await runtime.register_plugin(plugin)

        assert [p.name for p in runtime.plugins] == ["twice"]
        assert [a.name for a in runtime.actions] == ["WAVE", "WAVE"]

    async def test_plugin_adapter_first_wins(self, runtime, memory_adapter):
        from conclave_runtime.backends.memory import InMemoryDatabaseAdapter

        await runtime.register_plugin(Plugin(name="db", adapter=InMemoryDatabaseAdapter()))
        assert runtime.get_database_adapter() is memory_adapter

    async def test_init_failure_propagates(self, runtime):
        async def init(config, rt):
            raise RuntimeError("bad config")

        with pytest.raises(RuntimeError, match="bad config"):
            await runtime.register_plugin(
                Plugin(name="fragile", actions=[Action(name="KEEP")], init=init)
            )
        assert [a.name for a in runtime.actions] == ["KEEP"]


class TestLoadPlugin:
    @pytest.fixture
    def plugin_module(self, tmp_path, monkeypatch):
        (tmp_path / "sample_conclave_plugin.py").write_text(textwrap.dedent("""
            from conclave_runtime.plugin import Plugin

            plugin = Plugin(name="sample")
            alternate = Plugin(name="alternate")
            not_a_plugin = 42
        """))
        monkeypatch.syspath_prepend(str(tmp_path))
        return "sample_conclave_plugin"

    def test_default_attribute(self, plugin_module):
        assert load_plugin(plugin_module).name == "sample"

    def test_named_attribute(self, plugin_module):
        assert load_plugin(f"{plugin_module}:alternate").name == "alternate"

    def test_load_many(self, plugin_module):
        names = [p.name for p in load_plugins([plugin_module, f"{plugin_module}:alternate"])]
        assert names == ["sample", "alternate"]

    def test_not_a_plugin(self, plugin_module):
        with pytest.raises(PluginLoadError):
            load_plugin(f"{plugin_module}:not_a_plugin")

    def test_missing_module(self):
        with pytest.raises(PluginLoadError):
            load_plugin("no_such_conclave_plugin_module")
