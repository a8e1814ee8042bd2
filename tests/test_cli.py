from __future__ import annotations

import textwrap

import pytest
from conclave_cli.commands.inspect_character import _inspect
from conclave_cli.main import app
from conclave_core.errors import SetupError
from conclave_core.types import Character
from conclave_runtime.backends.memory import InMemoryDatabaseAdapter
from conclave_runtime.runtime import AgentRuntime
from typer.testing import CliRunner

runner = CliRunner()


class TestInspectCommand:
    def test_shows_wiring(self, tmp_path, monkeypatch):
        (tmp_path / "cli_demo_plugin.py").write_text(textwrap.dedent("""
            from conclave_core.types import ProviderResult
            from conclave_runtime.plugin import Action, Plugin, Provider

            async def _time(runtime, message, state):
                return ProviderResult(text="now")

            plugin = Plugin(
                name="demo",
                description="Demo plugin",
                actions=[Action(name="SEND_MESSAGE", similes=["DM"])],
                providers=[Provider(name="TIME", get=_time, position=3, dynamic=True)],
            )
        """))
        monkeypatch.syspath_prepend(str(tmp_path))
        character = tmp_path / "ada.toml"
        character.write_text('name = "Ada"\nbio = "Tester"\n')
        config = tmp_path / "conclave.toml"
        config.write_text('[backend]\ntier = "memory"\n[logging]\nlevel = "ERROR"\n')

        result = runner.invoke(app, [
            "inspect", str(character),
            "--plugin", "cli_demo_plugin",
            "--config", str(config),
        ])

        assert result.exit_code == 0, result.output
        assert "Ada" in result.output
        assert "demo" in result.output
        assert "SEND_MESSAGE" in result.output
        assert "TIME" in result.output

    def test_sqlite_backend(self, tmp_path):
        character = tmp_path / "ada.json"
        character.write_text('{"name": "Ada"}')
        config = tmp_path / "conclave.toml"
        db_path = tmp_path / "state" / "conclave.db"
        config.write_text(
            f'[backend]\ntier = "sqlite"\nsqlite_path = "{db_path}"\n'
            '[logging]\nlevel = "ERROR"\n'
        )

        result = runner.invoke(app, ["inspect", str(character), "--config", str(config)])
        assert result.exit_code == 0, result.output
        assert db_path.exists()

    def test_missing_character_file(self, tmp_path):
        result = runner.invoke(app, ["inspect", str(tmp_path / "nobody.toml")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_bad_plugin_name(self, tmp_path):
        character = tmp_path / "ada.toml"
        character.write_text('name = "Ada"\n')
        result = runner.invoke(
            app, ["inspect", str(character), "--plugin", "no_such_module_for_cli"]
        )
        assert result.exit_code == 1

    def test_unknown_backend_tier(self, tmp_path):
        character = tmp_path / "ada.json"
        character.write_text('{"name": "Ada"}')
        config = tmp_path / "conclave.toml"
        config.write_text('[backend]\ntier = "postgres"\n')

        result = runner.invoke(app, ["inspect", str(character), "--config", str(config)])
        assert result.exit_code == 1
        assert "Unknown backend tier" in result.output

    async def test_failed_initialize_still_stops(self):
        class BrokenStore(InMemoryDatabaseAdapter):
            closed = False

            async def init(self):
                raise OSError("disk gone")

            async def close(self):
                self.closed = True

        store = BrokenStore()
        runtime = AgentRuntime(Character(name="Ada"), adapter=store)

        with pytest.raises(SetupError, match="disk gone"):
            await _inspect(runtime)
        assert store.closed


class TestConfigCommand:
    def test_prints_merged_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        monkeypatch.chdir(tmp_path)
        (tmp_path / "conclave.toml").write_text('[project]\nname = "demo"\n[agent]\nconversation_length = 7\n')

        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0, result.output
        assert "demo" in result.output
        assert "conversation_length" in result.output

    def test_global_missing(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        result = runner.invoke(app, ["config", "--global"])
        assert result.exit_code == 1


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "conclave 0.1.0" in result.output
