from __future__ import annotations

import io
import json
import logging
import tempfile
from pathlib import Path

from conclave_core.config import ConclaveConfig, RuntimeSettings
from conclave_core.logging import get_logger, setup_logging


class TestConfig:
    def test_default_config(self):
        config = ConclaveConfig()
        assert config.backend.tier == "memory"
        assert config.agent.conversation_length == 32
        assert config.knowledge.target_tokens == 3000
        assert config.knowledge.overlap_tokens == 200
        assert config.runtime.action_state_providers == ["RECENT_MESSAGES"]
        assert config.runtime.evaluator_state_providers == [
            "RECENT_MESSAGES",
            "EVALUATORS",
        ]

    def test_from_toml_missing_file(self):
        config = ConclaveConfig.from_toml("/nonexistent/path/conclave.toml")
        assert config.backend.tier == "memory"

    def test_from_toml(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write('''
[project]
name = "test-project"

[agent]
conversation_length = 8

[backend]
tier = "sqlite"
sqlite_path = "/tmp/x.db"

[knowledge]
search_count = 3
match_threshold = 0.5

[runtime]
action_state_providers = ["RECENT_MESSAGES", "FACTS"]

[logging]
level = "DEBUG"
json = true
''')
            f.flush()
            config = ConclaveConfig.from_toml(f.name)

        assert config.project_name == "test-project"
        assert config.agent.conversation_length == 8
        assert config.backend.tier == "sqlite"
        assert config.backend.sqlite_path == "/tmp/x.db"
        assert config.knowledge.search_count == 3
        assert config.knowledge.match_threshold == 0.5
        assert config.runtime.action_state_providers == ["RECENT_MESSAGES", "FACTS"]
        assert config.runtime.evaluator_state_providers == RuntimeSettings().evaluator_state_providers
        assert config.logging.level == "DEBUG"
        assert config.logging.json is True

        Path(f.name).unlink()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "conclave.toml"
        path.write_text('[backend]\ntier = "memory"\nflavour = "vanilla"\n')
        config = ConclaveConfig.from_toml(path)
        assert config.backend.tier == "memory"

    def test_invalid_toml_yields_defaults(self, tmp_path):
        path = tmp_path / "conclave.toml"
        path.write_text("this is [not toml")
        assert ConclaveConfig.from_toml(path) == ConclaveConfig()


class TestConfigLayering:
    def test_project_overrides_global(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        (home / ".conclave").mkdir(parents=True)
        (home / ".conclave" / "config.toml").write_text(
            '[backend]\ntier = "sqlite"\n[agent]\nconversation_length = 10\n'
        )
        monkeypatch.setenv("HOME", str(home))

        project = tmp_path / "project"
        project.mkdir()
        (project / "conclave.toml").write_text("[agent]\nconversation_length = 5\n")

        config = ConclaveConfig.load(project)
        assert config.backend.tier == "sqlite"
        assert config.agent.conversation_length == 5

    def test_dot_conclave_takes_priority(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path / "nohome"))
        (tmp_path / ".conclave").mkdir()
        (tmp_path / ".conclave" / "config.toml").write_text('[project]\nname = "inner"\n')
        (tmp_path / "conclave.toml").write_text('[project]\nname = "outer"\n')

        assert ConclaveConfig.load(tmp_path).project_name == "inner"


class TestLogging:
    def test_child_logger_namespace(self):
        assert get_logger("runtime").name == "conclave.runtime"

    def test_json_output_includes_extra(self):
        stream = io.StringIO()
        setup_logging("INFO", json_output=True, stream=stream)
        get_logger("test").info("hello %s", "world", extra={"agent": "a1"})

        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record["msg"] == "hello world"
        assert record["logger"] == "conclave.test"
        assert record["agent"] == "a1"

    def test_setup_replaces_previous_handler(self):
        setup_logging("INFO", stream=io.StringIO())
        setup_logging("DEBUG", stream=io.StringIO())
        root = logging.getLogger("conclave")
        ours = [h for h in root.handlers if h.get_name() == "conclave-stderr"]
        assert len(ours) == 1
        assert root.level == logging.DEBUG
