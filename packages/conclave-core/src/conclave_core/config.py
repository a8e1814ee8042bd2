from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

GLOBAL_CONFIG = Path(".conclave") / "config.toml"
PROJECT_CONFIGS = (Path(".conclave") / "config.toml", Path("conclave.toml"))


def _read(path: Path) -> dict[str, Any]:
    """Parse *path*; a missing or unreadable file counts as empty."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        return {}


def _layer(*layers: dict[str, Any]) -> dict[str, Any]:
    """Combine TOML documents; later layers win key by key per section."""
    combined: dict[str, Any] = {}
    for layer in layers:
        for name, section in layer.items():
            current = combined.get(name)
            if isinstance(current, dict) and isinstance(section, dict):
                combined[name] = current | section
            else:
                combined[name] = section
    return combined


@dataclass(frozen=True, slots=True)
class AgentConfig:
    conversation_length: int = 32


@dataclass(frozen=True, slots=True)
class BackendConfig:
    tier: str = "memory"  # memory | sqlite
    sqlite_path: str = ".conclave/conclave.db"
    sqlite_wal: bool = True


@dataclass(frozen=True, slots=True)
class KnowledgeConfig:
    target_tokens: int = 3000
    overlap_tokens: int = 200
    model_context_size: int = 4096
    search_count: int = 5
    match_threshold: float = 0.1
    encoding: str = "cl100k_base"  # tiktoken encoding for chunk sizes


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    # Providers refreshed before each action and before evaluation.
    action_state_providers: list[str] = field(
        default_factory=lambda: ["RECENT_MESSAGES"]
    )
    evaluator_state_providers: list[str] = field(
        default_factory=lambda: ["RECENT_MESSAGES", "EVALUATORS"]
    )


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


# TOML table name -> (ConclaveConfig attribute, section type)
_SECTIONS: dict[str, tuple[str, type]] = {
    "agent": ("agent", AgentConfig),
    "backend": ("backend", BackendConfig),
    "knowledge": ("knowledge", KnowledgeConfig),
    "runtime": ("runtime", RuntimeSettings),
    "logging": ("logging", LoggingConfig),
}


def _section(cls: type, raw: Any) -> Any:
    if not isinstance(raw, dict):
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in known})


@dataclass(frozen=True, slots=True)
class ConclaveConfig:
    """Top-level configuration, parsed from conclave.toml."""
    project_name: str = "conclave-project"
    agent: AgentConfig = field(default_factory=AgentConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    knowledge: KnowledgeConfig = field(default_factory=KnowledgeConfig)
    runtime: RuntimeSettings = field(default_factory=RuntimeSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_toml(cls, path: Path | str = "conclave.toml") -> ConclaveConfig:
        return cls.from_dict(_read(Path(path)))

    @classmethod
    def load(cls, project_dir: Path | str | None = None) -> ConclaveConfig:
        """Load config with global then project layering.

        Later wins: built-in defaults, ``~/.conclave/config.toml``, then
        the first of ``.conclave/config.toml`` and ``conclave.toml``
        found in *project_dir* (the working directory by default).
        """
        root = Path.cwd() if project_dir is None else Path(project_dir)
        project = next(
            (root / p for p in PROJECT_CONFIGS if (root / p).is_file()),
            None,
        )
        return cls.from_dict(_layer(
            _read(Path.home() / GLOBAL_CONFIG),
            _read(project) if project is not None else {},
        ))

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ConclaveConfig:
        """Build a config from a parsed TOML document.

        Unknown tables and keys are ignored.
        """
        project = raw.get("project")
        name = project.get("name") if isinstance(project, dict) else None
        sections = {
            attr: _section(section_cls, raw.get(table))
            for table, (attr, section_cls) in _SECTIONS.items()
        }
        return cls(project_name=name or "conclave-project", **sections)
