"""Character file loading (TOML or JSON)."""
from __future__ import annotations

import json
import tomllib
from pathlib import Path

from conclave_core.errors import ConfigError
from conclave_core.types import Character


def character_from_dict(raw: dict) -> Character:
    """Build a Character from a parsed document.

    Only string knowledge entries are kept; anything else in the
    ``knowledge`` list is ignored.
    """
    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise ConfigError("Character definition requires a 'name'")

    knowledge = [k for k in raw.get("knowledge", []) if isinstance(k, str)]

    return Character(
        name=name,
        id=raw.get("id"),
        bio=raw.get("bio", ""),
        plugins=list(raw.get("plugins", [])),
        knowledge=knowledge,
        settings=dict(raw.get("settings", {})),
        secrets=dict(raw.get("secrets", {})),
    )


def load_character(path: Path | str) -> Character:
    """Load a character from a ``.toml`` or ``.json`` file."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Character file not found: {path}")

    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        elif path.suffix == ".json":
            raw = json.loads(path.read_text())
        else:
            raise ConfigError(
                f"Unsupported character file type: {path.suffix!r}"
            )
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid character file {path}: {exc}") from exc

    return character_from_dict(raw)
