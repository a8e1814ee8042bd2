from __future__ import annotations

import dataclasses
import enum
import json
from pathlib import Path
from typing import Any

import aiosqlite


async def get_connection(db_path: str, wal: bool = True) -> aiosqlite.Connection:
    """Open a SQLite connection, creating the directory if needed."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(db_path)
    if wal:
        await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA busy_timeout=5000")
    await conn.execute("PRAGMA synchronous=NORMAL")
    conn.row_factory = aiosqlite.Row
    return conn


def _encode(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def dumps(value: Any) -> str:
    """JSON-encode *value*; dataclasses and enums become plain JSON."""
    return json.dumps(value, default=_encode)


def loads(raw: str | None) -> Any:
    return None if raw is None else json.loads(raw)
