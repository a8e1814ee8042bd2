"""T1 SQLite Backend: persistent, zero external infrastructure."""
from __future__ import annotations

from conclave_runtime.backends.sqlite.storage import SQLiteDatabaseAdapter

__all__ = ["SQLiteDatabaseAdapter"]
