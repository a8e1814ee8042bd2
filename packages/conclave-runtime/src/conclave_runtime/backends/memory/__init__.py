"""T0 In-Process Backend: zero dependencies, in-memory only."""
from __future__ import annotations

from conclave_runtime.backends.memory.storage import InMemoryDatabaseAdapter

__all__ = ["InMemoryDatabaseAdapter"]
