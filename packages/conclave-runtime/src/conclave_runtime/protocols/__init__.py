"""Protocol interfaces for the collaborators the runtime consumes."""
from __future__ import annotations

from conclave_runtime.protocols.storage import DatabaseAdapter
from conclave_runtime.protocols.splitter import TextSplitter

__all__ = [
    "DatabaseAdapter",
    "TextSplitter",
]
