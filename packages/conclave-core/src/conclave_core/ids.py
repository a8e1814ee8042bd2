"""Deterministic identifiers.

Knowledge documents, fragments and worlds derive their ids from source
text so that re-ingesting the same input maps onto the same records.
"""
from __future__ import annotations

import uuid

_NAMESPACE = uuid.UUID("6f1c2b7e-3d4a-5e8f-9a0b-c1d2e3f4a5b6")


def string_to_uuid(text: str) -> str:
    """Map *text* to a stable UUID string."""
    return str(uuid.uuid5(_NAMESPACE, text))


def create_unique_uuid(agent_id: str, base: str) -> str:
    """Derive an agent-scoped id from *base*.

    The agent's own id maps to itself; anything else is combined with
    the agent id so two agents ingesting the same text never collide.
    """
    if base == agent_id:
        return agent_id
    return string_to_uuid(f"{base}:{agent_id}")
