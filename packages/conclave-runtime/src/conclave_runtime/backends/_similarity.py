from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from conclave_core.types import Memory


def _normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=-1, keepdims=True)
    return np.divide(vectors, norms, out=np.zeros_like(vectors), where=norms > 0)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Dimension mismatch: {len(a)} != {len(b)}")
    pair = _normalize(np.asarray([a, b], dtype=np.float32))
    return float(pair[0] @ pair[1])


def rank_memories(
    candidates: Iterable[Memory],
    embedding: Sequence[float],
    count: int,
    match_threshold: float,
) -> list[Memory]:
    """Best *count* candidates at or above *match_threshold*, best first.

    Candidates without an embedding of the query's length are skipped.
    Returned memories carry their score in ``similarity``.
    """
    pool = [
        m for m in candidates
        if m.embedding is not None and len(m.embedding) == len(embedding)
    ]
    if not pool or count <= 0:
        return []

    query = _normalize(np.asarray(embedding, dtype=np.float32))
    matrix = _normalize(np.asarray([m.embedding for m in pool], dtype=np.float32))
    scores = matrix @ query

    # Stable sort keeps insertion order among equal scores.
    order = np.argsort(-scores, kind="stable")
    ranked: list[Memory] = []
    for index in order:
        score = float(scores[index])
        if score < match_threshold:
            break
        ranked.append(dataclasses.replace(pool[index], similarity=score))
        if len(ranked) == count:
            break
    return ranked


def check_dimension(embedding: Sequence[float] | None, dimension: int | None) -> None:
    if embedding is None or dimension is None:
        return
    if len(embedding) != dimension:
        raise ValueError(
            f"Embedding has {len(embedding)} dimensions, expected {dimension}"
        )
