"""Per-turn state composition with a message-keyed provider cache."""
from __future__ import annotations

import asyncio
import copy
import time
from typing import TYPE_CHECKING, Any

from conclave_core.logging import get_logger
from conclave_core.types import State

if TYPE_CHECKING:
    from conclave_core.types import Memory, ProviderResult

    from conclave_runtime.plugin import Provider
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("state")


class StateComposer:
    """Gathers provider output for a message into a State snapshot.

    Snapshots are cached by message id for the lifetime of the runtime,
    so repeated composition within a turn only runs providers that are
    not cached yet (or that the caller explicitly asks for).
    """

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime
        self._providers: list[Provider] = []
        self._cache: dict[str, State] = {}

    # ── Providers ───────────────────────────────────────────────────

    def register(self, provider: Provider) -> None:
        self._providers.append(provider)

    @property
    def providers(self) -> list[Provider]:
        return list(self._providers)

    # ── Cache ───────────────────────────────────────────────────────

    def cached(self, message_id: str) -> State | None:
        entry = self._cache.get(message_id)
        return copy.deepcopy(entry) if entry is not None else None

    def clear(self, message_id: str) -> None:
        self._cache.pop(message_id, None)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ── Composition ─────────────────────────────────────────────────

    def _select(
        self,
        cached_names: list[str],
        filter_list: list[str] | None,
        include_list: list[str] | None,
    ) -> list[Provider]:
        names: set[str] = set()
        if filter_list:
            names.update(filter_list)
        else:
            names.update(
                p.name
                for p in self._providers
                if not p.private
                and not p.dynamic
                and p.name not in cached_names
            )
        if include_list:
            names.update(include_list)

        selected: list[Provider] = []
        seen: set[int] = set()
        for provider in self._providers:
            if provider.name in names and id(provider) not in seen:
                seen.add(id(provider))
                selected.append(provider)

        # sorted() is stable, so equal positions keep registration order.
        return sorted(selected, key=lambda p: p.position)

    async def _fetch(
        self, provider: Provider, message: Memory, cached: State
    ) -> ProviderResult:
        start = time.monotonic()
        result = await provider.get(self._runtime, message, cached)
        logger.debug(
            "%s provider took %.1fms to respond",
            provider.name,
            (time.monotonic() - start) * 1000,
        )
        return result

    async def compose_state(
        self,
        message: Memory,
        filter_list: list[str] | None = None,
        include_list: list[str] | None = None,
    ) -> State:
        """Compose the state snapshot for *message*.

        Args:
            message: The message whose id keys the cache.
            filter_list: When non-empty, only these providers are fetched
                (cached or not).
            include_list: Providers fetched in addition to the default or
                filtered set; the only way to run private or dynamic
                providers.

        Returns:
            A new snapshot. The cache keeps its own copy, so callers may
            mutate the result without affecting later compositions.
        """
        cached = self.cached(message.id) or State()
        cached_providers: dict[str, Any] = cached.data.get("providers", {})

        to_fetch = self._select(
            list(cached_providers), filter_list, include_list
        )

        # Providers see a copy of the cached state, never this call's partial merge.
        view = copy.deepcopy(cached)
        results = await asyncio.gather(
            *(self._fetch(p, message, view) for p in to_fetch)
        )

        per_provider: dict[str, Any] = dict(cached_providers)
        for provider, result in zip(to_fetch, results, strict=True):
            per_provider[provider.name] = {
                "values": dict(result.values or {}),
                "data": dict(result.data or {}),
                "text": result.text or "",
            }

        values: dict[str, Any] = dict(cached.values)
        for entry in per_provider.values():
            provider_values = entry.get("values")
            if isinstance(provider_values, dict):
                values.update(provider_values)

        new_text = "\n".join(r.text for r in results if r.text)
        text = "\n".join(t for t in (cached.text, new_text) if t)

        state = State(
            values={**values, "providers": text},
            data={**cached.data, "providers": per_provider},
            text=text,
        )
        self._cache[message.id] = copy.deepcopy(state)
        return state
