from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable


@runtime_checkable
class TextSplitter(Protocol):
    """Splits long text into ordered, overlapping fragments."""

    def split(
        self, text: str, target_tokens: int, overlap_tokens: int
    ) -> Iterable[str]: ...
