"""Knowledge ingestion and retrieval.

Long-form text is stored as one document memory plus an ordered set of
fragment memories. Fragments are the searchable unit; a search result
resolves back to the documents its fragments came from.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import tiktoken
from conclave_core.ids import create_unique_uuid
from conclave_core.logging import get_logger
from conclave_core.types import (
    Content,
    KnowledgeItem,
    Memory,
    MemoryMetadata,
    MemoryType,
    ModelType,
)

if TYPE_CHECKING:
    from conclave_core.config import KnowledgeConfig

    from conclave_runtime.protocols.splitter import TextSplitter
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("knowledge")

DOCUMENTS_TABLE = "documents"
FRAGMENTS_TABLE = "knowledge"
DEFAULT_ENCODING = "cl100k_base"


@dataclass(frozen=True, slots=True)
class KnowledgeOptions:
    target_tokens: int = 3000
    overlap_tokens: int = 200
    model_context_size: int = 4096


class TokenWindowSplitter:
    """Windows of *target_tokens* BPE tokens overlapping by *overlap_tokens*.

    Tokens are counted with a tiktoken encoding, loaded on first use.
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING) -> None:
        self.encoding_name = encoding
        self._encoding: tiktoken.Encoding | None = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text)) if text else 0

    def split(
        self, text: str, target_tokens: int, overlap_tokens: int
    ) -> list[str]:
        if not text.strip():
            return []
        tokens = self.encoding.encode(text)
        size = max(1, target_tokens)
        step = max(1, size - max(0, overlap_tokens))
        chunks: list[str] = []
        for start in range(0, len(tokens), step):
            chunk = self.encoding.decode(tokens[start:start + size]).strip()
            if chunk:
                chunks.append(chunk)
            if start + size >= len(tokens):
                break
        return chunks


class KnowledgePipeline:
    """Ingests documents into fragments and searches them."""

    def __init__(
        self,
        runtime: AgentRuntime,
        splitter: TextSplitter | None = None,
        config: KnowledgeConfig | None = None,
    ) -> None:
        self._runtime = runtime
        self._splitter = splitter or TokenWindowSplitter(
            config.encoding if config is not None else DEFAULT_ENCODING
        )
        self._config = config

    def default_options(self) -> KnowledgeOptions:
        if self._config is None:
            return KnowledgeOptions()
        return KnowledgeOptions(
            target_tokens=self._config.target_tokens,
            overlap_tokens=self._config.overlap_tokens,
            model_context_size=self._config.model_context_size,
        )

    async def add_knowledge(
        self,
        item: KnowledgeItem,
        options: KnowledgeOptions | None = None,
    ) -> list[str]:
        """Store *item* as a document plus one fragment per chunk.

        Returns the fragment ids in position order.
        """
        options = options or self.default_options()
        runtime = self._runtime
        agent_id = runtime.agent_id
        adapter = runtime.get_database_adapter()

        await adapter.create_memory(
            Memory(
                id=item.id,
                entity_id=agent_id,
                room_id=agent_id,
                agent_id=agent_id,
                content=item.content,
                metadata=MemoryMetadata(type=MemoryType.DOCUMENT),
            ),
            DOCUMENTS_TABLE,
        )

        chunks = self._splitter.split(
            item.content.text, options.target_tokens, options.overlap_tokens
        )
        embed = runtime.models.has(ModelType.TEXT_EMBEDDING)

        fragment_ids: list[str] = []
        for position, chunk in enumerate(chunks):
            fragment_id = create_unique_uuid(
                agent_id, f"{item.id}-fragment-{position}"
            )
            embedding = (
                await runtime.use_model(
                    ModelType.TEXT_EMBEDDING, {"text": chunk}
                )
                if embed
                else None
            )
            await adapter.create_memory(
                Memory(
                    id=fragment_id,
                    entity_id=agent_id,
                    room_id=agent_id,
                    agent_id=agent_id,
                    content=Content(text=chunk),
                    metadata=MemoryMetadata(
                        type=MemoryType.FRAGMENT,
                        document_id=item.id,
                        position=position,
                    ),
                    embedding=embedding,
                ),
                FRAGMENTS_TABLE,
            )
            fragment_ids.append(fragment_id)

        logger.debug(
            "Stored document %s with %d fragments", item.id, len(fragment_ids)
        )
        return fragment_ids

    async def get_knowledge(self, message: Memory) -> list[KnowledgeItem]:
        """Return the documents whose fragments best match *message*."""
        text = message.content.text if message.content else ""
        if not text or not text.strip():
            logger.warning("Empty text for knowledge query")
            return []

        runtime = self._runtime
        adapter = runtime.get_database_adapter()
        count = self._config.search_count if self._config else 5
        threshold = self._config.match_threshold if self._config else 0.1

        embedding = await runtime.use_model(
            ModelType.TEXT_EMBEDDING, {"text": text}
        )
        fragments = await adapter.search_memories(
            table_name=FRAGMENTS_TABLE,
            embedding=embedding,
            room_id=message.agent_id,
            count=count,
            match_threshold=threshold,
        )

        document_ids: list[str] = []
        for fragment in fragments:
            logger.debug(
                "Matched fragment %s with similarity %s",
                fragment.id,
                fragment.similarity,
            )
            doc_id = fragment.metadata.document_id if fragment.metadata else None
            if doc_id and doc_id not in document_ids:
                document_ids.append(doc_id)

        documents = await asyncio.gather(
            *(adapter.get_memory_by_id(doc_id) for doc_id in document_ids)
        )
        return [
            KnowledgeItem(id=doc.id, content=doc.content)
            for doc in documents
            if doc is not None
        ]

    async def process_character_knowledge(self, items: list[str]) -> None:
        """Ingest static knowledge strings, skipping ones already stored.

        A failure is logged and re-raised, leaving later items untouched.
        """
        runtime = self._runtime
        adapter = runtime.get_database_adapter()

        for text in items:
            try:
                knowledge_id = create_unique_uuid(runtime.agent_id, text)
                if await adapter.get_memory_by_id(knowledge_id) is not None:
                    continue

                logger.info(
                    "Processing knowledge for %s - %s",
                    runtime.character.name,
                    text[:100],
                )
                await self.add_knowledge(
                    KnowledgeItem(id=knowledge_id, content=Content(text=text))
                )
            except Exception:
                logger.exception("Error processing character knowledge")
                raise
