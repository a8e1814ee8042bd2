from __future__ import annotations

import pytest
from conclave_core.config import KnowledgeConfig
from conclave_core.ids import create_unique_uuid
from conclave_core.types import Content, KnowledgeItem, MemoryType, ModelType
from conclave_runtime.knowledge import (
    DOCUMENTS_TABLE,
    FRAGMENTS_TABLE,
    KnowledgeOptions,
    TokenWindowSplitter,
)
from conclave_runtime.runtime import AgentRuntime


class FixedSplitter:
    def __init__(self, chunks):
        self.chunks = chunks

    def split(self, text, target_tokens, overlap_tokens):
        return list(self.chunks)


class LetterEncoding:
    """One token per character."""

    def encode(self, text):
        return [ord(c) for c in text]

    def decode(self, tokens):
        return "".join(chr(t) for t in tokens)


class TestTokenWindowSplitter:
    def test_windows_overlap(self):
        splitter = TokenWindowSplitter()
        splitter._encoding = LetterEncoding()
        assert splitter.split("abcdefg", 4, 2) == ["abcd", "cdef", "efg"]

    def test_chunks_are_stripped(self):
        splitter = TokenWindowSplitter()
        splitter._encoding = LetterEncoding()
        assert splitter.split("ab  cd", 3, 0) == ["ab", "cd"]

    def test_empty_text(self):
        assert TokenWindowSplitter().split("   ", 10, 2) == []

    def test_counts_bpe_tokens(self):
        splitter = TokenWindowSplitter()
        assert splitter.count_tokens("hello world") == 2
        assert splitter.count_tokens("") == 0

    def test_short_text_single_chunk(self):
        assert TokenWindowSplitter().split("one two", 10, 2) == ["one two"]

    async def test_encoding_from_config(self, character, memory_adapter):
        rt = AgentRuntime(
            character,
            adapter=memory_adapter,
            knowledge=KnowledgeConfig(encoding="o200k_base"),
        )
        assert rt.knowledge._splitter.encoding_name == "o200k_base"


class TestAddKnowledge:
    async def test_document_and_positioned_fragments(self, character, memory_adapter):
        rt = AgentRuntime(
            character,
            adapter=memory_adapter,
            splitter=FixedSplitter(["one", "two", "three"]),
        )
        item = KnowledgeItem(id="doc-1", content=Content(text="one two three"))

        fragment_ids = await rt.add_knowledge(item)

        document = await memory_adapter.get_memory_by_id("doc-1")
        assert document.metadata.type is MemoryType.DOCUMENT
        assert document.room_id == rt.agent_id

        assert len(fragment_ids) == 3
        for position, fragment_id in enumerate(fragment_ids):
            assert fragment_id == create_unique_uuid(rt.agent_id, f"doc-1-fragment-{position}")
            fragment = await memory_adapter.get_memory_by_id(fragment_id)
            assert fragment.metadata.type is MemoryType.FRAGMENT
            assert fragment.metadata.document_id == "doc-1"
            assert fragment.metadata.position == position
            assert fragment.embedding is None

    async def test_options_reach_splitter(self, runtime):
        seen = []

        class Spy:
            def split(self, text, target_tokens, overlap_tokens):
                seen.append((target_tokens, overlap_tokens))
                return [text]

        runtime.knowledge._splitter = Spy()
        await runtime.add_knowledge(
            KnowledgeItem(id="d", content=Content(text="x")),
            KnowledgeOptions(target_tokens=50, overlap_tokens=5),
        )
        assert seen == [(50, 5)]

    async def test_fragments_embedded_when_model_registered(self, runtime, keyword_embedder):
        runtime.register_model(ModelType.TEXT_EMBEDDING, keyword_embedder)
        ids = await runtime.add_knowledge(
            KnowledgeItem(id="d", content=Content(text="the cat sat"))
        )
        fragment = await runtime.get_database_adapter().get_memory_by_id(ids[0])
        assert fragment.embedding == [1.0, 0.0, 0.0, 0.0]
        assert keyword_embedder.calls == [{"text": "the cat sat"}]


class TestGetKnowledge:
    async def test_returns_matching_documents(self, character, memory_adapter, keyword_embedder, make_message):
        rt = AgentRuntime(
            character,
            adapter=memory_adapter,
            knowledge=KnowledgeConfig(target_tokens=3, overlap_tokens=0, match_threshold=0.6),
        )
        rt.register_model(ModelType.TEXT_EMBEDDING, keyword_embedder)

        await rt.add_knowledge(KnowledgeItem(
            id="pets", content=Content(text="my cat naps the dog barks"),
        ))
        await rt.add_knowledge(KnowledgeItem(
            id="sea", content=Content(text="a fish swims deep"),
        ))

        results = await rt.get_knowledge(make_message(rt.agent_id, text="tell me about the cat"))
        assert [r.id for r in results] == ["pets"]
        assert results[0].content.text == "my cat naps the dog barks"

    async def test_empty_text_skips_embedding(self, runtime, keyword_embedder, make_message):
        runtime.register_model(ModelType.TEXT_EMBEDDING, keyword_embedder)
        assert await runtime.get_knowledge(make_message(runtime.agent_id, text="   ")) == []
        assert keyword_embedder.calls == []

    async def test_documents_deduplicated(self, character, memory_adapter, keyword_embedder, make_message):
        rt = AgentRuntime(
            character,
            adapter=memory_adapter,
            splitter=FixedSplitter(["cat one", "cat two"]),
        )
        rt.register_model(ModelType.TEXT_EMBEDDING, keyword_embedder)
        await rt.add_knowledge(KnowledgeItem(id="cats", content=Content(text="cat cat")))

        results = await rt.get_knowledge(make_message(rt.agent_id, text="cat"))
        assert [r.id for r in results] == ["cats"]


class TestCharacterKnowledge:
    async def test_idempotent(self, runtime, memory_adapter):
        await runtime.process_character_knowledge(["The sky is blue."])
        count = len(memory_adapter._memories)
        await runtime.process_character_knowledge(["The sky is blue."])

        assert len(memory_adapter._memories) == count
        doc_id = create_unique_uuid(runtime.agent_id, "The sky is blue.")
        assert (await memory_adapter.get_memory_by_id(doc_id)) is not None

    async def test_failure_propagates(self, runtime):
        class Broken:
            def split(self, text, target_tokens, overlap_tokens):
                raise ValueError("cannot split")

        runtime.knowledge._splitter = Broken()
        with pytest.raises(ValueError, match="cannot split"):
            await runtime.process_character_knowledge(["anything"])

    def test_table_names(self):
        assert DOCUMENTS_TABLE == "documents"
        assert FRAGMENTS_TABLE == "knowledge"
