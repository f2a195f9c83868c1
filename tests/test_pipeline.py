"""Tests for the DocumentPipeline orchestrator."""

import json
from pathlib import Path

import pytest
from conftest import FakeLLM, entity, node_named, relation

from graphen_kg.errors import DocumentTooLargeError, RateLimitedError
from graphen_kg.ingestion.pipeline import DocumentPipeline, node_embedding_text
from graphen_kg.types import (
    ChunkExtractionResult,
    DocumentFileType,
    DocumentStatus,
    ExtractionResult,
    PipelinePhase,
    ProcessOptions,
)

SINGLE_CHUNK_TEXT = b"Apple Inc. designs the iPhone."

# Three paragraphs of ~175 characters; with chunk_size=200 each becomes its own chunk
THREE_CHUNK_TEXT = "\n\n".join(
    " ".join([f"Section {i} talks about Apple and the iPhone in some detail."] * 3)
    for i in range(3)
).encode()


def apple_result(text: str) -> ExtractionResult:
    return ExtractionResult(
        entities=[
            entity("Apple Inc.", "Organization", "Maker of iPhones"),
            entity("iPhone", "Technology", "Smartphone"),
        ],
        relations=[relation("Apple Inc.", "iPhone", "CREATED_BY", "Apple makes the iPhone")],
    )


def collect(pipeline: DocumentPipeline) -> list:
    events: list = []
    pipeline.on_status(events.append)
    return events


class TestHappyPath:
    """End-to-end processing of a small text document."""

    @pytest.mark.asyncio
    async def test_emits_phases_in_order(self, store, embeddings, config, make_document):
        """Phases and progress values follow the fixed sequence."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)
        events = collect(pipeline)

        await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert [e.phase for e in events] == [
            PipelinePhase.PARSING,
            PipelinePhase.CHUNKING,
            PipelinePhase.EXTRACTING,
            PipelinePhase.RESOLVING,
            PipelinePhase.EMBEDDING,
            PipelinePhase.SAVING,
            PipelinePhase.COMPLETED,
        ]
        assert [e.progress for e in events] == [0, 20, 30, 70, 80, 90, 100]
        assert all(e.document_id == "doc-1" for e in events)

    @pytest.mark.asyncio
    async def test_saves_in_order(self, store, embeddings, config, make_document):
        """Document, chunks, nodes, edges, then one embedding per node."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert store.calls == [
            "save_document",
            "save_chunks",
            "save_nodes",
            "save_edges",
            "save_node_embedding",
            "save_node_embedding",
        ]
        assert set(store.node_embeddings) == set(store.nodes)

    @pytest.mark.asyncio
    async def test_saved_document_metadata(self, store, embeddings, config, make_document):
        """Saved document is completed with counts and parse metadata."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        saved = store.documents["doc-1"]
        assert saved.status == DocumentStatus.COMPLETED
        assert saved.parsed_at is not None
        assert saved.metadata.chunk_count == 1
        assert saved.metadata.entity_count == 2
        assert saved.metadata.edge_count == 1
        assert saved.metadata.word_count == 5
        assert result.document == saved

    @pytest.mark.asyncio
    async def test_in_memory_document_status_follows_phases(self, store, embeddings, config, make_document):
        """The caller's document object ends up completed."""
        document = make_document()
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        await pipeline.process(document, SINGLE_CHUNK_TEXT)

        assert document.status == DocumentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_resolved_graph(self, store, embeddings, config, make_document):
        """Nodes and edge come from the extraction result."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        graph = result.resolved_graph
        apple = node_named(graph, "Apple Inc.")
        iphone = node_named(graph, "iPhone")
        assert apple is not None and iphone is not None
        assert len(graph.edges) == 1
        edge = graph.edges[0]
        assert (edge.source_node_id, edge.target_node_id) == (apple.id, iphone.id)
        assert edge.relation_type == "CREATED_BY"
        assert apple.source_chunk_ids == [result.chunks[0].id]

    @pytest.mark.asyncio
    async def test_embeds_nodes_then_chunks(self, store, embeddings, config, make_document):
        """Nodes are embedded from name and description before chunks."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert set(embeddings.calls[:2]) == {
            "Apple Inc.\nMaker of iPhones",
            "iPhone\nSmartphone",
        }
        assert embeddings.calls[2:] == [result.chunks[0].content]
        assert all(node.embedding for node in result.resolved_graph.nodes)
        assert result.chunks[0].embedding is not None

    @pytest.mark.asyncio
    async def test_multi_chunk_document(self, store, embeddings, config, make_document):
        """Each chunk is extracted once and mentions merge across chunks."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(store, llm, embeddings, config)

        result = await pipeline.process(make_document(), THREE_CHUNK_TEXT)

        assert [c.index for c in result.chunks] == [0, 1, 2]
        assert sorted(llm.calls) == sorted(c.content for c in result.chunks)
        assert len(result.resolved_graph.nodes) == 2
        apple = node_named(result.resolved_graph, "Apple Inc.")
        assert sorted(apple.source_chunk_ids) == sorted(c.id for c in result.chunks)

    @pytest.mark.asyncio
    async def test_blank_text_completes_with_empty_graph(self, store, embeddings, config, make_document):
        """No chunks means no extraction calls and an empty graph."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(store, llm, embeddings, config)

        result = await pipeline.process(make_document(), b"   \n\n  ")

        assert result.chunks == []
        assert result.resolved_graph.nodes == []
        assert llm.calls == []
        assert store.documents["doc-1"].status == DocumentStatus.COMPLETED

    def test_node_embedding_text(self):
        """Name and description are joined by a newline."""
        assert node_embedding_text("Apple", "Company") == "Apple\nCompany"


class TestSizeGuard:
    """Oversized documents are rejected before extraction."""

    @pytest.mark.asyncio
    async def test_chunk_limit(self, store, embeddings, config, make_document):
        """Too many chunks raises and makes no extraction calls."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(
            store, llm, embeddings, config.with_overrides(max_chunks_per_document=2)
        )
        events = collect(pipeline)

        with pytest.raises(DocumentTooLargeError) as exc_info:
            await pipeline.process(make_document(), THREE_CHUNK_TEXT)

        assert str(exc_info.value) == (
            "Chunk count limit exceeded: 3 > 2. Please split the document."
        )
        assert exc_info.value.details == {"chunk_count": 3, "limit": 2}
        assert llm.calls == []
        assert events[-1].phase == PipelinePhase.ERROR
        assert events[-1].progress == 100
        assert "Chunk count limit exceeded" in events[-1].message
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_token_limit_uses_llm_estimate(self, store, embeddings, config, make_document):
        """The provider's token estimate feeds the token ceiling."""
        llm = FakeLLM(apple_result, tokens_per_char=100)
        pipeline = DocumentPipeline(
            store, llm, embeddings, config.with_overrides(max_estimated_tokens=1000)
        )

        with pytest.raises(DocumentTooLargeError, match="Estimated token usage too high: 3000 > 1000"):
            await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_explicit_token_estimator_wins(self, store, embeddings, config, make_document):
        """An injected estimator overrides the provider's estimate."""
        llm = FakeLLM(apple_result, tokens_per_char=100)
        pipeline = DocumentPipeline(
            store,
            llm,
            embeddings,
            config.with_overrides(max_estimated_tokens=1000),
            token_estimator=lambda text: 1,
        )

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert result.estimated_tokens == 1

    @pytest.mark.asyncio
    async def test_length_heuristic_fallback(self, store, embeddings, config, make_document):
        """Without any estimator, tokens are ceil(len / 4) per chunk."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert result.estimated_tokens == 8  # ceil(30 / 4)


class TestFailures:
    """Errors emit an error event and propagate unchanged."""

    @pytest.mark.asyncio
    async def test_extraction_failure_propagates(self, store, embeddings, config, make_document):
        """A non-retryable extraction failure aborts the run."""
        boom = ValueError("model returned garbage")

        def fail(text: str) -> ExtractionResult:
            raise boom

        pipeline = DocumentPipeline(store, FakeLLM(fail), embeddings, config)
        events = collect(pipeline)

        with pytest.raises(ValueError) as exc_info:
            await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert exc_info.value is boom
        assert events[-1].phase == PipelinePhase.ERROR
        assert events[-1].message == "model returned garbage"
        assert "save_document" not in store.calls

    @pytest.mark.asyncio
    async def test_retryable_failure_is_retried(self, store, embeddings, config, make_document):
        """A rate-limited extraction is retried by the dispatcher."""
        attempts = []

        def flaky(text: str) -> ExtractionResult:
            attempts.append(text)
            if len(attempts) == 1:
                raise RateLimitedError("429 Too Many Requests")
            return apple_result(text)

        pipeline = DocumentPipeline(store, FakeLLM(flaky), embeddings, config)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert len(attempts) == 2
        assert len(result.resolved_graph.nodes) == 2
        assert pipeline.dispatcher.stats.retries == 1

    @pytest.mark.asyncio
    async def test_parse_error_for_bad_pdf(self, store, embeddings, config, make_document):
        """Unreadable PDF bytes fail in the parsing phase."""
        from graphen_kg.errors import ParseError

        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)
        events = collect(pipeline)

        with pytest.raises(ParseError):
            await pipeline.process(make_document(file_type=DocumentFileType.PDF), b"not a pdf")

        assert [e.phase for e in events] == [PipelinePhase.PARSING, PipelinePhase.ERROR]


class TestStatusListeners:
    """Listener registration and isolation."""

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_abort(self, store, embeddings, config, make_document):
        """Listener exceptions are logged, other listeners still run."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        def broken(event):
            raise RuntimeError("listener bug")

        pipeline.on_status(broken)
        events = collect(pipeline)

        result = await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert result.document.status == DocumentStatus.COMPLETED
        assert events[-1].phase == PipelinePhase.COMPLETED

    @pytest.mark.asyncio
    async def test_unsubscribe(self, store, embeddings, config, make_document):
        """An unsubscribed listener receives nothing."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)
        events: list = []
        unsubscribe = pipeline.on_status(events.append)
        unsubscribe()
        unsubscribe()

        await pipeline.process(make_document(), SINGLE_CHUNK_TEXT)

        assert events == []


class TestCaching:
    """Chunk and extraction caching across runs."""

    @pytest.mark.asyncio
    async def test_resume_only_extracts_missing_chunks(self, store, embeddings, config, make_document):
        """A failed run's finished extractions are reused on the next run."""
        config = config.with_overrides(extraction_concurrency=1)

        def fail_on_second(text: str) -> ExtractionResult:
            if text.startswith("Section 1"):
                raise ValueError("extraction failed")
            return apple_result(text)

        first = FakeLLM(fail_on_second)
        with pytest.raises(ValueError):
            await DocumentPipeline(store, first, embeddings, config).process(
                make_document(), THREE_CHUNK_TEXT
            )
        assert len(first.calls) == 2

        second = FakeLLM(apple_result)
        result = await DocumentPipeline(store, second, embeddings, config).process(
            make_document(), THREE_CHUNK_TEXT
        )

        assert len(second.calls) == 2
        assert all(not text.startswith("Section 0") for text in second.calls)
        assert len(result.chunks) == 3

    @pytest.mark.asyncio
    async def test_cached_chunks_are_reused(self, store, embeddings, config, make_document):
        """A second run keeps the chunk ids of the first."""
        pipeline = DocumentPipeline(store, FakeLLM(apple_result), embeddings, config)

        first = await pipeline.process(make_document(), THREE_CHUNK_TEXT)
        second = await pipeline.process(make_document(), THREE_CHUNK_TEXT)

        assert [c.id for c in second.chunks] == [c.id for c in first.chunks]

    @pytest.mark.asyncio
    async def test_completed_run_makes_no_new_calls(self, store, embeddings, config, make_document):
        """Every chunk is cached after a successful run."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(store, llm, embeddings, config)

        await pipeline.process(make_document(), THREE_CHUNK_TEXT)
        llm.calls.clear()
        await pipeline.process(make_document(), THREE_CHUNK_TEXT)

        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_force_rebuild_ignores_cache(self, store, embeddings, config, make_document):
        """force_rebuild re-chunks and re-extracts everything."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(store, llm, embeddings, config)

        first = await pipeline.process(make_document(), THREE_CHUNK_TEXT)
        llm.calls.clear()
        second = await pipeline.process(
            make_document(), THREE_CHUNK_TEXT, ProcessOptions(force_rebuild=True)
        )

        assert len(llm.calls) == 3
        assert {c.id for c in second.chunks}.isdisjoint(c.id for c in first.chunks)

    @pytest.mark.asyncio
    async def test_raw_text_skips_parsing_and_cache(self, store, embeddings, config, make_document):
        """raw_text replaces the parsed text and rebuilds the cache."""
        llm = FakeLLM(apple_result)
        pipeline = DocumentPipeline(store, llm, embeddings, config)
        await pipeline.process(make_document(), THREE_CHUNK_TEXT)
        llm.calls.clear()

        result = await pipeline.process(
            make_document(file_type=DocumentFileType.PDF),
            b"ignored, not a pdf",
            ProcessOptions(raw_text="Apple Inc. designs the iPhone."),
        )

        assert llm.calls == ["Apple Inc. designs the iPhone."]
        assert [c.content for c in result.chunks] == ["Apple Inc. designs the iPhone."]
        assert result.document.metadata.page_count is None

    @pytest.mark.asyncio
    async def test_stale_extractions_are_discarded(self, store, embeddings, config, make_document):
        """Cached extractions for unknown chunk ids are ignored."""
        cache_file = Path(config.cache_dir) / "doc-1" / "extractions.json"
        cache_file.parent.mkdir(parents=True)
        stale = ChunkExtractionResult(
            chunk_id="gone", chunk_index=0, result=apple_result("")
        )
        cache_file.write_text(json.dumps([stale.model_dump(mode="json")]))
        llm = FakeLLM(apple_result)

        await DocumentPipeline(store, llm, embeddings, config).process(
            make_document(), SINGLE_CHUNK_TEXT
        )

        assert llm.calls == ["Apple Inc. designs the iPhone."]
        cached = json.loads(cache_file.read_text())
        assert "gone" not in [item["chunk_id"] for item in cached]

    @pytest.mark.asyncio
    async def test_corrupt_cache_is_a_miss(self, store, embeddings, config, make_document):
        """Unparseable cache files are rebuilt instead of failing."""
        document_dir = Path(config.cache_dir) / "doc-1"
        document_dir.mkdir(parents=True)
        (document_dir / "chunks.json").write_text("{not json")
        (document_dir / "extractions.json").write_text("[{\"chunk_id\": 1}]")

        result = await DocumentPipeline(store, FakeLLM(apple_result), embeddings, config).process(
            make_document(), SINGLE_CHUNK_TEXT
        )

        assert len(result.chunks) == 1
        assert json.loads((document_dir / "chunks.json").read_text())[0]["id"] == result.chunks[0].id
