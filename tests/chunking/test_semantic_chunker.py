from __future__ import annotations

import logging

import pytest

from kbloader.chunking.chunker import SemanticChunker, split_text_semantically
from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import BlockType, ChunkMethod
from kbloader.chunking.strategies import ChunkingError, estimate_tokens
from kbloader.documents import Document

_LONG_DOCUMENT = "\n\n".join(
    [
        "# Guide",
        "This guide explains how documents are split. " * 4,
        "## Install",
        "Run the installer and accept the defaults. " * 5,
        "```bash\npip install kbloader\nkbloader-load-url https://example.com/post\n```",
        "After installing, configure the environment variables. " * 4,
        "## Usage",
        "- load a page\n- chunk the text\n- index the chunks",
        "Each chunk keeps its heading and offsets for citations. " * 5 + "Offsets point back into the source text.",
    ]
)


class _FailingSentenceChunker:
    def chunk(self, text: str, max_tokens: int) -> list[str]:
        raise ChunkingError(strategy="nlp", message="model unavailable")


class _BrokenSentenceChunker:
    def chunk(self, text: str, max_tokens: int) -> list[str]:
        raise RuntimeError("segmenter model missing")


class _StaticSentenceChunker:
    def __init__(self, pieces: list[str]) -> None:
        self._pieces = pieces

    def chunk(self, text: str, max_tokens: int) -> list[str]:
        return list(self._pieces)


def _custom(**overrides: object) -> SemanticChunker:
    values: dict[str, object] = {"method": ChunkMethod.CUSTOM}
    values.update(overrides)
    return SemanticChunker(SemanticChunkConfig(**values))


def test_empty_input_returns_no_chunks() -> None:
    assert SemanticChunker().split_text("") == []
    assert _custom().split_text("  \n\t\n") == []


def test_heading_and_paragraphs_form_one_section_chunk() -> None:
    chunks = _custom(max_chunk_size=1000).split_text("# Title\n\nPara one.\n\nPara two.")

    assert len(chunks) == 1
    assert chunks[0].content == "# Title\n\nPara one.\n\nPara two."
    assert chunks[0].metadata.has_heading
    assert chunks[0].metadata.heading_text == "Title"
    assert chunks[0].metadata.method is ChunkMethod.CUSTOM


def test_chunking_is_idempotent() -> None:
    chunker = _custom(max_chunk_size=300, min_chunk_size=50, chunk_overlap=60)

    assert chunker.split_text(_LONG_DOCUMENT) == chunker.split_text(_LONG_DOCUMENT)


def test_chunk_indices_are_dense_and_ordered() -> None:
    chunks = _custom(max_chunk_size=300, min_chunk_size=50, chunk_overlap=0).split_text(_LONG_DOCUMENT)

    assert [chunk.metadata.chunk_index for chunk in chunks] == list(range(len(chunks)))
    starts = [chunk.metadata.start_position for chunk in chunks]
    assert starts == sorted(starts)


def test_code_fence_survives_in_one_chunk() -> None:
    fence = "```bash\npip install kbloader\nkbloader-load-url https://example.com/post\n```"

    chunks = _custom(max_chunk_size=300, min_chunk_size=50, chunk_overlap=60).split_text(_LONG_DOCUMENT)

    assert any(fence in chunk.content for chunk in chunks)
    assert any(BlockType.CODE in chunk.metadata.block_types for chunk in chunks)


def test_no_words_are_dropped() -> None:
    chunks = _custom(max_chunk_size=300, min_chunk_size=50, chunk_overlap=0).split_text(_LONG_DOCUMENT)

    produced = " ".join(chunk.content for chunk in chunks).split()
    assert produced == _LONG_DOCUMENT.split()


def test_overlap_marks_continuations() -> None:
    chunks = _custom(max_chunk_size=300, min_chunk_size=50, chunk_overlap=60).split_text(_LONG_DOCUMENT)

    assert len(chunks) > 1
    assert all(chunk.content.startswith("[...] ") for chunk in chunks[1:])
    assert not chunks[0].content.startswith("[...]")


def test_nlp_failure_falls_back_to_structural_chunking(caplog: pytest.LogCaptureFixture) -> None:
    chunker = SemanticChunker(SemanticChunkConfig(method="nlp"), sentence_chunker=_FailingSentenceChunker())

    with caplog.at_level(logging.WARNING):
        chunks = chunker.split_text("# Title\n\nPara one.")

    assert [chunk.metadata.method for chunk in chunks] == [ChunkMethod.CUSTOM]
    assert "model unavailable" in caplog.text


def test_unexpected_segmenter_error_also_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    chunker = SemanticChunker(sentence_chunker=_BrokenSentenceChunker())

    with caplog.at_level(logging.WARNING):
        chunks = chunker.split_text("# Title\n\nPara one.")

    assert [chunk.content for chunk in chunks] == ["# Title\n\nPara one."]
    assert chunks[0].metadata.method is ChunkMethod.CUSTOM
    assert "segmenter model missing" in caplog.text


def test_nlp_chunks_carry_source_offsets() -> None:
    chunker = SemanticChunker(sentence_chunker=_StaticSentenceChunker(["Alpha one.", "Beta two."]))

    chunks = chunker.split_text("Alpha one. Beta two.")

    assert [(chunk.content, chunk.metadata.start_position, chunk.metadata.end_position) for chunk in chunks] == [
        ("Alpha one.", 0, 10),
        ("Beta two.", 11, 20),
    ]
    assert all(chunk.metadata.method is ChunkMethod.NLP for chunk in chunks)


def test_default_nlp_method_packs_razdel_sentences() -> None:
    chunker = SemanticChunker(SemanticChunkConfig(max_tokens=5))

    chunks = chunker.split_text("Первое предложение тут. Второе предложение здесь. Третье.")

    assert [chunk.content for chunk in chunks] == [
        "Первое предложение тут.",
        "Второе предложение здесь. Третье.",
    ]


def test_default_nlp_method_keeps_chinese_chunks_within_token_budget() -> None:
    text = "这是一个用于测试的中文句子，包含足够的字符。" * 200

    chunks = SemanticChunker(SemanticChunkConfig(method="nlp", max_tokens=512)).split_text(text)

    assert len(chunks) > 1
    assert all(estimate_tokens(chunk.content) <= 512 for chunk in chunks)
    assert chunks[0].metadata.start_position == 0
    assert chunks[-1].metadata.end_position == len(text)


def test_fixed_method_cuts_overlapping_windows() -> None:
    config = SemanticChunkConfig(method=ChunkMethod.FIXED, max_chunk_size=10, min_chunk_size=0, chunk_overlap=2)

    chunks = SemanticChunker(config).split_text("abcdefghijklmnopqrstuvwxyz")

    assert [chunk.content for chunk in chunks] == ["abcdefghij", "ijklmnopqr", "qrstuvwxyz"]
    assert [chunk.metadata.start_position for chunk in chunks] == [0, 8, 16]


def test_split_documents_copies_metadata_onto_chunks() -> None:
    documents = [Document(page_content="# Title\n\nPara one.", metadata={"source": "notes.md"})]

    result = _custom().split_documents(documents)

    assert len(result) == 1
    assert result[0].metadata == {
        "source": "notes.md",
        "chunk_index": 0,
        "block_types": ["heading", "paragraph"],
        "has_heading": True,
        "heading_text": "Title",
        "chunk_start": 0,
        "chunk_end": 19,
        "chunking_method": "custom",
    }
    assert documents[0].metadata == {"source": "notes.md"}


def test_split_text_semantically_uses_given_config() -> None:
    chunks = split_text_semantically("# A\n\nText.", SemanticChunkConfig(method=ChunkMethod.CUSTOM))

    assert chunks[0].metadata.heading_text == "A"
