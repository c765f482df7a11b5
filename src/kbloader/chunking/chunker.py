"""Semantic chunker dispatching between structural, sentence and fixed strategies."""

from __future__ import annotations

import logging

from kbloader.chunking.assembly import add_overlap, blocks_to_chunks, merge_blocks
from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import BlockType, ChunkMetadata, ChunkMethod, ChunkResult
from kbloader.chunking.parser import parse_content_blocks
from kbloader.chunking.strategies import RazdelSentenceChunker, SentenceChunker, fixed_window_spans
from kbloader.documents import Document

logger = logging.getLogger(__name__)


def _wrap_spans(spans: list[tuple[int, str]], method: ChunkMethod) -> list[ChunkResult]:
    return [
        ChunkResult(
            content=piece,
            metadata=ChunkMetadata(
                chunk_index=index,
                block_types=(BlockType.PARAGRAPH,),
                has_heading=False,
                heading_text="",
                start_position=start,
                end_position=start + len(piece),
                method=method,
            ),
        )
        for index, (start, piece) in enumerate(spans)
    ]


def _locate(pieces: list[str], text: str) -> list[tuple[int, str]]:
    """Recover the offset of each piece in ``text``, scanning forward."""

    spans: list[tuple[int, str]] = []
    cursor = 0
    for piece in pieces:
        start = text.find(piece, cursor)
        if start == -1:
            start = cursor
        else:
            cursor = start + len(piece)
        spans.append((start, piece))
    return spans


class SemanticChunker:
    """Split text into embedding-sized chunks according to ``SemanticChunkConfig``.

    The ``custom`` method parses structure (headings, code fences, tables,
    lists, quotes) and never splits a preserved block that fits the size
    budget. ``nlp`` packs sentences from a pluggable ``SentenceChunker`` and
    falls back to ``custom`` when segmentation fails. ``fixed`` cuts
    character windows.
    """

    def __init__(
        self,
        config: SemanticChunkConfig | None = None,
        sentence_chunker: SentenceChunker | None = None,
    ) -> None:
        self._config = config or SemanticChunkConfig()
        self._sentence_chunker = sentence_chunker or RazdelSentenceChunker()

    @property
    def config(self) -> SemanticChunkConfig:
        return self._config

    def split_text(self, text: str) -> list[ChunkResult]:
        if not text or not text.strip():
            return []

        method = self._config.method
        if method is ChunkMethod.NLP:
            try:
                pieces = self._sentence_chunker.chunk(text, self._config.max_tokens)
            except Exception as exc:
                logger.warning("Sentence chunking failed, falling back to structural chunking: %s", exc)
                return self.split_structured(text)
            return _wrap_spans(_locate(pieces, text), ChunkMethod.NLP)

        if method is ChunkMethod.FIXED:
            size = self._config.max_chunk_size
            overlap = min(self._config.chunk_overlap, size - 1)
            return _wrap_spans(fixed_window_spans(text, size, overlap), ChunkMethod.FIXED)

        return self.split_structured(text)

    def split_structured(self, text: str) -> list[ChunkResult]:
        """Run the structural pipeline: parse, merge, assemble, overlap."""

        if not text or not text.strip():
            return []
        blocks = merge_blocks(parse_content_blocks(text), self._config)
        chunks = blocks_to_chunks(blocks, self._config)
        return add_overlap(chunks, self._config.chunk_overlap)

    def split_documents(self, documents: list[Document]) -> list[Document]:
        """Chunk each document, copying its metadata onto every chunk."""

        result: list[Document] = []
        for document in documents:
            for chunk in self.split_text(document.page_content):
                meta = chunk.metadata
                result.append(
                    Document(
                        page_content=chunk.content,
                        metadata={
                            **document.metadata,
                            "chunk_index": meta.chunk_index,
                            "block_types": [block_type.value for block_type in meta.block_types],
                            "has_heading": meta.has_heading,
                            "heading_text": meta.heading_text,
                            "chunk_start": meta.start_position,
                            "chunk_end": meta.end_position,
                            "chunking_method": meta.method.value,
                        },
                    )
                )
        return result


def split_text_semantically(text: str, config: SemanticChunkConfig | None = None) -> list[ChunkResult]:
    """One-shot helper around ``SemanticChunker.split_text``."""

    return SemanticChunker(config).split_text(text)
