"""Merge parsed blocks and assemble them into sized, overlapping chunks."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import re

from kbloader.chunking.boundaries import split_at_semantic_boundary
from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import BlockType, ChunkMetadata, ChunkMethod, ChunkResult, ContentBlock

OVERLAP_MARKER = "[...]"
BLOCK_SEPARATOR = "\n\n"

_HEADING_MARKER_RE = re.compile(r"^#+\s*")


def _stands_alone(block: ContentBlock, config: SemanticChunkConfig) -> bool:
    if block.type is BlockType.HEADING:
        return config.preserve_headings
    if block.type is BlockType.CODE:
        return config.preserve_code_blocks
    if block.type is BlockType.TABLE:
        return config.preserve_tables
    if block.type is BlockType.LIST:
        return config.preserve_lists
    return False


def merge_blocks(blocks: list[ContentBlock], config: SemanticChunkConfig) -> list[ContentBlock]:
    """Join adjacent mergeable blocks while they fit in ``max_chunk_size``.

    Preserved structures are emitted untouched and separators are dropped.
    """

    merged: list[ContentBlock] = []
    current: ContentBlock | None = None

    for block in blocks:
        if block.type is BlockType.HEADING and not config.preserve_headings:
            block = replace(block, type=BlockType.PARAGRAPH, level=None)

        if _stands_alone(block, config) or block.type is BlockType.SEPARATOR:
            if current is not None:
                merged.append(current)
                current = None
            if block.type is not BlockType.SEPARATOR:
                merged.append(block)
            continue

        if current is None:
            current = block
        elif len(current.content) + len(block.content) + len(BLOCK_SEPARATOR) <= config.max_chunk_size:
            current = replace(
                current,
                content=f"{current.content}{BLOCK_SEPARATOR}{block.content}",
                end_index=block.end_index,
            )
        else:
            merged.append(current)
            current = block

    if current is not None:
        merged.append(current)
    return merged


@dataclass(slots=True)
class _PendingChunk:
    parts: list[str] = field(default_factory=list)
    types: list[BlockType] = field(default_factory=list)
    heading_text: str | None = None
    start: int = 0

    @property
    def size(self) -> int:
        return sum(len(part) for part in self.parts)

    def add(self, block: ContentBlock) -> None:
        if not self.parts:
            self.start = block.start_index
        self.parts.append(block.content)
        self.types.append(block.type)
        if block.type is BlockType.HEADING and self.heading_text is None:
            self.heading_text = _HEADING_MARKER_RE.sub("", block.content).strip()


class _ChunkAssembler:
    def __init__(self, config: SemanticChunkConfig) -> None:
        self._config = config
        self.chunks: list[ChunkResult] = []
        self._pending = _PendingChunk()

    def _append(self, content: str, types: tuple[BlockType, ...], heading_text: str | None, start: int, end: int) -> None:
        self.chunks.append(
            ChunkResult(
                content=content,
                metadata=ChunkMetadata(
                    chunk_index=len(self.chunks),
                    block_types=types,
                    has_heading=BlockType.HEADING in types,
                    heading_text=heading_text or "",
                    start_position=start,
                    end_position=end,
                    method=ChunkMethod.CUSTOM,
                ),
            )
        )

    def _fold_into_previous(self, content: str, types: tuple[BlockType, ...], end: int) -> bool:
        if not self.chunks:
            return False
        previous = self.chunks[-1]
        combined = f"{previous.content}{BLOCK_SEPARATOR}{content}"
        if len(combined) > self._config.max_chunk_size:
            return False
        metadata = replace(
            previous.metadata,
            block_types=tuple(dict.fromkeys(previous.metadata.block_types + types)),
            end_position=end,
        )
        self.chunks[-1] = ChunkResult(content=combined, metadata=metadata)
        return True

    def flush(self, end: int) -> None:
        pending = self._pending
        if not pending.parts:
            return
        self._pending = _PendingChunk()

        content = BLOCK_SEPARATOR.join(pending.parts).strip()
        if not content:
            return
        types = tuple(dict.fromkeys(pending.types))
        # Short fragments without a heading ride along with the previous chunk when they fit.
        if (
            len(content) < self._config.min_chunk_size
            and BlockType.HEADING not in types
            and self._fold_into_previous(content, types, end)
        ):
            return
        self._append(content, types, pending.heading_text, pending.start, end)

    def add_oversized(self, block: ContentBlock) -> None:
        self.flush(block.start_index)
        pieces = split_at_semantic_boundary(
            block.content,
            self._config.max_chunk_size,
            min_chunk_size=self._config.min_chunk_size,
            language_mode=self._config.language_mode,
        )
        for piece in pieces:
            self._append(piece, (block.type,), None, block.start_index, block.end_index)

    def add(self, block: ContentBlock) -> None:
        pending = self._pending
        starts_new = (
            block.type is BlockType.HEADING
            or pending.size + len(block.content) > self._config.max_chunk_size
            or (block.type in (BlockType.CODE, BlockType.TABLE) and bool(pending.parts))
        )
        if starts_new:
            self.flush(block.start_index)
        self._pending.add(block)


def blocks_to_chunks(blocks: list[ContentBlock], config: SemanticChunkConfig) -> list[ChunkResult]:
    """Group merged blocks into chunks with dense ``chunk_index`` values."""

    assembler = _ChunkAssembler(config)
    last_end = 0
    for block in blocks:
        if len(block.content) > config.max_chunk_size:
            assembler.add_oversized(block)
        else:
            assembler.add(block)
        last_end = block.end_index
    assembler.flush(last_end)
    return assembler.chunks


def overlap_excerpt(text: str, overlap: int) -> str:
    """Return the tail of ``text`` used as context for the following chunk.

    The tail is at most ``overlap`` characters and is trimmed forward to the
    last ``。`` or ``. `` inside that window when one exists.
    """

    length = len(text)
    start = length - min(overlap, length)
    sentence_end = text.rfind("。", start + 1, length - 1)
    if sentence_end != -1:
        start = sentence_end + 1
    else:
        period_end = text.rfind(". ", start + 1, length - 1)
        if period_end != -1:
            start = period_end + 2
    return text[start:].strip()


def add_overlap(chunks: list[ChunkResult], overlap: int) -> list[ChunkResult]:
    """Prefix every chunk after the first with a marked excerpt of its predecessor."""

    if overlap <= 0 or len(chunks) <= 1:
        return list(chunks)

    result = [chunks[0]]
    for previous, chunk in zip(chunks, chunks[1:]):
        excerpt = overlap_excerpt(previous.content, overlap)
        if excerpt and not chunk.content.startswith(excerpt):
            chunk = replace(chunk, content=f"{OVERLAP_MARKER} {excerpt}{BLOCK_SEPARATOR}{chunk.content}")
        result.append(chunk)
    return result
