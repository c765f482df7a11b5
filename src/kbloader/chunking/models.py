"""Structural blocks and chunk records produced by the semantic chunker."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class BlockType(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    CODE = "code"
    TABLE = "table"
    QUOTE = "quote"
    SEPARATOR = "separator"
    UNKNOWN = "unknown"


class ChunkMethod(str, Enum):
    NLP = "nlp"
    CUSTOM = "custom"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class ContentBlock:
    """A classified span of source text.

    ``level`` is the heading depth or list nesting level, ``language`` the
    code fence language. ``start_index``/``end_index`` are character offsets
    into the source text.
    """

    type: BlockType
    content: str
    start_index: int
    end_index: int
    level: int | None = None
    language: str | None = None


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    chunk_index: int
    block_types: tuple[BlockType, ...]
    has_heading: bool
    heading_text: str
    start_position: int
    end_position: int
    method: ChunkMethod


@dataclass(frozen=True, slots=True)
class ChunkResult:
    """Final chunk ready for embedding, with positional and structural metadata."""

    content: str
    metadata: ChunkMetadata

    def to_dict(self) -> dict[str, object]:
        meta = self.metadata
        return {
            "content": self.content,
            "chunk_index": meta.chunk_index,
            "block_types": [block_type.value for block_type in meta.block_types],
            "has_heading": meta.has_heading,
            "heading_text": meta.heading_text,
            "start_position": meta.start_position,
            "end_position": meta.end_position,
            "method": meta.method.value,
        }
