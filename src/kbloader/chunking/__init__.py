"""Semantic chunking package interfaces."""

from .chunker import SemanticChunker, split_text_semantically
from .config import SemanticChunkConfig
from .models import BlockType, ChunkMetadata, ChunkMethod, ChunkResult, ContentBlock
from .strategies import ChunkingError, SentenceChunker

__all__ = [
    "BlockType",
    "ChunkMetadata",
    "ChunkMethod",
    "ChunkResult",
    "ChunkingError",
    "ContentBlock",
    "SemanticChunkConfig",
    "SemanticChunker",
    "SentenceChunker",
    "split_text_semantically",
]
