"""Configuration for semantic chunking."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

from kbloader.chunking.models import ChunkMethod

DEFAULT_MAX_TOKENS = 512
DEFAULT_MIN_CHUNK_SIZE = 100
DEFAULT_MAX_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 100
LANGUAGE_MODES = frozenset({"chinese", "english", "auto"})


def _parse_int(*, name: str, raw_value: str, minimum: int) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class SemanticChunkConfig:
    """Validated chunking settings; sizes are in characters except ``max_tokens``."""

    method: ChunkMethod = ChunkMethod.NLP
    max_tokens: int = DEFAULT_MAX_TOKENS
    min_chunk_size: int = DEFAULT_MIN_CHUNK_SIZE
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    preserve_headings: bool = True
    preserve_lists: bool = True
    preserve_code_blocks: bool = True
    preserve_tables: bool = True
    language_mode: str = "auto"

    def __post_init__(self) -> None:
        if not isinstance(self.method, ChunkMethod):
            object.__setattr__(self, "method", ChunkMethod(self.method))
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if self.max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")
        if self.min_chunk_size < 0:
            raise ValueError("min_chunk_size cannot be negative")
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError("min_chunk_size cannot exceed max_chunk_size")
        if self.chunk_overlap < 0:
            raise ValueError("chunk_overlap cannot be negative")
        if self.language_mode not in LANGUAGE_MODES:
            raise ValueError(f"language_mode must be one of: {', '.join(sorted(LANGUAGE_MODES))}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SemanticChunkConfig":
        source: Mapping[str, str] = os.environ if environ is None else environ

        method_raw = source.get("KBLOADER_CHUNK_METHOD", ChunkMethod.NLP.value).strip().lower()
        language_mode = source.get("KBLOADER_LANGUAGE_MODE", "auto").strip().lower()
        try:
            method = ChunkMethod(method_raw)
        except ValueError as exc:
            raise ValueError("KBLOADER_CHUNK_METHOD must be one of: nlp, custom, fixed") from exc

        return cls(
            method=method,
            max_tokens=_parse_int(
                name="KBLOADER_MAX_TOKENS",
                raw_value=source.get("KBLOADER_MAX_TOKENS", str(DEFAULT_MAX_TOKENS)),
                minimum=1,
            ),
            min_chunk_size=_parse_int(
                name="KBLOADER_MIN_CHUNK_SIZE",
                raw_value=source.get("KBLOADER_MIN_CHUNK_SIZE", str(DEFAULT_MIN_CHUNK_SIZE)),
                minimum=0,
            ),
            max_chunk_size=_parse_int(
                name="KBLOADER_MAX_CHUNK_SIZE",
                raw_value=source.get("KBLOADER_MAX_CHUNK_SIZE", str(DEFAULT_MAX_CHUNK_SIZE)),
                minimum=1,
            ),
            chunk_overlap=_parse_int(
                name="KBLOADER_CHUNK_OVERLAP",
                raw_value=source.get("KBLOADER_CHUNK_OVERLAP", str(DEFAULT_CHUNK_OVERLAP)),
                minimum=0,
            ),
            language_mode=language_mode,
        )
