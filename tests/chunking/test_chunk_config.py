from __future__ import annotations

import pytest

from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import ChunkMethod


def test_defaults_match_documented_values() -> None:
    config = SemanticChunkConfig()

    assert config.method is ChunkMethod.NLP
    assert config.max_tokens == 512
    assert config.min_chunk_size == 100
    assert config.max_chunk_size == 2000
    assert config.chunk_overlap == 100
    assert config.preserve_headings and config.preserve_lists
    assert config.preserve_code_blocks and config.preserve_tables
    assert config.language_mode == "auto"


def test_method_string_is_coerced() -> None:
    assert SemanticChunkConfig(method="fixed").method is ChunkMethod.FIXED


def test_from_env_reads_overrides() -> None:
    config = SemanticChunkConfig.from_env(
        {
            "KBLOADER_CHUNK_METHOD": "Custom",
            "KBLOADER_MAX_TOKENS": "128",
            "KBLOADER_MIN_CHUNK_SIZE": "10",
            "KBLOADER_MAX_CHUNK_SIZE": "400",
            "KBLOADER_CHUNK_OVERLAP": "0",
            "KBLOADER_LANGUAGE_MODE": "chinese",
        }
    )

    assert config.method is ChunkMethod.CUSTOM
    assert config.max_tokens == 128
    assert (config.min_chunk_size, config.max_chunk_size) == (10, 400)
    assert config.chunk_overlap == 0
    assert config.language_mode == "chinese"


def test_from_env_rejects_unknown_method() -> None:
    with pytest.raises(ValueError, match="KBLOADER_CHUNK_METHOD"):
        SemanticChunkConfig.from_env({"KBLOADER_CHUNK_METHOD": "paragraphs"})


def test_from_env_rejects_out_of_range_numbers() -> None:
    with pytest.raises(ValueError, match="KBLOADER_MAX_CHUNK_SIZE"):
        SemanticChunkConfig.from_env({"KBLOADER_MAX_CHUNK_SIZE": "0"})

    with pytest.raises(ValueError, match="KBLOADER_CHUNK_OVERLAP"):
        SemanticChunkConfig.from_env({"KBLOADER_CHUNK_OVERLAP": "-5"})


def test_direct_construction_is_validated() -> None:
    with pytest.raises(ValueError, match="min_chunk_size cannot exceed"):
        SemanticChunkConfig(min_chunk_size=500, max_chunk_size=100)

    with pytest.raises(ValueError, match="language_mode"):
        SemanticChunkConfig(language_mode="klingon")

    with pytest.raises(ValueError, match="max_tokens"):
        SemanticChunkConfig(max_tokens=0)
