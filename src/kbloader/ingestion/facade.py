"""Entry point tying URL acquisition to semantic chunking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from typing import Any, Callable

from kbloader.acquisition.config import CHUNKING_STRATEGIES, UrlLoadOptions
from kbloader.acquisition.loader import ProgressCallback, UrlLoader
from kbloader.acquisition.models import UrlLoadResult
from kbloader.chunking.chunker import SemanticChunker
from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import ChunkMethod
from kbloader.documents import Document

logger = logging.getLogger(__name__)

URL_SEMANTIC_CONFIG = SemanticChunkConfig(
    method=ChunkMethod.CUSTOM,
    max_chunk_size=800,
    min_chunk_size=200,
    chunk_overlap=150,
)
URL_FIXED_CONFIG = SemanticChunkConfig(
    method=ChunkMethod.FIXED,
    max_chunk_size=1000,
    min_chunk_size=0,
    chunk_overlap=200,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def provenance_metadata(result: UrlLoadResult, fetched_at: datetime) -> dict[str, Any]:
    """Document-level metadata describing where and when content was fetched."""

    metadata: dict[str, Any] = {
        "source": result.url,
        "title": result.title or result.url,
        "type": "url",
        "fetched_at": fetched_at.isoformat(),
    }
    if result.meta is not None:
        if result.meta.description:
            metadata["description"] = result.meta.description
        if result.meta.author:
            metadata["author"] = result.meta.author
        if result.meta.site_name:
            metadata["site_name"] = result.meta.site_name
    return metadata


def split_text_to_documents(
    content: str,
    metadata: dict[str, Any] | None = None,
    strategy: str = "semantic",
    semantic_config: SemanticChunkConfig | None = None,
) -> list[Document]:
    """Chunk ``content`` into documents carrying ``metadata`` plus per-chunk fields.

    ``semantic`` uses the structural chunker (``semantic_config`` overrides
    its defaults); ``fixed`` cuts overlapping character windows.
    """

    if strategy not in CHUNKING_STRATEGIES:
        raise ValueError(f"Unknown chunking strategy: {strategy}")

    config = (semantic_config or URL_SEMANTIC_CONFIG) if strategy == "semantic" else URL_FIXED_CONFIG
    source = Document(page_content=content, metadata=dict(metadata or {}))
    documents = SemanticChunker(config).split_documents([source])
    for document in documents:
        document.metadata["chunking_strategy"] = strategy
    return documents


@dataclass(slots=True)
class UrlIngestion:
    """Acquisition result for one URL plus the documents cut from it."""

    result: UrlLoadResult
    documents: list[Document] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result.success


@dataclass(slots=True)
class BatchIngestion:
    results: list[UrlLoadResult] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0


class IngestionFacade:
    """Load URLs or raw text and return chunked, provenance-tagged documents."""

    def __init__(
        self,
        loader: UrlLoader | None = None,
        *,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._owns_loader = loader is None
        self._loader = loader or UrlLoader()
        self._now = now

    def __enter__(self) -> "IngestionFacade":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_loader:
            self._loader.close()

    def _documents_for(
        self,
        result: UrlLoadResult,
        strategy: str,
        semantic_config: SemanticChunkConfig | None,
    ) -> list[Document]:
        if not result.success or not result.content:
            return []
        documents = split_text_to_documents(
            result.content,
            provenance_metadata(result, self._now()),
            strategy,
            semantic_config,
        )
        logger.info("Loaded %s: %d chars, %d chunks", result.url, len(result.content), len(documents))
        return documents

    def ingest_url(
        self,
        url: str,
        options: UrlLoadOptions | None = None,
        semantic_config: SemanticChunkConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UrlIngestion:
        opts = options or UrlLoadOptions()
        result = self._loader.load_from_url(url, opts, on_progress)
        if not result.success:
            logger.warning("Failed to load %s: %s", url, result.error)
        return UrlIngestion(result=result, documents=self._documents_for(result, opts.chunking_strategy, semantic_config))

    def ingest_urls(
        self,
        urls: list[str],
        options: UrlLoadOptions | None = None,
        semantic_config: SemanticChunkConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchIngestion:
        opts = options or UrlLoadOptions()
        batch = self._loader.load_from_urls(urls, opts, on_progress)
        ingestion = BatchIngestion(
            results=list(batch.results),
            success_count=batch.success_count,
            fail_count=batch.fail_count,
        )
        for result in batch.results:
            ingestion.documents.extend(self._documents_for(result, opts.chunking_strategy, semantic_config))
        return ingestion

    def ingest_text(
        self,
        text: str,
        metadata: dict[str, Any] | None = None,
        strategy: str = "semantic",
        semantic_config: SemanticChunkConfig | None = None,
    ) -> list[Document]:
        return split_text_to_documents(text, metadata, strategy, semantic_config)
