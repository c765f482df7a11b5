"""Data structures produced by the acquisition pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class PageMeta:
    """Page-level metadata scraped from document head tags."""

    title: str | None = None
    description: str | None = None
    keywords: tuple[str, ...] = ()
    author: str | None = None
    publish_date: str | None = None
    og_image: str | None = None
    site_name: str | None = None

    def to_dict(self) -> dict[str, str | list[str]]:
        payload: dict[str, str | list[str]] = {}
        for name in ("title", "description", "author", "publish_date", "og_image", "site_name"):
            value = getattr(self, name)
            if value:
                payload[name] = value
        if self.keywords:
            payload["keywords"] = list(self.keywords)
        return payload


@dataclass(frozen=True, slots=True)
class ProcessedContent:
    """Router output: readable text plus the title and metadata it came with."""

    title: str
    content: str
    meta: PageMeta = field(default_factory=PageMeta)


@dataclass(slots=True)
class FetchError(Exception):
    """Domain error raised by low-level fetch helpers."""

    stage: str
    message: str
    status_code: int | None = None
    retryable: bool = False

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class AttemptResult:
    """Outcome of one retrieval strategy attempt for one URL."""

    success: bool
    strategy: str
    title: str = ""
    content: str = ""
    meta: PageMeta | None = None
    raw_body: str | None = None
    error: str | None = None
    retryable: bool = False
    terminal: bool = False

    @classmethod
    def failed(
        cls,
        strategy: str,
        error: str,
        *,
        retryable: bool = False,
        terminal: bool = False,
    ) -> "AttemptResult":
        return cls(success=False, strategy=strategy, error=error, retryable=retryable, terminal=terminal)


@dataclass(frozen=True, slots=True)
class UrlLoadResult:
    """Terminal acquisition result for a single URL."""

    success: bool
    url: str
    title: str | None = None
    content: str | None = None
    meta: PageMeta | None = None
    links: tuple[str, ...] | None = None
    content_length: int | None = None
    error: str | None = None

    @classmethod
    def ok(
        cls,
        url: str,
        *,
        title: str,
        content: str,
        meta: PageMeta | None = None,
        links: tuple[str, ...] | None = None,
    ) -> "UrlLoadResult":
        return cls(
            success=True,
            url=url,
            title=title,
            content=content,
            meta=meta,
            links=links,
            content_length=len(content),
        )

    @classmethod
    def failed(cls, url: str, error: str) -> "UrlLoadResult":
        return cls(success=False, url=url, error=error)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success, "url": self.url}
        if self.success:
            payload["title"] = self.title
            payload["content_length"] = self.content_length
            if self.meta is not None:
                payload["meta"] = self.meta.to_dict()
            if self.links is not None:
                payload["links"] = list(self.links)
        else:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class BatchLoadResult:
    """Aggregated output of a sequential multi-URL load."""

    results: list[UrlLoadResult] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0


@dataclass(frozen=True, slots=True)
class UrlCheck:
    """Reachability verdict returned by ``validate_url``."""

    valid: bool
    error: str | None = None
