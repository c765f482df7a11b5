"""Retrieval strategies tried in order by the URL loader."""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

import httpx

from kbloader.acquisition.config import UrlLoadOptions
from kbloader.acquisition.models import AttemptResult, FetchError, PageMeta
from kbloader.acquisition.router import DEFAULT_CONTENT_TYPE, is_supported_content_type, process_content
from kbloader.acquisition.site_adaptors import (
    READER_STRATEGY,
    SiteAdaptors,
    is_wikipedia_url,
    to_github_raw,
)
from kbloader.acquisition.transport import decode_body, ensure_success, page_headers, send

logger = logging.getLogger(__name__)

DIRECT_STRATEGY = "direct"
WIKIPEDIA_STRATEGY = "wikipedia"
GITHUB_RAW_STRATEGY = "github_raw"


@runtime_checkable
class RetrievalStrategy(Protocol):
    """Contract shared by every way of turning a URL into text."""

    name: str

    def supports(self, url: str) -> bool:
        """Return True when this strategy applies to ``url``."""

    def attempt(self, url: str) -> AttemptResult:
        """Try to retrieve ``url``; never raises."""


def fetch_document(client: httpx.Client, url: str, options: UrlLoadOptions, *, stage: str) -> AttemptResult:
    """GET ``url`` once and route the body through the content-type extractors."""

    try:
        response = ensure_success(
            send(client, "GET", url, headers=page_headers(options.user_agent), timeout=options.timeout, stage=stage),
            stage=stage,
        )
    except FetchError as exc:
        return AttemptResult.failed(stage, exc.message, retryable=exc.retryable)

    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    if not is_supported_content_type(content_type):
        return AttemptResult.failed(stage, f"unsupported content type: {content_type}", terminal=True)

    raw_body = decode_body(response)
    processed = process_content(raw_body, content_type, url, extract_content=options.extract_content)
    return AttemptResult(
        success=True,
        strategy=stage,
        title=processed.title,
        content=processed.content,
        meta=processed.meta,
        raw_body=raw_body,
    )


class DirectFetchStrategy:
    """Fetch the page itself, retrying transient failures with linear backoff."""

    name = DIRECT_STRATEGY

    def __init__(
        self,
        client: httpx.Client,
        options: UrlLoadOptions,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._options = options
        self._sleep = sleep

    def supports(self, url: str) -> bool:
        return True

    def attempt(self, url: str) -> AttemptResult:
        attempts = self._options.max_retries + 1
        result = AttemptResult.failed(self.name, "no fetch attempted")

        for attempt_number in range(1, attempts + 1):
            result = fetch_document(self._client, url, self._options, stage=self.name)
            if result.success or not result.retryable or attempt_number == attempts:
                return result

            delay = self._options.retry_base_seconds * attempt_number
            logger.info(
                "Retrying %s in %.1fs after attempt %d/%d: %s",
                url,
                delay,
                attempt_number,
                attempts,
                result.error,
            )
            self._sleep(delay)

        return result


class ReaderProxyStrategy:
    """Let a server-side reader render the page and return Markdown."""

    name = READER_STRATEGY

    def __init__(self, adaptors: SiteAdaptors, options: UrlLoadOptions) -> None:
        self._adaptors = adaptors
        self._options = options

    def supports(self, url: str) -> bool:
        return self._options.use_reader_proxy

    def attempt(self, url: str) -> AttemptResult:
        return self._adaptors.fetch_with_reader(url, self._options.user_agent, self._options.timeout)


class WikipediaStrategy:
    """Read a Wikipedia article through the REST plain-text endpoint."""

    name = WIKIPEDIA_STRATEGY

    def __init__(self, adaptors: SiteAdaptors, options: UrlLoadOptions) -> None:
        self._adaptors = adaptors
        self._options = options

    def supports(self, url: str) -> bool:
        return is_wikipedia_url(url)

    def attempt(self, url: str) -> AttemptResult:
        text = self._adaptors.fetch_wikipedia_plain(url, self._options.user_agent, self._options.timeout)
        if text is None:
            return AttemptResult.failed(self.name, "Wikipedia plain-text API returned no content")

        article = unquote(urlparse(url).path[len("/wiki/") :]).replace("_", " ")
        return AttemptResult(
            success=True,
            strategy=self.name,
            title=article,
            content=text.strip(),
            meta=PageMeta(title=article, site_name="Wikipedia"),
        )


class GitHubRawStrategy:
    """Fetch the raw file behind a GitHub blob page."""

    name = GITHUB_RAW_STRATEGY

    def __init__(self, client: httpx.Client, options: UrlLoadOptions) -> None:
        self._client = client
        self._options = options

    def supports(self, url: str) -> bool:
        return to_github_raw(url) is not None

    def attempt(self, url: str) -> AttemptResult:
        raw_url = to_github_raw(url)
        if raw_url is None:
            return AttemptResult.failed(self.name, "not a GitHub blob URL")
        return fetch_document(self._client, raw_url, self._options, stage=self.name)


def build_fallback_strategies(
    client: httpx.Client,
    adaptors: SiteAdaptors,
    options: UrlLoadOptions,
) -> list[RetrievalStrategy]:
    """Fallbacks in the fixed order: reader proxy, Wikipedia, GitHub raw."""

    return [
        ReaderProxyStrategy(adaptors, options),
        WikipediaStrategy(adaptors, options),
        GitHubRawStrategy(client, options),
    ]
