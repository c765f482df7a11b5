"""URL retrieval orchestrator: validation, direct fetch with retries, fallbacks."""

from __future__ import annotations

import ipaddress
import logging
import re
import time
from typing import Callable
from urllib.parse import urlparse

import httpx

from kbloader.acquisition.config import UrlLoadOptions
from kbloader.acquisition.meta import extract_page_links
from kbloader.acquisition.models import AttemptResult, BatchLoadResult, FetchError, PageMeta, UrlCheck, UrlLoadResult
from kbloader.acquisition.site_adaptors import READER_STRATEGY, SiteAdaptors
from kbloader.acquisition.strategies import DirectFetchStrategy, ReaderProxyStrategy, build_fallback_strategies
from kbloader.acquisition.transport import send

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], None]

BATCH_DELAY_AFTER_SUCCESS_SECONDS = 0.3
BATCH_DELAY_AFTER_FAILURE_SECONDS = 0.5
DEFAULT_VALIDATE_TIMEOUT_SECONDS = 10.0
VALIDATOR_USER_AGENT = "Mozilla/5.0 (compatible; URLValidator/1.0)"

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*$",
    re.IGNORECASE,
)


def _is_valid_host(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return _HOSTNAME_RE.match(hostname) is not None
    return True


def _host_allowed(hostname: str, allowed_hosts: tuple[str, ...]) -> bool:
    return any(hostname == allowed or hostname.endswith(f".{allowed}") for allowed in allowed_hosts)


def check_url(url: str, allowed_hosts: tuple[str, ...] | None = None) -> str | None:
    """Return a validation error for ``url`` or ``None`` when it may be fetched."""

    try:
        parsed = urlparse(url.strip())
        hostname = (parsed.hostname or "").lower()
    except ValueError:
        return f"invalid URL: {url}"

    if parsed.scheme.lower() not in {"http", "https"}:
        return "only HTTP/HTTPS URLs are supported"
    if not hostname or not _is_valid_host(hostname):
        return f"invalid host name: {hostname or url}"
    if allowed_hosts is not None and not _host_allowed(hostname, allowed_hosts):
        return f"host not allowed: {hostname}"
    return None


class _Progress:
    """Fire-and-forget adapter around an optional progress callback."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback

    def __call__(self, stage: str, percent: int) -> None:
        if self._callback is None:
            return
        try:
            self._callback(stage, percent)
        except Exception:
            logger.warning("Progress callback failed at stage %s", stage, exc_info=True)


class UrlLoader:
    """Turn URLs into clean text, cascading through fallbacks on failure."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        site_adaptors: SiteAdaptors | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(follow_redirects=True)
        self._adaptors = site_adaptors or SiteAdaptors(self._client)
        self._sleep = sleep

    def __enter__(self) -> "UrlLoader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def load_from_url(
        self,
        url: str,
        options: UrlLoadOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> UrlLoadResult:
        """Load one URL; failures are reported in the result, never raised."""

        opts = options or UrlLoadOptions()
        progress = _Progress(on_progress)
        try:
            return self._load(url, opts, progress)
        except Exception as exc:  # pragma: no cover - safety net for unexpected extractor bugs
            logger.exception("Unexpected failure while loading %s", url)
            return UrlLoadResult.failed(url, f"unexpected error: {exc}")

    def _load(self, url: str, options: UrlLoadOptions, progress: _Progress) -> UrlLoadResult:
        progress("validate", 5)
        validation_error = check_url(url, options.allowed_hosts)
        if validation_error is not None:
            logger.info("Rejected %s: %s", url, validation_error)
            return UrlLoadResult.failed(url, validation_error)

        last_error = ""
        reader_attempted = False

        if options.use_reader_proxy and self._adaptors.is_dynamic_render_site(url):
            progress("reader_proxy", 15)
            reader_attempted = True
            loaded, last_error = self._accept(url, ReaderProxyStrategy(self._adaptors, options).attempt(url), options)
            if loaded is not None:
                progress("done", 100)
                return loaded
            logger.info("Reader proxy failed for dynamic site %s: %s", url, last_error)

        progress("fetch", 30)
        direct = DirectFetchStrategy(self._client, options, sleep=self._sleep).attempt(url)
        if direct.terminal:
            return UrlLoadResult.failed(url, direct.error or "unusable content")
        loaded, last_error = self._accept(url, direct, options)
        if loaded is not None:
            progress("done", 100)
            return loaded

        fallbacks = [
            strategy
            for strategy in build_fallback_strategies(self._client, self._adaptors, options)
            if strategy.supports(url) and not (reader_attempted and strategy.name == READER_STRATEGY)
        ]
        for position, strategy in enumerate(fallbacks, start=1):
            progress(strategy.name, 30 + (60 * position) // (len(fallbacks) + 1))
            logger.info("Direct fetch of %s failed (%s); trying %s", url, last_error, strategy.name)
            loaded, error = self._accept(url, strategy.attempt(url), options)
            if loaded is not None:
                progress("done", 100)
                return loaded
            last_error = error

        progress("done", 100)
        return UrlLoadResult.failed(url, last_error or "all retrieval strategies failed")

    def _accept(
        self,
        url: str,
        attempt: AttemptResult,
        options: UrlLoadOptions,
    ) -> tuple[UrlLoadResult | None, str]:
        if not attempt.success:
            return None, attempt.error or f"{attempt.strategy} failed"

        content = attempt.content
        if len(content) < options.min_content_length:
            return None, f"page content too short ({len(content)} chars, minimum {options.min_content_length})"

        links: tuple[str, ...] | None = None
        if options.extract_links:
            links = tuple(extract_page_links(attempt.raw_body, url)) if attempt.raw_body else ()

        meta = (attempt.meta or PageMeta()) if options.extract_meta else None
        return UrlLoadResult.ok(url, title=attempt.title or url, content=content, meta=meta, links=links), ""

    def load_from_urls(
        self,
        urls: list[str],
        options: UrlLoadOptions | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BatchLoadResult:
        """Load URLs one at a time in input order with a politeness delay."""

        unique_urls = list(dict.fromkeys(urls))
        progress = _Progress(on_progress)
        batch = BatchLoadResult()

        for index, url in enumerate(unique_urls, start=1):
            result = self.load_from_url(url, options)
            batch.results.append(result)
            if result.success:
                batch.success_count += 1
            else:
                batch.fail_count += 1
            progress(url, (100 * index) // len(unique_urls))

            if index < len(unique_urls):
                delay = BATCH_DELAY_AFTER_SUCCESS_SECONDS if result.success else BATCH_DELAY_AFTER_FAILURE_SECONDS
                self._sleep(delay)

        return batch

    def validate_url(self, url: str, timeout: float = DEFAULT_VALIDATE_TIMEOUT_SECONDS) -> UrlCheck:
        """Check that ``url`` answers a HEAD request with a success status."""

        validation_error = check_url(url)
        if validation_error is not None:
            return UrlCheck(valid=False, error=validation_error)

        try:
            response = send(
                self._client,
                "HEAD",
                url,
                headers={"User-Agent": VALIDATOR_USER_AGENT},
                timeout=timeout,
                stage="validate",
            )
        except FetchError as exc:
            return UrlCheck(valid=False, error=exc.message)

        if not response.is_success:
            return UrlCheck(valid=False, error=f"HTTP {response.status_code}")
        return UrlCheck(valid=True)
