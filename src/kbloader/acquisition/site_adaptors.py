"""Per-site retrieval overrides: reader proxy, Wikipedia plain text, GitHub raw."""

from __future__ import annotations

import logging
import re
from urllib.parse import quote, unquote, urlparse

import httpx

from kbloader.acquisition.models import AttemptResult, FetchError
from kbloader.acquisition.transport import decode_body, ensure_success, send

logger = logging.getLogger(__name__)

READER_STRATEGY = "reader_proxy"
DEFAULT_READER_BASE_URL = "https://r.jina.ai/"
READER_ERROR_PAGE_MAX_CHARS = 200

# SPA/SSR platforms that serve near-empty HTML without script execution.
DEFAULT_DYNAMIC_RENDER_SITES: frozenset[str] = frozenset(
    {
        "toutiao.com",
        "toutiaocdn.com",
        "jinritoutiao.com",
        "weixin.qq.com",
        "mp.weixin.qq.com",
        "zhihu.com",
        "bilibili.com",
        "douyin.com",
        "xiaohongshu.com",
        "juejin.cn",
        "jianshu.com",
        "csdn.net",
        "segmentfault.com",
        "36kr.com",
        "huxiu.com",
        "sspai.com",
        "infoq.cn",
    }
)

_GITHUB_BLOB_RE = re.compile(r"^/([^/]+)/([^/]+)/blob/([^/]+)/(.+)$")
_MD_HEADING_RE = re.compile(r"^#{1,6}\s+", re.MULTILINE)
_MD_BULLET_RE = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
_MD_BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
_MD_ITALIC_STAR_RE = re.compile(r"\*(?=\S)([^*\n]+?)(?<=\S)\*")
_MD_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?=\S)([^_\n]+?)(?<=\S)_(?!\w)")


def clean_markdown(text: str) -> str:
    """Strip heading, bullet, bold and italic markers from Markdown text."""

    cleaned = _MD_HEADING_RE.sub("", text)
    cleaned = _MD_BULLET_RE.sub("", cleaned)
    cleaned = _MD_BOLD_RE.sub(r"\2", cleaned)
    cleaned = _MD_ITALIC_STAR_RE.sub(r"\1", cleaned)
    cleaned = _MD_ITALIC_UNDERSCORE_RE.sub(r"\1", cleaned)
    return cleaned.strip()


def split_reader_preamble(text: str) -> tuple[str, str]:
    """Separate the reader proxy's ``Title:``/``URL Source:`` header from the body."""

    lines = text.splitlines()
    title = ""
    body_start = 0

    for index, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("Title:") and not title:
            title = stripped[len("Title:") :].strip()
            body_start = index + 1
        elif stripped.startswith(("URL Source:", "Published Time:")):
            body_start = index + 1
        elif stripped == "Markdown Content:":
            body_start = index + 1
            break
        elif stripped:
            break

    return title, "\n".join(lines[body_start:]).strip()


def to_github_raw(url: str) -> str | None:
    """Rewrite a GitHub blob URL to its raw.githubusercontent.com equivalent."""

    parsed = urlparse(url)
    if (parsed.hostname or "").lower() not in {"github.com", "www.github.com"}:
        return None
    match = _GITHUB_BLOB_RE.match(parsed.path)
    if match is None:
        return None
    owner, repo, branch, path = match.groups()
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{branch}/{path}"


def _is_wikipedia_host(hostname: str) -> bool:
    return hostname == "wikipedia.org" or hostname.endswith(".wikipedia.org")


def is_wikipedia_url(url: str) -> bool:
    parsed = urlparse(url)
    hostname = (parsed.hostname or "").lower()
    return _is_wikipedia_host(hostname) and parsed.path.startswith("/wiki/") and len(parsed.path) > len("/wiki/")


def wikipedia_plain_url(url: str) -> str | None:
    if not is_wikipedia_url(url):
        return None
    parsed = urlparse(url)
    labels = (parsed.hostname or "").lower().split(".")
    # Bare and www hosts carry no language subdomain.
    lang = labels[0] if len(labels) > 2 and labels[0] != "www" else "en"
    title = unquote(parsed.path[len("/wiki/") :])
    return f"https://{lang}.wikipedia.org/api/rest_v1/page/plain/{quote(title, safe='')}"


class SiteAdaptors:
    """Alternate retrieval backends keyed on the target URL's site."""

    def __init__(
        self,
        client: httpx.Client,
        *,
        dynamic_sites: frozenset[str] = DEFAULT_DYNAMIC_RENDER_SITES,
        reader_base_url: str = DEFAULT_READER_BASE_URL,
    ) -> None:
        if not reader_base_url.startswith(("http://", "https://")):
            raise ValueError("reader_base_url must start with http:// or https://")

        self._client = client
        self._dynamic_sites = frozenset(site.lower().lstrip(".") for site in dynamic_sites)
        self._reader_base_url = reader_base_url if reader_base_url.endswith("/") else f"{reader_base_url}/"

    @property
    def dynamic_sites(self) -> frozenset[str]:
        return self._dynamic_sites

    def is_dynamic_render_site(self, url: str) -> bool:
        hostname = (urlparse(url).hostname or "").lower()
        if not hostname:
            return False
        return any(hostname == site or hostname.endswith(f".{site}") for site in self._dynamic_sites)

    def build_reader_url(self, url: str) -> str:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return f"{self._reader_base_url}https://{url}"
        query = f"?{parsed.query}" if parsed.query else ""
        return f"{self._reader_base_url}{parsed.scheme}://{parsed.netloc}{parsed.path}{query}"

    def fetch_with_reader(self, url: str, user_agent: str, timeout: float) -> AttemptResult:
        """Fetch a Markdown rendering of ``url`` through the reader proxy."""

        reader_url = self.build_reader_url(url)
        headers = {
            "User-Agent": user_agent,
            "Accept": "text/plain,text/markdown,*/*;q=0.1",
            "X-Return-Format": "markdown",
        }

        try:
            response = ensure_success(
                send(self._client, "GET", reader_url, headers=headers, timeout=timeout, stage=READER_STRATEGY),
                stage=READER_STRATEGY,
            )
        except FetchError as exc:
            return AttemptResult.failed(READER_STRATEGY, f"reader proxy failed: {exc}")

        raw = decode_body(response)
        if "Error" in raw and len(raw) < READER_ERROR_PAGE_MAX_CHARS:
            return AttemptResult.failed(READER_STRATEGY, "reader proxy could not render the page")

        title, body = split_reader_preamble(raw)
        return AttemptResult(success=True, strategy=READER_STRATEGY, title=title, content=clean_markdown(body))

    def fetch_wikipedia_plain(self, url: str, user_agent: str, timeout: float) -> str | None:
        """Return article plain text from the REST API, or ``None`` on any failure."""

        endpoint = wikipedia_plain_url(url)
        if endpoint is None:
            return None

        headers = {"User-Agent": user_agent, "Accept": "text/plain,*/*;q=0.1"}
        try:
            response = ensure_success(
                send(self._client, "GET", endpoint, headers=headers, timeout=timeout, stage="wikipedia"),
                stage="wikipedia",
            )
        except FetchError as exc:
            logger.info("Wikipedia plain-text fetch failed for %s: %s", url, exc)
            return None
        return decode_body(response)
