"""Head-tag metadata, link and title helpers for fetched pages."""

from __future__ import annotations

import re
from urllib.parse import unquote, urljoin, urlparse

from kbloader.acquisition.entities import decode_html_entities
from kbloader.acquisition.models import PageMeta

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_KEYWORD_SPLIT_RE = re.compile(r"[,，]")
_TIME_DATETIME_RE = re.compile(r"<time[^>]*datetime=[\"']([^\"']+)[\"']", re.IGNORECASE)
_LINK_RE = re.compile(r"<a[^>]*href=[\"']([^\"'#]+)[\"'][^>]*>", re.IGNORECASE)

DEFAULT_LINK_LIMIT = 100


def _meta_patterns(selector: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    return (
        re.compile(rf"<meta[^>]*{selector}[^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
        re.compile(rf"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*{selector}", re.IGNORECASE),
    )


_DESCRIPTION = _meta_patterns(r"name=[\"']description[\"']")
_KEYWORDS = _meta_patterns(r"name=[\"']keywords[\"']")
_AUTHOR = _meta_patterns(r"name=[\"']author[\"']")
_PUBLISHED = _meta_patterns(r"(?:property=[\"']article:published_time[\"']|name=[\"']publishdate[\"'])")
_OG_IMAGE = _meta_patterns(r"property=[\"']og:image[\"']")
_OG_SITE_NAME = _meta_patterns(r"property=[\"']og:site_name[\"']")
_OG_TITLE = _meta_patterns(r"property=[\"']og:title[\"']")


def _first_content(html: str, patterns: tuple[re.Pattern[str], ...]) -> str | None:
    for pattern in patterns:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None


def _decoded(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = decode_html_entities(value).strip()
    return cleaned or None


def extract_meta(html: str) -> PageMeta:
    """Scan raw HTML for title, description, OpenGraph and authoring tags."""

    title_match = _TITLE_RE.search(html)
    title = _decoded(title_match.group(1)) if title_match else None
    if not title:
        title = _decoded(_first_content(html, _OG_TITLE))

    keywords_raw = _first_content(html, _KEYWORDS)
    keywords: tuple[str, ...] = ()
    if keywords_raw:
        keywords = tuple(part.strip() for part in _KEYWORD_SPLIT_RE.split(keywords_raw) if part.strip())

    publish_date = _first_content(html, _PUBLISHED)
    if publish_date is None:
        time_match = _TIME_DATETIME_RE.search(html)
        publish_date = time_match.group(1) if time_match else None

    return PageMeta(
        title=title,
        description=_decoded(_first_content(html, _DESCRIPTION)),
        keywords=keywords,
        author=_decoded(_first_content(html, _AUTHOR)),
        publish_date=publish_date,
        og_image=_first_content(html, _OG_IMAGE),
        site_name=_decoded(_first_content(html, _OG_SITE_NAME)),
    )


def extract_page_links(html: str, base_url: str, *, limit: int = DEFAULT_LINK_LIMIT) -> list[str]:
    """Return unique absolute http(s) links in document order."""

    links: list[str] = []
    seen: set[str] = set()

    for match in _LINK_RE.finditer(html):
        href = match.group(1).strip()
        if not href or href.lower().startswith(("javascript:", "mailto:")):
            continue

        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        if urlparse(absolute).scheme not in {"http", "https"} or absolute in seen:
            continue

        seen.add(absolute)
        links.append(absolute)
        if len(links) >= limit:
            break

    return links


def title_from_url(url: str) -> str:
    """Derive a readable title from the last URL path segment."""

    path = urlparse(url).path
    last_part = path.rstrip("/").rsplit("/", 1)[-1] if path else ""
    if not last_part:
        return url
    return unquote(last_part)
