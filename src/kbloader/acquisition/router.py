"""Dispatch fetched bodies to the extraction path matching their content type."""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import urlparse

from kbloader.acquisition.extractor import clean_html
from kbloader.acquisition.meta import title_from_url
from kbloader.acquisition.models import PageMeta, ProcessedContent

logger = logging.getLogger(__name__)

SUPPORTED_CONTENT_TYPES: tuple[str, ...] = (
    "text/html",
    "text/plain",
    "application/json",
    "text/markdown",
    "application/xml",
    "text/xml",
)
DEFAULT_CONTENT_TYPE = "text/html"

_XML_DECLARATION_RE = re.compile(r"<\?xml[^>]*\?>", re.IGNORECASE)
_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_XML_TAG_RE = re.compile(r"<[^>]+>")
_REPEATED_NEWLINES_RE = re.compile(r"\n{2,}")


def is_supported_content_type(content_type: str | None) -> bool:
    lowered = (content_type or DEFAULT_CONTENT_TYPE).lower()
    return any(candidate in lowered for candidate in SUPPORTED_CONTENT_TYPES)


def _process_json(raw_body: str, url: str) -> ProcessedContent:
    try:
        payload = json.loads(raw_body)
    except ValueError:
        logger.info("Malformed JSON body from %s; keeping raw text", url)
        return ProcessedContent(title="", content=raw_body)

    title = f"JSON: {url}"
    content = json.dumps(payload, ensure_ascii=False, indent=2)
    return ProcessedContent(title=title, content=content, meta=PageMeta(title=title))


def _process_xml(raw_body: str, url: str) -> ProcessedContent:
    text = _XML_DECLARATION_RE.sub("", raw_body)
    text = _CDATA_RE.sub(lambda match: match.group(1), text)
    text = _XML_TAG_RE.sub("\n", text)
    text = _REPEATED_NEWLINES_RE.sub("\n", text).strip()
    title = f"XML: {url}"
    return ProcessedContent(title=title, content=text, meta=PageMeta(title=title))


def _passthrough(raw_body: str, url: str) -> ProcessedContent:
    title = title_from_url(url)
    return ProcessedContent(title=title, content=raw_body, meta=PageMeta(title=title))


def process_content(
    raw_body: str,
    content_type: str | None,
    url: str,
    *,
    extract_content: bool = True,
) -> ProcessedContent:
    """Turn a response body into ``(title, content, meta)`` by declared type."""

    lowered = (content_type or DEFAULT_CONTENT_TYPE).lower()

    if "application/json" in lowered:
        return _process_json(raw_body, url)
    if "text/markdown" in lowered or urlparse(url).path.lower().endswith(".md"):
        return _passthrough(raw_body, url)
    if "application/xml" in lowered or "text/xml" in lowered:
        return _process_xml(raw_body, url)
    if "text/plain" in lowered:
        return _passthrough(raw_body, url)
    return clean_html(raw_body, extract_content=extract_content)
