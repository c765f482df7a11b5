"""Main-content extraction and HTML-to-text conversion."""

from __future__ import annotations

from dataclasses import dataclass
import math
import re

from kbloader.acquisition.entities import decode_html_entities
from kbloader.acquisition.html_scanner import (
    TagToken,
    find_body,
    iter_elements,
    remove_elements,
    strip_raw_text_elements,
)
from kbloader.acquisition.meta import extract_meta
from kbloader.acquisition.models import ProcessedContent
from kbloader.normalization import collapse_inline_space, normalize_whitespace, strip_tags, tidy_lines

MIN_REGION_TEXT_LENGTH = 100
MIN_REGION_SCORE = 10.0

_NOISE_TAGS = frozenset({"iframe", "svg", "nav", "header", "footer", "aside", "form"})
_CONTAINER_TAGS = frozenset({"div", "section"})
_BOILERPLATE_WORDS = frozenset(
    {
        "sidebar",
        "widget",
        "comment",
        "share",
        "social",
        "related",
        "recommend",
        "ad",
        "advertisement",
        "banner",
    }
)
_WORD_SPLIT_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class ContentRegion:
    """One candidate main-content selector and its vote weight."""

    weight: float
    tag: str
    attribute: str | None = None
    pattern: re.Pattern[str] | None = None

    def matches(self, token: TagToken) -> bool:
        if token.name != self.tag:
            return False
        if self.attribute is None or self.pattern is None:
            return True
        value = token.attribute(self.attribute)
        return value is not None and self.pattern.search(value) is not None


def _region(weight: float, tag: str, attribute: str | None = None, pattern: str | None = None) -> ContentRegion:
    compiled = re.compile(pattern, re.IGNORECASE) if pattern else None
    return ContentRegion(weight=weight, tag=tag, attribute=attribute, pattern=compiled)


CONTENT_REGIONS: tuple[ContentRegion, ...] = (
    _region(100, "article"),
    _region(95, "main"),
    # Publishing platforms that bury the article in a named container.
    _region(90, "div", "class", r"article-content|RichContent-inner|article-viewer"),
    _region(90, "div", "id", r"^(?:js_content|article_content)$"),
    _region(85, "div", "class", r"post-content|article-content|entry-content|content-body|main-content"),
    _region(80, "div", "id", r"content|main|article|post"),
    _region(70, "div", "class", r"content|body|text"),
    _region(65, "section", "class", r"content"),
)


def _has_boilerplate_marker(value: str | None) -> bool:
    if not value:
        return False
    for word in _WORD_SPLIT_RE.split(value.lower()):
        if word in _BOILERPLATE_WORDS:
            return True
        if word.endswith("s") and word[:-1] in _BOILERPLATE_WORDS:
            return True
    return False


def _is_noise(token: TagToken) -> bool:
    if token.name in _NOISE_TAGS:
        return True
    if token.name not in _CONTAINER_TAGS:
        return False
    return _has_boilerplate_marker(token.attribute("class")) or _has_boilerplate_marker(token.attribute("id"))


def remove_noise(html: str) -> str:
    """Strip scripts, chrome and boilerplate containers from a document."""

    return remove_elements(strip_raw_text_elements(html), _is_noise)


def text_density(fragment: str) -> float:
    if not fragment:
        return 0.0
    return len(normalize_whitespace(strip_tags(fragment))) / len(fragment)


def score_region(fragment: str, weight: float) -> tuple[float, int]:
    """Return ``(score, text_length)`` for a candidate fragment."""

    text_length = len(strip_tags(fragment))
    return weight * text_density(fragment) * math.log(text_length + 1), text_length


def extract_main_content(html: str, regions: tuple[ContentRegion, ...] = CONTENT_REGIONS) -> str:
    """Return the HTML fragment most likely to hold the page's main content."""

    cleaned = remove_noise(html)
    best_content = ""
    best_score = 0.0

    for region in regions:
        for span in iter_elements(cleaned, region.matches):
            fragment = span.inner(cleaned)
            score, text_length = score_region(fragment, region.weight)
            if score > best_score and text_length > MIN_REGION_TEXT_LENGTH:
                best_score = score
                best_content = fragment

    if not best_content or best_score < MIN_REGION_SCORE:
        body = find_body(cleaned)
        return body if body is not None else cleaned
    return best_content


_BLOCK_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"</?h[1-6]\b[^>]*>", re.IGNORECASE), "\n\n"),
    (re.compile(r"</?(?:p|div|br|blockquote)\b[^>]*>", re.IGNORECASE), "\n"),
    (re.compile(r"<li\b[^>]*>", re.IGNORECASE), "\n• "),
    (re.compile(r"</li\s*>", re.IGNORECASE), "\n"),
    (re.compile(r"</?(?:ul|ol|table|tbody|thead|tr)\b[^>]*>", re.IGNORECASE), "\n\n"),
    (re.compile(r"<td\b[^>]*>", re.IGNORECASE), "\t"),
    (re.compile(r"</td\s*>", re.IGNORECASE), ""),
)


def html_to_text(fragment: str) -> str:
    """Convert an HTML fragment into normalized plain text."""

    text = fragment
    for pattern, replacement in _BLOCK_RULES:
        text = pattern.sub(replacement, text)

    text = decode_html_entities(strip_tags(text))
    return collapse_inline_space(tidy_lines(text)).strip()


def clean_html(html: str, *, extract_content: bool = True) -> ProcessedContent:
    """Extract metadata and readable text from a full HTML document."""

    meta = extract_meta(html)
    fragment = extract_main_content(html) if extract_content else strip_raw_text_elements(html)
    return ProcessedContent(title=meta.title or "", content=html_to_text(fragment), meta=meta)
