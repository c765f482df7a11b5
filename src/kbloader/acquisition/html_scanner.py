"""Minimal tag tokenizer for locating and removing balanced HTML elements.

The scanner never builds a tree. It walks start/end tag tokens in document
order and pairs an opening tag with its matching close tag by counting depth
for that tag name only, which is enough to cut nested containers out whole
without regex backtracking over the element body.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable, Iterator

_TAG_TOKEN_RE = re.compile(
    r"<(/?)([a-zA-Z][a-zA-Z0-9:-]*)((?:\"[^\"]*\"|'[^']*'|[^'\">])*)>"
)
_RAW_TEXT_RES = (
    re.compile(r"<!--.*?-->", re.DOTALL),
    re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<noscript\b[^>]*>.*?</noscript\s*>", re.IGNORECASE | re.DOTALL),
)


@dataclass(frozen=True, slots=True)
class TagToken:
    name: str
    attrs: str
    closing: bool
    self_closing: bool
    start: int
    end: int

    def attribute(self, key: str) -> str | None:
        match = re.search(
            rf"(?:^|\s){re.escape(key)}\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s>]+))",
            self.attrs,
            re.IGNORECASE,
        )
        if match is None:
            return None
        return next(group for group in match.groups() if group is not None)


@dataclass(frozen=True, slots=True)
class ElementSpan:
    """Offsets of one element: outer ``start``/``end`` and its inner HTML range."""

    name: str
    token: TagToken
    start: int
    inner_start: int
    inner_end: int
    end: int

    def inner(self, html: str) -> str:
        return html[self.inner_start : self.inner_end]


TagPredicate = Callable[[TagToken], bool]


def tokenize_tags(html: str) -> list[TagToken]:
    tokens: list[TagToken] = []
    for match in _TAG_TOKEN_RE.finditer(html):
        attrs = match.group(3)
        tokens.append(
            TagToken(
                name=match.group(2).lower(),
                attrs=attrs,
                closing=bool(match.group(1)),
                self_closing=attrs.rstrip().endswith("/"),
                start=match.start(),
                end=match.end(),
            )
        )
    return tokens


def strip_raw_text_elements(html: str) -> str:
    """Drop comments and raw-text elements whose bodies are not markup."""

    for pattern in _RAW_TEXT_RES:
        html = pattern.sub("", html)
    return html


def _close_index(tokens: list[TagToken], open_index: int) -> int | None:
    name = tokens[open_index].name
    depth = 1
    for index in range(open_index + 1, len(tokens)):
        token = tokens[index]
        if token.name != name:
            continue
        if token.closing:
            depth -= 1
            if depth == 0:
                return index
        elif not token.self_closing:
            depth += 1
    return None


def _span(html: str, tokens: list[TagToken], open_index: int) -> tuple[ElementSpan, int]:
    opening = tokens[open_index]
    close_index = _close_index(tokens, open_index)
    if close_index is None:
        # Unclosed element runs to the end of the document.
        span = ElementSpan(opening.name, opening, opening.start, opening.end, len(html), len(html))
        return span, len(tokens)

    closing = tokens[close_index]
    span = ElementSpan(opening.name, opening, opening.start, opening.end, closing.start, closing.end)
    return span, close_index


def iter_elements(html: str, predicate: TagPredicate) -> Iterator[ElementSpan]:
    """Yield every element whose opening tag satisfies ``predicate``, nested ones included."""

    tokens = tokenize_tags(html)
    for index, token in enumerate(tokens):
        if token.closing or token.self_closing or not predicate(token):
            continue
        span, _ = _span(html, tokens, index)
        yield span


def remove_elements(html: str, predicate: TagPredicate) -> str:
    """Cut out outermost elements matching ``predicate`` together with their bodies."""

    tokens = tokenize_tags(html)
    pieces: list[str] = []
    cursor = 0
    index = 0

    while index < len(tokens):
        token = tokens[index]
        if token.closing or token.self_closing or not predicate(token):
            index += 1
            continue

        span, close_index = _span(html, tokens, index)
        pieces.append(html[cursor : span.start])
        cursor = span.end
        index = close_index + 1

    pieces.append(html[cursor:])
    return "".join(pieces)


def find_body(html: str) -> str | None:
    for span in iter_elements(html, lambda token: token.name == "body"):
        return span.inner(html)
    return None
