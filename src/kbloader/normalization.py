"""Text normalization helpers used by the HTML extractors."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_INLINE_SPACE_RE = re.compile(r"[ \t]+")
_TAG_RE = re.compile(r"<[^>]+>")


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def collapse_inline_space(text: str) -> str:
    """Collapse runs of spaces and tabs without touching newlines."""

    return _INLINE_SPACE_RE.sub(" ", text)


def strip_tags(html: str) -> str:
    """Remove every markup tag and keep the text in between."""

    return _TAG_RE.sub("", html)


def tidy_lines(text: str) -> str:
    """Trim each line and keep at most one blank line between text lines."""

    lines: list[str] = []
    pending_blank = False

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            pending_blank = bool(lines)
            continue
        if pending_blank:
            lines.append("")
            pending_blank = False
        lines.append(line)

    return "\n".join(lines)
