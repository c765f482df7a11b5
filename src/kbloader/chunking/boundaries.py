"""Language detection and punctuation-aware splitting of oversized text."""

from __future__ import annotations

import re

_CJK_CHAR_RE = re.compile(r"[\u4e00-\u9fa5]")
_LATIN_CHAR_RE = re.compile(r"[a-zA-Z]")

# Highest priority first.
CHINESE_BOUNDARIES: tuple[re.Pattern[str], ...] = (
    re.compile(r"[。！？]\s*"),
    re.compile(r"[；;]\s*"),
    re.compile(r"[，,]\s*"),
    re.compile(r"[、]\s*"),
    re.compile(r"\s+"),
)
ENGLISH_BOUNDARIES: tuple[re.Pattern[str], ...] = (
    re.compile(r"[.!?]\s+"),
    re.compile(r";\s*"),
    re.compile(r",\s+"),
    re.compile(r"\s+"),
)


def detect_language(text: str) -> str:
    """Return ``"chinese"`` when CJK ideographs outnumber Latin letters, else ``"english"``."""

    chinese = len(_CJK_CHAR_RE.findall(text))
    english = len(_LATIN_CHAR_RE.findall(text))
    return "chinese" if chinese > english else "english"


def _rightmost_boundary(text: str, pattern: re.Pattern[str], max_length: int) -> int:
    best = -1
    for match in pattern.finditer(text):
        split_index = match.end()
        if split_index > max_length:
            break
        best = split_index
    return best


def _choose_split_index(
    text: str,
    patterns: tuple[re.Pattern[str], ...],
    max_length: int,
    min_chunk_size: int,
) -> int:
    fallback = -1
    for pattern in patterns:
        best = _rightmost_boundary(text, pattern, max_length)
        if best > min_chunk_size:
            return best
        fallback = max(fallback, best)
    if fallback > 0:
        return fallback
    return min(max_length, len(text))


def split_at_semantic_boundary(
    text: str,
    max_length: int,
    *,
    min_chunk_size: int = 0,
    language_mode: str = "auto",
) -> list[str]:
    """Split ``text`` into pieces of at most ``max_length`` characters.

    Boundaries are tried in priority order (sentence end, semicolon, comma,
    enumeration comma for Chinese, whitespace) and the rightmost one within
    budget that lies past ``min_chunk_size`` wins. Without such a boundary the
    rightmost boundary of any kind is used, and only text with no boundary at
    all is cut at exactly ``max_length``.
    """

    if max_length <= 0:
        raise ValueError("max_length must be positive")

    language = detect_language(text) if language_mode == "auto" else language_mode
    patterns = CHINESE_BOUNDARIES if language == "chinese" else ENGLISH_BOUNDARIES

    parts: list[str] = []
    remaining = text
    while len(remaining) > max_length:
        split_index = _choose_split_index(remaining, patterns, max_length, min_chunk_size)
        head = remaining[:split_index].strip()
        remaining = remaining[split_index:].strip()
        if head:
            parts.append(head)
    if remaining:
        parts.append(remaining)
    return parts
