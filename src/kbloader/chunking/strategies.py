"""Pluggable sentence-based and fixed-window chunking strategies."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Protocol, runtime_checkable

from razdel import sentenize

from kbloader.chunking.boundaries import split_at_semantic_boundary

_CJK_CHAR_RE = re.compile(r"[\u4e00-\u9fff]")
_CJK_SENTENCE_RE = re.compile(r"[^。！？]*[。！？]+|[^。！？]+")


@dataclass(slots=True)
class ChunkingError(Exception):
    """Domain error raised when a chunking strategy cannot segment text."""

    strategy: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (strategy={self.strategy})"


@runtime_checkable
class SentenceChunker(Protocol):
    """Protocol for sentence-boundary segmenters used by the ``nlp`` method."""

    def chunk(self, text: str, max_tokens: int) -> list[str]:
        """Return consecutive spans of ``text`` holding at most ``max_tokens`` each."""


def estimate_tokens(text: str) -> int:
    """Rough token count: one per CJK character plus one per remaining word."""

    cjk = len(_CJK_CHAR_RE.findall(text))
    return cjk + len(_CJK_CHAR_RE.sub(" ", text).split())


def _fit_to_budget(sentence: str, max_tokens: int) -> list[str]:
    """Split ``sentence`` at punctuation boundaries until each piece fits ``max_tokens``."""

    tokens = estimate_tokens(sentence)
    if tokens <= max_tokens:
        return [sentence]
    # Every token spans at least one character, so max_tokens characters always fit.
    budget = max(max_tokens, len(sentence) * max_tokens // tokens)
    pieces = split_at_semantic_boundary(sentence, budget)
    if budget == max_tokens:
        return pieces
    fitted: list[str] = []
    for piece in pieces:
        fitted.extend(_fit_to_budget(piece, max_tokens))
    return fitted


class RazdelSentenceChunker:
    """Pack razdel sentences into spans that fit a token budget.

    razdel does not end sentences at ``。！？``, so its sentences are cut there
    first. A sentence still over budget is split at punctuation boundaries
    until every piece fits.
    """

    name = "nlp"

    def _sentence_spans(self, text: str, max_tokens: int) -> list[tuple[int, int]]:
        try:
            razdel_spans = [(match.start, match.stop) for match in sentenize(text)]
        except Exception as exc:
            raise ChunkingError(strategy=self.name, message=f"sentence segmentation failed: {exc}") from exc

        spans: list[tuple[int, int]] = []
        for razdel_start, razdel_stop in razdel_spans:
            for match in _CJK_SENTENCE_RE.finditer(text, razdel_start, razdel_stop):
                sentence = match.group()
                if not sentence.strip():
                    continue
                if estimate_tokens(sentence) <= max_tokens:
                    spans.append((match.start(), match.end()))
                    continue
                cursor = match.start()
                for piece in _fit_to_budget(sentence, max_tokens):
                    start = text.find(piece, cursor, match.end())
                    if start == -1:
                        continue
                    cursor = start + len(piece)
                    spans.append((start, cursor))
        return spans

    def chunk(self, text: str, max_tokens: int) -> list[str]:
        if max_tokens <= 0:
            raise ChunkingError(strategy=self.name, message="max_tokens must be positive")

        spans: list[str] = []
        window_start: int | None = None
        window_end = 0
        window_tokens = 0

        for start, stop in self._sentence_spans(text, max_tokens):
            tokens = estimate_tokens(text[start:stop])
            if window_start is not None and window_tokens + tokens > max_tokens:
                spans.append(text[window_start:window_end].strip())
                window_start = None
                window_tokens = 0
            if window_start is None:
                window_start = start
            window_end = stop
            window_tokens += tokens

        if window_start is not None:
            spans.append(text[window_start:window_end].strip())

        spans = [span for span in spans if span]
        if not spans and text.strip():
            return [text.strip()]
        return spans


def fixed_window_spans(text: str, size: int, overlap: int) -> list[tuple[int, str]]:
    """Cut ``text`` into ``size``-character windows that share ``overlap`` characters.

    Returns ``(start, window)`` pairs; whitespace-only windows are skipped.
    """

    if size <= 0:
        raise ValueError("size must be positive")
    if overlap < 0:
        raise ValueError("overlap cannot be negative")
    if overlap >= size:
        raise ValueError("overlap must be smaller than size")

    step = size - overlap
    spans: list[tuple[int, str]] = []
    for start in range(0, len(text), step):
        window = text[start : start + size]
        if window.strip():
            spans.append((start, window))
        if start + size >= len(text):
            break
    return spans
