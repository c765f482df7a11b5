"""Line-scanner that classifies raw text into structural content blocks."""

from __future__ import annotations

import re

from kbloader.chunking.models import BlockType, ContentBlock

_FENCE_RE = re.compile(r"^```(\w*)")
_TABLE_ROW_RE = re.compile(r"^\|.*\|$")
_MARKDOWN_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_NUMBERED_HEADING_RE = re.compile(
    r"^(第[一二三四五六七八九十百千\d]+[章节篇部]"
    r"|[一二三四五六七八九十]+[、.．]"
    r"|[(（][一二三四五六七八九十\d]+[)）]"
    r"|\d+[.．、]\s*[^\d])"
)
_SENTENCE_END_RE = re.compile(r"[。！？.!?]$")
_LIST_ITEM_RE = re.compile(r"^(\s*)([-*•●○◆◇▪▸►]|\d+[.、)）])\s+")
_SEPARATOR_RE = re.compile(r"^[-=_*]{3,}\s*$")

MAX_NUMBERED_HEADING_LENGTH = 100

# Checked in order; the first match decides the heading level.
_NUMBERED_HEADING_LEVELS: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"^第.+[章部篇]"), 1),
    (re.compile(r"^第.+节"), 2),
    (re.compile(r"^[一二三四五六七八九十]+[、.．]"), 2),
    (re.compile(r"^[(（][一二三四五六七八九十\d]+[)）]"), 3),
    (re.compile(r"^\d+[.．、]"), 3),
)


def numbered_heading_level(line: str) -> int | None:
    """Return the heading level for CJK/numbered heading lines, else ``None``."""

    if not _NUMBERED_HEADING_RE.match(line):
        return None
    if len(line) >= MAX_NUMBERED_HEADING_LENGTH or _SENTENCE_END_RE.search(line):
        return None
    for pattern, level in _NUMBERED_HEADING_LEVELS:
        if pattern.match(line):
            return level
    return 1


class BlockScanner:
    """State machine fed one line at a time.

    Multi-line blocks (code, table, list, quote, paragraph) accumulate in a
    buffer until a line of a different kind arrives; headings and separators
    are emitted immediately as single-line blocks.
    """

    def __init__(self) -> None:
        self.blocks: list[ContentBlock] = []
        self._index = 0
        self._block_start = 0
        self._buffer: list[str] = []
        self._type = BlockType.PARAGRAPH
        self._in_code = False
        self._code_language = ""
        self._in_table = False
        self._list_level = 0

    def _flush(self) -> None:
        if self._buffer:
            content = "\n".join(self._buffer).strip()
            if content:
                self.blocks.append(
                    ContentBlock(
                        type=self._type,
                        content=content,
                        start_index=self._block_start,
                        end_index=self._index,
                        level=self._list_level if self._type is BlockType.LIST else None,
                        language=(self._code_language or None) if self._type is BlockType.CODE else None,
                    )
                )
            self._buffer = []
        self._block_start = self._index

    def _emit_single(self, block_type: BlockType, line: str, length: int, level: int | None = None) -> None:
        self._flush()
        self.blocks.append(
            ContentBlock(
                type=block_type,
                content=line,
                start_index=self._index,
                end_index=self._index + length,
                level=level,
            )
        )
        self._index += length
        self._block_start = self._index

    def _append(self, line: str, length: int) -> None:
        self._buffer.append(line)
        self._index += length

    def feed(self, raw_line: str) -> None:
        length = len(raw_line) + 1
        line = raw_line.rstrip("\r")

        fence = _FENCE_RE.match(line)
        if fence:
            if not self._in_code:
                self._flush()
                self._in_code = True
                self._code_language = fence.group(1)
                self._type = BlockType.CODE
                self._append(line, length)
            else:
                self._append(line, length)
                self._in_code = False
                self._flush()
                self._type = BlockType.PARAGRAPH
            return

        if self._in_code:
            self._append(line, length)
            return

        if _TABLE_ROW_RE.match(line):
            if not self._in_table:
                self._flush()
                self._in_table = True
                self._type = BlockType.TABLE
            self._append(line, length)
            return
        if self._in_table:
            self._in_table = False
            self._flush()
            self._type = BlockType.PARAGRAPH

        heading = _MARKDOWN_HEADING_RE.match(line)
        if heading:
            self._emit_single(BlockType.HEADING, line, length, level=len(heading.group(1)))
            return

        level = numbered_heading_level(line)
        if level is not None:
            self._emit_single(BlockType.HEADING, line, length, level=level)
            return

        list_item = _LIST_ITEM_RE.match(line)
        if list_item:
            if self._type is not BlockType.LIST:
                self._flush()
                self._type = BlockType.LIST
                self._list_level = len(list_item.group(1).expandtabs(4)) // 2 + 1
            self._append(line, length)
            return
        if self._type is BlockType.LIST and not line.strip():
            self._flush()
            self._type = BlockType.PARAGRAPH
            self._index += length
            self._block_start = self._index
            return

        if line.startswith(">"):
            if self._type is not BlockType.QUOTE:
                self._flush()
                self._type = BlockType.QUOTE
            self._append(line, length)
            return
        if self._type is BlockType.QUOTE:
            self._flush()
            self._type = BlockType.PARAGRAPH

        if _SEPARATOR_RE.match(line):
            self._emit_single(BlockType.SEPARATOR, line, length)
            return

        if not line.strip():
            if self._buffer and self._type is BlockType.PARAGRAPH:
                self._flush()
            self._index += length
            if not self._buffer:
                self._block_start = self._index
            return

        if self._type is not BlockType.PARAGRAPH:
            self._flush()
            self._type = BlockType.PARAGRAPH
        self._append(line, length)

    def finish(self) -> list[ContentBlock]:
        self._flush()
        return self.blocks


def parse_content_blocks(text: str) -> list[ContentBlock]:
    """Classify ``text`` into heading, paragraph, list, code, table, quote and separator blocks."""

    scanner = BlockScanner()
    for line in text.split("\n"):
        scanner.feed(line)
    return scanner.finish()
