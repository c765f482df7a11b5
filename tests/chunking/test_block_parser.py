from __future__ import annotations

import pytest

from kbloader.chunking.models import BlockType
from kbloader.chunking.parser import numbered_heading_level, parse_content_blocks


def test_heading_and_paragraphs_with_offsets() -> None:
    blocks = parse_content_blocks("# Title\n\nPara one.\n\nPara two.")

    assert [(block.type, block.content, block.start_index, block.end_index) for block in blocks] == [
        (BlockType.HEADING, "# Title", 0, 8),
        (BlockType.PARAGRAPH, "Para one.", 9, 19),
        (BlockType.PARAGRAPH, "Para two.", 20, 30),
    ]
    assert blocks[0].level == 1


def test_markdown_heading_level_counts_hashes() -> None:
    blocks = parse_content_blocks("### Deep section")

    assert blocks[0].type is BlockType.HEADING
    assert blocks[0].level == 3


def test_code_fence_keeps_blank_lines_and_language() -> None:
    text = "Intro text\n```python\nx = 1\n\ny = 2\n```\nAfter"

    blocks = parse_content_blocks(text)

    assert [block.type for block in blocks] == [BlockType.PARAGRAPH, BlockType.CODE, BlockType.PARAGRAPH]
    code = blocks[1]
    assert code.content == "```python\nx = 1\n\ny = 2\n```"
    assert code.language == "python"
    assert (code.start_index, code.end_index) == (11, 38)
    assert blocks[2].content == "After"


def test_code_fence_hides_markup_inside() -> None:
    blocks = parse_content_blocks("```\n# not a heading\n- not a list\n```")

    assert len(blocks) == 1
    assert blocks[0].type is BlockType.CODE
    assert blocks[0].language is None


def test_unclosed_code_fence_runs_to_end() -> None:
    blocks = parse_content_blocks("```\ncode line")

    assert [(block.type, block.content) for block in blocks] == [(BlockType.CODE, "```\ncode line")]


def test_table_rows_form_one_block() -> None:
    blocks = parse_content_blocks("| a | b |\n|---|---|\n| 1 | 2 |\nDone")

    assert [block.type for block in blocks] == [BlockType.TABLE, BlockType.PARAGRAPH]
    assert blocks[0].content == "| a | b |\n|---|---|\n| 1 | 2 |"


def test_list_block_ends_at_blank_line() -> None:
    blocks = parse_content_blocks("- one\n  - nested\n- two\n\nText after")

    assert [block.type for block in blocks] == [BlockType.LIST, BlockType.PARAGRAPH]
    assert blocks[0].content == "- one\n  - nested\n- two"
    assert blocks[0].level == 1
    assert blocks[1].content == "Text after"


def test_list_level_follows_indentation() -> None:
    assert parse_content_blocks("    * deep item")[0].level == 3


def test_quote_lines_group_together() -> None:
    blocks = parse_content_blocks("> quoted line\n> more\nplain")

    assert [(block.type, block.content) for block in blocks] == [
        (BlockType.QUOTE, "> quoted line\n> more"),
        (BlockType.PARAGRAPH, "plain"),
    ]


def test_separator_lines_are_their_own_blocks() -> None:
    blocks = parse_content_blocks("above\n---\nbelow\n===")

    assert [block.type for block in blocks] == [
        BlockType.PARAGRAPH,
        BlockType.SEPARATOR,
        BlockType.PARAGRAPH,
        BlockType.SEPARATOR,
    ]


@pytest.mark.parametrize(
    ("line", "level"),
    [
        ("第一章 总则", 1),
        ("第2部 下篇", 1),
        ("第三节 适用范围", 2),
        ("一、概述", 2),
        ("（一）目的", 3),
        ("(2) 方法", 3),
        ("1. 背景", 3),
    ],
)
def test_numbered_heading_levels(line: str, level: int) -> None:
    assert numbered_heading_level(line) == level


@pytest.mark.parametrize(
    "line",
    [
        "第一章 总则。",
        "1. This is a full sentence.",
        "3.14 is close to pi",
        "plain text",
        "一、" + "很长" * 60,
    ],
)
def test_sentences_are_not_numbered_headings(line: str) -> None:
    assert numbered_heading_level(line) is None


def test_numbered_sentence_becomes_list_item() -> None:
    blocks = parse_content_blocks("1. Install the package.\n2. Run it.")

    assert [block.type for block in blocks] == [BlockType.LIST]


def test_empty_text_has_no_blocks() -> None:
    assert parse_content_blocks("") == []
    assert parse_content_blocks("\n\n  \n") == []
