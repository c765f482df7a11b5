"""HTML/XML character entity decoding."""

from __future__ import annotations

import re

_NAMED_ENTITIES: dict[str, str] = {
    "nbsp": " ",
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
    "copy": "©",
    "reg": "®",
    "trade": "™",
    "mdash": "—",
    "ndash": "–",
    "hellip": "…",
    "bull": "•",
    "lsquo": "‘",
    "rsquo": "’",
    "ldquo": "“",
    "rdquo": "”",
    "euro": "€",
    "pound": "£",
    "yen": "¥",
    "cent": "¢",
}

_ENTITY_RE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z0-9]+);")
_UNKNOWN_ENTITY = " "


def _decode_numeric(body: str) -> str:
    if body[1:2] in {"x", "X"}:
        codepoint = int(body[2:], 16)
    else:
        codepoint = int(body[1:])

    if codepoint <= 0 or codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return _UNKNOWN_ENTITY
    return chr(codepoint)


def _replace(match: re.Match[str]) -> str:
    body = match.group(1)
    if body.startswith("#"):
        return _decode_numeric(body)
    return _NAMED_ENTITIES.get(body.lower(), _UNKNOWN_ENTITY)


def decode_html_entities(text: str) -> str:
    """Decode named and numeric character references in one pass.

    Named references outside the supported table, and numeric references that
    do not map to a Unicode scalar value, are replaced with a single space so
    that stray markup never leaks into extracted text.
    """

    if "&" not in text:
        return text
    return _ENTITY_RE.sub(_replace, text)
