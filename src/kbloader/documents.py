"""Document record exchanged between chunking and downstream indexing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Document:
    """Text plus free-form provenance metadata, ready for embedding."""

    page_content: str
    metadata: dict[str, Any] = field(default_factory=dict)
