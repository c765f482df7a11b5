"""CLI command that chunks a local text or Markdown file."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path

from charset_normalizer import from_bytes
from dotenv import load_dotenv

from kbloader.chunking.chunker import SemanticChunker
from kbloader.chunking.config import SemanticChunkConfig
from kbloader.chunking.models import ChunkMethod


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _read_text(path: Path) -> str:
    raw = path.read_bytes()
    best = from_bytes(raw).best()
    if best is None:
        return raw.decode("utf-8", errors="replace")
    return str(best)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Split a text file into semantic chunks")
    parser.add_argument("--path", required=True, help="Text or Markdown file to chunk")
    parser.add_argument(
        "--method",
        choices=[method.value for method in ChunkMethod],
        default=None,
        help="Chunking method (defaults to KBLOADER_CHUNK_METHOD or nlp)",
    )
    parser.add_argument("--max-chunk-size", type=int, default=None, help="Maximum chunk length in characters")
    parser.add_argument("--min-chunk-size", type=int, default=None, help="Minimum chunk length in characters")
    parser.add_argument("--overlap", type=int, default=None, help="Overlap carried into the next chunk")
    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> SemanticChunkConfig:
    config = SemanticChunkConfig.from_env()
    overrides: dict[str, object] = {}
    if args.method is not None:
        overrides["method"] = ChunkMethod(args.method)
    if args.max_chunk_size is not None:
        overrides["max_chunk_size"] = args.max_chunk_size
    if args.min_chunk_size is not None:
        overrides["min_chunk_size"] = args.min_chunk_size
    if args.overlap is not None:
        overrides["chunk_overlap"] = args.overlap
    return replace(config, **overrides) if overrides else config


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    args = _parse_args(argv)
    source_path = Path(args.path)
    if not source_path.is_file():
        LOGGER.error("path must be an existing file: %s", source_path)
        return 2

    try:
        config = _build_config(args)
    except ValueError as exc:
        LOGGER.error("Invalid chunking options: %s", exc)
        return 2

    chunks = SemanticChunker(config).split_text(_read_text(source_path))
    payload = {
        "path": str(source_path),
        "method": config.method.value,
        "chunk_count": len(chunks),
        "chunks": [chunk.to_dict() for chunk in chunks],
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
