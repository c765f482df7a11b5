"""CLI command that loads URLs and reports extraction and chunking results."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging

from dotenv import load_dotenv

from kbloader.acquisition.config import CHUNKING_STRATEGIES, UrlLoadOptions
from kbloader.ingestion.facade import IngestionFacade


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch URLs, extract main content and chunk it")
    parser.add_argument("urls", nargs="+", help="HTTP(S) URLs to load")
    parser.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries for 429/5xx and network errors")
    parser.add_argument("--min-length", type=int, default=None, help="Minimum extracted content length")
    parser.add_argument("--links", action="store_true", help="Include extracted page links")
    parser.add_argument("--no-meta", action="store_true", help="Skip page metadata")
    parser.add_argument("--strategy", choices=sorted(CHUNKING_STRATEGIES), default=None, help="Chunking strategy")
    parser.add_argument("--no-reader", action="store_true", help="Never use the reader proxy")
    return parser.parse_args(argv)


def _build_options(args: argparse.Namespace) -> UrlLoadOptions:
    options = UrlLoadOptions.from_env()
    overrides: dict[str, object] = {}
    if args.timeout is not None:
        overrides["timeout"] = args.timeout
    if args.max_retries is not None:
        overrides["max_retries"] = args.max_retries
    if args.min_length is not None:
        overrides["min_content_length"] = args.min_length
    if args.strategy is not None:
        overrides["chunking_strategy"] = args.strategy
    if args.links:
        overrides["extract_links"] = True
    if args.no_meta:
        overrides["extract_meta"] = False
    if args.no_reader:
        overrides["use_reader_proxy"] = False
    return replace(options, **overrides) if overrides else options


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    args = _parse_args(argv)
    try:
        options = _build_options(args)
    except ValueError as exc:
        LOGGER.error("Invalid options: %s", exc)
        return 2

    with IngestionFacade() as facade:
        batch = facade.ingest_urls(list(args.urls), options)

    chunk_counts: dict[str, int] = {}
    for document in batch.documents:
        source = str(document.metadata.get("source", ""))
        chunk_counts[source] = chunk_counts.get(source, 0) + 1

    results = []
    for result in batch.results:
        entry = result.to_dict()
        if result.success:
            entry["chunk_count"] = chunk_counts.get(result.url, 0)
        results.append(entry)

    payload = {
        "requested": len(args.urls),
        "success_count": batch.success_count,
        "fail_count": batch.fail_count,
        "results": results,
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0 if batch.fail_count == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
