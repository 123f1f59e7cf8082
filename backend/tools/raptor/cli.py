"""
RAPTOR CLI - build summary trees from text files on the command line

Usage:
    python -m tools.raptor.cli process notes.md --chunk-size 500 --max-levels 3
    python -m tools.raptor.cli process notes.md --json > tree.json
    python -m tools.raptor.cli chunk notes.md --chunk-size 500
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from config import get_config
from errors import RaptorError
from logging_config import setup_logging

from .chunker import SplitConfig, TextChunker
from .tree_builder import RaptorTreeBuilder

logger = logging.getLogger(__name__)


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def process_file(path: str, chunk_size: Optional[int] = None, max_levels: Optional[int] = None, as_json: bool = False) -> None:
    """Build a tree for one file and print it."""
    builder = RaptorTreeBuilder()
    tree = builder.process_text(_read_text(path), chunk_size=chunk_size, max_levels=max_levels)

    if as_json:
        print(json.dumps(tree.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"\nRAPTOR Tree for '{path}':")
    print(f"  Levels built: {tree.depth}")
    print(f"  Total texts: {len(tree.all_texts)}")
    for level, result in tree.levels.items():
        failed = sum(1 for s in result.summaries if s.failed)
        suffix = " (fallback)" if result.fallback else ""
        print(
            f"  Level {level}: {len(result.embeddings)} units -> {len(result.clusters)} clusters, "
            f"{len(result.summaries)} summaries ({failed} failed){suffix}"
        )

    top = tree.levels[max(tree.levels)]
    print("\nTop-level summary:")
    for summary in top.summaries:
        print(f"  [{summary.cluster_id}] {summary.summary[:500]}")


def chunk_file(path: str, chunk_size: Optional[int] = None) -> None:
    """Print chunk statistics for one file."""
    chunk_size = chunk_size or get_config().default_chunk_size
    chunker = TextChunker()
    chunks = chunker.split_text(_read_text(path), SplitConfig.from_runtime(chunk_size))
    stats = chunker.chunk_stats(chunks)

    print(f"\nChunks for '{path}' (chunk_size={chunk_size}):")
    print(f"  Count: {stats.chunk_count}")
    print(f"  Tokens avg/min/max: {stats.average_tokens:.1f} / {stats.min_tokens} / {stats.max_tokens}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="RAPTOR recursive summarization CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tools.raptor.cli process notes.md
  python -m tools.raptor.cli process notes.md --chunk-size 500 --max-levels 2 --json
  python -m tools.raptor.cli chunk notes.md --chunk-size 500
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Process command
    process_parser = subparsers.add_parser("process", help="Build a summary tree")
    process_parser.add_argument("file", type=str, help="UTF-8 text file")
    process_parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Chunk size in estimated tokens (default: 2000)",
    )
    process_parser.add_argument(
        "--max-levels",
        type=int,
        default=None,
        help="Maximum tree depth (default: 3)",
    )
    process_parser.add_argument("--json", action="store_true", help="Print the full tree as JSON")

    # Chunk command
    chunk_parser = subparsers.add_parser("chunk", help="Show chunk statistics only")
    chunk_parser.add_argument("file", type=str, help="UTF-8 text file")
    chunk_parser.add_argument("--chunk-size", type=int, default=None, help="Chunk size in estimated tokens")

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, stream=sys.stderr)

    try:
        if args.command == "process":
            process_file(args.file, args.chunk_size, args.max_levels, as_json=args.json)
        elif args.command == "chunk":
            chunk_file(args.file, args.chunk_size)
        else:
            parser.print_help()
            sys.exit(1)
    except (OSError, RaptorError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
