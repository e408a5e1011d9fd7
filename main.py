#!/usr/bin/env python3
"""
Main entry point for chat-graph.

Provides a command-line interface to inspect parsed exports and to ingest
them into Neo4j.

Examples:
    chat-graph parse ~/Takeout/Voice/Calls --format json
    chat-graph parse "logs/**/*.txt" --transcript
    chat-graph ingest ~/Takeout/Voice/Calls --batch-size 200
"""
from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sys

from tqdm import tqdm

from chatgraph.config import Config
from chatgraph.etl import (
    InputResolutionError,
    Neo4jGraphStore,
    StoreError,
    ThreadParseError,
    TranscriptThreadParser,
    expand_input,
    iter_documents,
    parser_for_path,
    run_ingest,
)
from chatgraph.logger_config import setup_logging
from chatgraph.render import OUTPUT_FORMATS, RunStatistics, render_debug, render_json
from chatgraph.utils import Colors

logger = logging.getLogger(__name__)


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract conversations from chat exports and load them into Neo4j."
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Input file, directory, or glob pattern.")
    common.add_argument(
        "--transcript",
        action="store_true",
        help="Treat every input file as a line-oriented transcript (no marker filtering).",
    )

    parse_cmd = subparsers.add_parser(
        "parse", parents=[common], help="Parse exports and print the result."
    )
    parse_cmd.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="default",
        help="debug dump, pretty JSON, or a progress bar with run statistics (default).",
    )

    ingest_cmd = subparsers.add_parser(
        "ingest", parents=[common], help="Parse exports and write them to Neo4j."
    )
    ingest_cmd.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Threads per batch (default: CHAT_GRAPH_BATCH_SIZE or 100).",
    )
    ingest_cmd.add_argument(
        "--queue-capacity",
        type=int,
        default=None,
        help="Parsed threads buffered ahead of the writer (default: CHAT_GRAPH_QUEUE_CAPACITY or 32).",
    )
    return parser.parse_args(argv)


def _documents(args: argparse.Namespace) -> List[Path]:
    paths = expand_input(args.input)
    return list(iter_documents(paths, markup_only=not args.transcript))


def run_parse(args: argparse.Namespace) -> None:
    """Parse every document and render it in the requested format."""
    documents = _documents(args)
    forced_parser = TranscriptThreadParser() if args.transcript else None
    stats = RunStatistics()

    progress = None
    if args.format == "default":
        progress = tqdm(total=len(documents), unit="file", desc="Parsing")

    try:
        for path in documents:
            thread = (forced_parser or parser_for_path(path)).parse_file(path)
            stats.add(thread)
            if args.format == "debug":
                print(render_debug(thread))
            elif args.format == "json":
                print(render_json(thread))
            else:
                progress.update(1)
    finally:
        if progress is not None:
            progress.close()

    stats.finish()
    if args.format == "default":
        print(stats)


def run_ingest_command(args: argparse.Namespace) -> None:
    """Parse every document and ingest the threads into Neo4j."""
    config = Config(batch_size=args.batch_size, queue_capacity=args.queue_capacity)

    if not config.validate():
        raise StoreError("NEO4J_PASSWORD is not set; cannot connect to the graph store")

    documents = _documents(args)
    forced_parser = TranscriptThreadParser() if args.transcript else None
    stats = RunStatistics()

    print(f"{Colors.OKGREEN}Using graph store: {config.neo4j_uri}{Colors.ENDC}")

    with Neo4jGraphStore(
        config.neo4j_uri,
        config.neo4j_user,
        config.neo4j_password,
        database=config.neo4j_database,
    ) as store, tqdm(total=len(documents), unit="file", desc="Ingesting") as progress:

        def on_parsed(path: Path, thread) -> None:
            stats.add(thread)
            progress.update(1)

        result = run_ingest(
            documents,
            store,
            batch_size=config.batch_size,
            queue_capacity=config.queue_capacity,
            parser=forced_parser,
            on_parsed=on_parsed,
        )

    stats.finish()
    print(stats)
    print(f"\n{Colors.OKGREEN}{result}{Colors.ENDC}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    setup_logging(log_file=args.log_file)

    try:
        if args.command == "parse":
            run_parse(args)
        else:
            run_ingest_command(args)
    except (InputResolutionError, ThreadParseError, StoreError, ValueError) as e:
        print(f"{Colors.FAIL}Error: {e}{Colors.ENDC}", file=sys.stderr)
        logger.exception("Error during execution")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
