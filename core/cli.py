"""Command line front end for the text search service."""

import argparse
import sys
from typing import List, Optional, Sequence

from core.config import DB_PATH, DEFAULT_CLEAR_EXISTING, DEFAULT_EMBED_MODEL, DEFAULT_TOP_N
from core.errors import StorageIOError
from core.service import TextSearchService, build_service
from core.state import BulkInsertResult, OperationError, SearchHit


def format_search_results(hits: List[SearchHit]) -> str:
    lines = [
        f"{rank}. (Similarity: {hit.score:.4f}) {hit.text}"
        for rank, hit in enumerate(hits, start=1)
    ]
    return f"Found {len(hits)} similar text chunks:\n\n" + "\n\n".join(lines)


def format_bulk_summary(
    source_path: str, clear_existing: bool, summary: BulkInsertResult
) -> str:
    mode = "cleared existing data" if clear_existing else "appended to existing data"
    message = (
        f"Successfully loaded spreadsheet data from {source_path} ({mode}): "
        f"{summary.inserted} inserted"
    )
    if summary.skipped:
        message += f", {summary.skipped} duplicates skipped"
    return message


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="text-search",
        description="Store short texts with embeddings and search them by similarity.",
    )
    parser.add_argument("--db", default=str(DB_PATH), help="SQLite database path.")
    parser.add_argument(
        "--model", default=DEFAULT_EMBED_MODEL, help="Sentence-transformers model name."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Add a single piece of text.")
    add.add_argument("text", help="The text to add to the database.")

    load = subparsers.add_parser(
        "load", help="Load text cells from a spreadsheet (xlsx, csv, tsv)."
    )
    load.add_argument("path", help="Path to the spreadsheet file.")
    load.add_argument(
        "--append",
        dest="clear_existing",
        action="store_false",
        default=DEFAULT_CLEAR_EXISTING,
        help="Keep existing data and skip texts already stored.",
    )
    load.add_argument(
        "--sheet", default=None, help="Sheet name or index (default: first sheet)."
    )

    search = subparsers.add_parser("search", help="Search for similar text chunks.")
    search.add_argument("query", help="The search query text.")
    search.add_argument(
        "--top-n",
        type=int,
        default=DEFAULT_TOP_N,
        help="Number of top results to return.",
    )
    return parser


def _report_error(error: OperationError) -> int:
    print(f"Error: {error.message}", file=sys.stderr)
    return 1


def run(args: argparse.Namespace, service: TextSearchService) -> int:
    if args.command == "add":
        result = service.add_text(args.text)
        if result.error is not None:
            return _report_error(result.error)
        print(f"Successfully added text to database with ID: {result.value}")
        return 0
    if args.command == "load":
        result = service.load_bulk(args.path, clear_existing=args.clear_existing)
        if result.error is not None:
            return _report_error(result.error)
        print(format_bulk_summary(args.path, args.clear_existing, result.value))
        return 0
    result = service.search(args.query, top_n=args.top_n)
    if result.error is not None:
        return _report_error(result.error)
    print(format_search_results(result.value))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    sheet = getattr(args, "sheet", None)
    if sheet is not None and sheet.isdigit():
        sheet = int(sheet)
    try:
        service = build_service(db_path=args.db, model_name=args.model, sheet=sheet)
    except StorageIOError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2
    return run(args, service)


if __name__ == "__main__":
    sys.exit(main())
