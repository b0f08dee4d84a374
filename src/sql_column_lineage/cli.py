"""Command line interface for sql-column-lineage."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Sequence

from sql_column_lineage.analyzer import analyze
from sql_column_lineage.config import LineageOptions
from sql_column_lineage.dialects import DEFAULT_DIALECT, supported_dialects
from sql_column_lineage.models import Schema


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SQL column lineage analyzer")
    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser(
        "analyze", help="Trace output columns back to source columns"
    )
    analyze_parser.add_argument("--sql", help="SQL string to analyze")
    analyze_parser.add_argument("--file", help="Path to SQL file")
    analyze_parser.add_argument(
        "--schema", required=True, help="Path to a JSON schema definition"
    )
    analyze_parser.add_argument(
        "--dialect", default=DEFAULT_DIALECT, help="SQL dialect"
    )
    analyze_parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum nesting depth of derived tables",
    )

    subparsers.add_parser("dialects", help="List supported dialects")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the SQL column lineage CLI."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "analyze":
        sql = _read_sql(args.sql, args.file, parser)
        schema = _read_schema(args.schema, parser)
        options = _read_options(args.max_depth, parser)
        result = analyze(sql, schema, dialect=args.dialect, options=options)
        sys.stdout.write(json.dumps(result, indent=2, ensure_ascii=False))
        sys.stdout.write("\n")
        return 1 if result["errors"] else 0
    if args.command == "dialects":
        sys.stdout.write("\n".join(supported_dialects()))
        sys.stdout.write("\n")
        return 0

    parser.print_help()
    return 2


def _read_file(path: str) -> str:
    """Read text from a file path."""

    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _read_sql(
    sql: str | None, file_path: str | None, parser: argparse.ArgumentParser
) -> str:
    """Resolve SQL from CLI arguments."""

    if file_path:
        return _read_file(file_path)
    if sql:
        return sql
    parser.error("Provide a SQL string or --file path")
    return ""


def _read_schema(path: str, parser: argparse.ArgumentParser) -> Schema:
    """Load a schema definition from a JSON file."""

    try:
        return Schema.from_dict(json.loads(_read_file(path)))
    except (OSError, ValueError) as exc:
        parser.error(f"Invalid schema file {path}: {exc}")
        raise


def _read_options(
    max_depth: int | None, parser: argparse.ArgumentParser
) -> LineageOptions:
    """Resolve lineage options from CLI arguments and the environment."""

    if max_depth is not None:
        if max_depth < 1:
            parser.error(f"--max-depth must be positive, got {max_depth}")
        return LineageOptions(max_depth=max_depth)
    try:
        return LineageOptions.from_env()
    except ValueError as exc:
        parser.error(str(exc))
        raise


if __name__ == "__main__":
    raise SystemExit(main())
