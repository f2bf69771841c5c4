#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Command line entry point: ``dbf-transfer load`` and ``dbf-transfer inspect``."""

import argparse
import sys

from loguru import logger
from sqlalchemy import create_engine

from .config import DEFAULT_BATCH_SIZE, ImportOptions
from .errors import DbfError, ImportFailed
from .importer import import_path, inspect_path

LOG_FORMAT = "[<g>{time:YYYY-MM-DD HH:mm:ss.SSS}</g> :: <c>{level}</c>] {message}"


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level.upper())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbf-transfer", description="Import dBASE (DBF) files into a SQL database"
    )
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    load = sub.add_parser("load", help="Load DBF files into a database")
    load.add_argument("--path", "-p", required=True, help="DBF file, directory or glob pattern")
    load.add_argument("--url", "-u", required=True, help="SQLAlchemy database URL")
    load.add_argument("--codepage", type=int, default=0, help="Code page for decoding text")
    load.add_argument(
        "--char-decode-errors",
        default="strict",
        help="What to do with undecodable text bytes: strict, replace or ignore",
    )
    load.add_argument(
        "--no-bulk-copy",
        action="store_true",
        help="Insert row by row in one transaction instead of bulk batches",
    )
    load.add_argument("--create", action="store_true", help="Drop and create destination tables")
    load.add_argument("--delete-rows", action="store_true", help="Empty destination tables first")
    load.add_argument(
        "--strict-status", action="store_true", help="Reject unknown record status bytes"
    )
    load.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Rows per bulk batch (default: {DEFAULT_BATCH_SIZE})",
    )

    inspect = sub.add_parser("inspect", help="Show header, columns and first rows of DBF files")
    inspect.add_argument("--path", "-p", required=True, help="DBF file, directory or glob pattern")
    inspect.add_argument("--codepage", type=int, default=0, help="Code page for decoding text")
    inspect.add_argument(
        "--char-decode-errors",
        default="strict",
        help="What to do with undecodable text bytes: strict, replace or ignore",
    )
    inspect.add_argument("--rows", type=int, default=3, help="Rows to preview (default: 3)")
    return parser


def run_load(args) -> int:
    options = ImportOptions(
        codepage=args.codepage,
        char_decode_errors=args.char_decode_errors,
        strict_status=args.strict_status,
        bulk_copy=not args.no_bulk_copy,
        create_table=args.create,
        delete_rows=args.delete_rows,
        batch_size=args.batch_size,
    )
    engine = create_engine(args.url)
    try:
        summary = import_path(args.path, engine, options)
    finally:
        engine.dispose()
    return len(summary.failed)


def run_inspect(args) -> int:
    options = ImportOptions(codepage=args.codepage, char_decode_errors=args.char_decode_errors)
    print(inspect_path(args.path, options, rows=args.rows))
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        if args.command == "load":
            return run_load(args)
        return run_inspect(args)
    except ImportFailed as e:
        logger.error(f"❌ {e}")
        return 1
    except DbfError as e:
        logger.error(f"❌ Failed to process files {getattr(args, 'path', '')}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
