"""Importing DBF files, one or many, into a SQLAlchemy destination."""

import glob
import time
from dataclasses import dataclass, field
from itertools import islice
from pathlib import Path
from typing import List, Optional

import sqlalchemy as sa
from loguru import logger

from .config import DBF_FILE_MASK, ImportOptions
from .errors import DbfError, ImportFailed, LoadFailure
from .loaders import ProgressCallback, bulk_load, insert_rows, records_to_frame
from .reader import DbfFile
from .schema import build_table, create_table_sql, delete_rows, recreate_table, table_name_for
from .typemap import map_fields


@dataclass
class ImportSummary:
    records: int = 0
    succeeded: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)
    duration: float = 0.0


def find_dbf_files(path) -> List[Path]:
    """Files to import for ``path``: a file, every DBF in a directory, or a glob pattern."""
    p = Path(path)
    if p.is_file():
        return [p]
    if p.is_dir():
        suffix = Path(DBF_FILE_MASK).suffix.lower()
        return sorted(f for f in p.iterdir() if f.is_file() and f.suffix.lower() == suffix)
    return sorted(Path(f) for f in glob.glob(str(p)) if Path(f).is_file())


def import_file(
    path,
    engine: sa.Engine,
    options: Optional[ImportOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Load one DBF file into the table named after it. Returns the number of rows written.

    Errors are re-raised with the file name in front of their message.
    """
    options = options or ImportOptions()
    path = Path(path)
    started = time.perf_counter()
    logger.info(f"📥 Processing {path}...")

    try:
        table_name, inserted = _load_file(path, engine, options, on_progress)
    except DbfError as e:
        if e.path is not None:
            raise
        raise e.in_file(path) from e
    except sa.exc.SQLAlchemyError as e:
        raise LoadFailure(str(e)).in_file(path) from e

    logger.info(f"✅ {inserted} rows inserted into {table_name} in {time.perf_counter() - started:.3f}s")
    return inserted


def _load_file(path: Path, engine, options: ImportOptions, on_progress):
    with DbfFile.from_options(path, options) as dbf:
        header = dbf.header
        logger.info(f"  LastUpdate: {header.last_update.isoformat()}")
        logger.info(f"  Fields:     {header.field_count}")
        if header.record_count is not None:
            logger.info(f"  Records:    {header.record_count}")

        columns = map_fields(dbf.fields)
        table = build_table(table_name_for(path), columns)
        if options.create_table:
            logger.debug(create_table_sql(table, engine))
            recreate_table(engine, table)
        if options.delete_rows:
            delete_rows(engine, table)

        if options.bulk_copy:
            inserted = bulk_load(
                engine,
                table,
                columns,
                dbf.records(),
                batch_size=options.batch_size,
                notify_after=options.notify_after,
                on_progress=on_progress,
            )
        else:
            inserted = insert_rows(
                engine,
                table,
                columns,
                dbf.records(),
                notify_after=options.notify_after,
                on_progress=on_progress,
            )

    return table.name, inserted


def import_path(path, engine: sa.Engine, options: Optional[ImportOptions] = None) -> ImportSummary:
    """Import every file matched by ``path``, continuing past files that fail.

    Raises ImportFailed when not a single file could be imported.
    """
    started = time.perf_counter()
    summary = ImportSummary()
    for dbf_path in find_dbf_files(path):
        try:
            summary.records += import_file(dbf_path, engine, options)
            summary.succeeded.append(dbf_path)
        except Exception as e:  # the batch goes on; the failure is counted and logged
            logger.error(f"❌ Failed to process file {dbf_path}: {e}")
            summary.failed.append(dbf_path)
    summary.duration = time.perf_counter() - started

    if not summary.succeeded:
        raise ImportFailed(f"No files were successfully imported from {path}")

    logger.info("Import finished.")
    logger.info(f"  Records:         {summary.records}")
    logger.info(f"  Succeeded files: {len(summary.succeeded)}")
    logger.info(f"  Failed files:    {len(summary.failed)}")
    logger.info(f"  Total duration:  {summary.duration:.3f}s")
    return summary


def inspect_file(path, options: Optional[ImportOptions] = None, rows: int = 3) -> str:
    """Header summary, column mapping and the first ``rows`` records of one file."""
    options = options or ImportOptions()
    with DbfFile.from_options(path, options) as dbf:
        columns = map_fields(dbf.fields)
        header = dbf.header
        count = "unknown" if header.record_count is None else header.record_count
        lines = [
            f"=== {Path(path).name} === version=0x{header.version:02X} "
            f"last_update={header.last_update.isoformat()} records={count}",
            "Columns: "
            + ", ".join(f"{spec.name} {spec.field.type_char}({spec.field.length}) -> {spec.type_}" for spec in columns),
        ]
        frame = records_to_frame(islice(dbf.records(), rows), columns)
    if not frame.empty:
        lines.append("Preview:")
        lines.append(frame.to_string(index=False))
    return "\n".join(lines)


def inspect_path(path, options: Optional[ImportOptions] = None, rows: int = 3) -> str:
    """``inspect_file`` for every file matched by ``path``; unreadable files are reported inline."""
    out_lines = []
    for dbf_path in find_dbf_files(path):
        try:
            out_lines.append(inspect_file(dbf_path, options, rows))
        except Exception as e:
            out_lines.append(f"=== {dbf_path.name} === (read error) {e}")
    return "\n\n".join(out_lines)
