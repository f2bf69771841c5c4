"""The two ways of writing a record stream into a destination table.

Both take the same inputs: an engine, the destination ``sa.Table``, the column
specs from ``typemap.map_fields`` and an iterable of records. Both treat one
file as one unit: either every row is written or none is.
"""

from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional

import pandas as pd
import sqlalchemy as sa
from loguru import logger

from .config import DEFAULT_BATCH_SIZE, DEFAULT_NOTIFY_AFTER
from .errors import DbfError, LoadFailure
from .reader import Record
from .typemap import ColumnSpec

ProgressCallback = Callable[[int], None]


def log_progress(rows: int) -> None:
    logger.debug(f"... {rows} rows")


def bind_record(columns: List[ColumnSpec], record: Record) -> list:
    """Values of ``record`` as they are sent to the database, NULL defaults applied."""
    return [spec.bind(value) for spec, value in zip(columns, record.values)]


def records_to_frame(
    records: Iterable[Record], columns: List[ColumnSpec], bind: bool = False
) -> pd.DataFrame:
    """Load records into a DataFrame with one column per field (lower-cased names)."""
    rows = [bind_record(columns, r) if bind else list(r.values) for r in records]
    return pd.DataFrame(rows, columns=[spec.name for spec in columns])


def _counted(
    records: Iterable[Record], notify_after: int, on_progress: ProgressCallback
) -> Iterator[Record]:
    count = 0
    for record in records:
        yield record
        count += 1
        if count % notify_after == 0:
            on_progress(count)


def _batches(records: Iterator[Record], size: int) -> Iterator[List[Record]]:
    while True:
        batch = list(islice(records, size))
        if not batch:
            return
        yield batch


def bulk_load(
    engine: sa.Engine,
    table: sa.Table,
    columns: List[ColumnSpec],
    records: Iterable[Record],
    batch_size: int = DEFAULT_BATCH_SIZE,
    notify_after: int = DEFAULT_NOTIFY_AFTER,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Send the records in DataFrame batches inside a single transaction.

    Returns the number of records consumed. Any failure rolls back the whole
    file and is reported without a partial count.
    The destination table must already exist.
    """
    dtype = {spec.name: spec.type_ for spec in columns}
    stream = _counted(records, notify_after, on_progress or log_progress)
    total = 0
    try:
        with engine.begin() as conn:
            if not sa.inspect(conn).has_table(table.name, schema=table.schema):
                raise LoadFailure(f"Destination table {table.name} does not exist")
            for batch in _batches(stream, batch_size):
                frame = records_to_frame(batch, columns, bind=True)
                frame.to_sql(
                    table.name,
                    con=conn,
                    schema=table.schema,
                    if_exists="append",
                    index=False,
                    dtype=dtype,
                    method=None,
                )
                total += len(batch)
                logger.debug(f"Sent batch of {len(batch)} rows to {table.name}")
    except DbfError:
        raise
    except Exception as e:
        raise LoadFailure(f"Bulk load into {table.name} failed: {e}") from e
    return total


def insert_rows(
    engine: sa.Engine,
    table: sa.Table,
    columns: List[ColumnSpec],
    records: Iterable[Record],
    notify_after: int = DEFAULT_NOTIFY_AFTER,
    on_progress: Optional[ProgressCallback] = None,
) -> int:
    """Insert the records one by one with a prepared statement, in one transaction.

    NULL values are replaced by the column's default (0 or ''), see
    ``typemap.null_default_for``. A failing row rolls back every row of the file.
    """
    on_progress = on_progress or log_progress
    statement = table.insert().values({spec.name: spec.parameter() for spec in columns})
    inserted = 0
    with engine.begin() as conn:
        for record in records:
            params = {
                spec.param_name: value
                for spec, value in zip(columns, bind_record(columns, record))
            }
            try:
                conn.execute(statement, params)
            except sa.exc.SQLAlchemyError as e:
                raise LoadFailure(
                    f"Failed to insert record #{record.record_no + 1} into database, "
                    f"{inserted} already inserted",
                    inserted=inserted,
                ) from e
            inserted += 1
            if inserted % notify_after == 0:
                on_progress(inserted)
    return inserted
