"""Destination table layout and DDL for one DBF file."""

from pathlib import Path
from typing import List, Optional

import sqlalchemy as sa
from loguru import logger
from sqlalchemy.schema import CreateTable

from .typemap import ColumnSpec


def table_name_for(path) -> str:
    """Destination table name: the file's base name without extension."""
    return Path(path).stem


def primary_key_name(table_name: str) -> str:
    return f"id_{table_name.lower()}"


def build_table(
    table_name: str, columns: List[ColumnSpec], metadata: Optional[sa.MetaData] = None
) -> sa.Table:
    """Synthetic auto-increment key followed by one column per field, in file order."""
    return sa.Table(
        table_name,
        metadata if metadata is not None else sa.MetaData(),
        sa.Column(primary_key_name(table_name), sa.Integer, primary_key=True, autoincrement=True),
        *(spec.column() for spec in columns),
    )


def create_table_sql(table: sa.Table, engine: Optional[sa.Engine] = None) -> str:
    """CREATE TABLE statement for ``table`` in the engine's dialect (generic SQL without one)."""
    ddl = CreateTable(table)
    compiled = ddl.compile(dialect=engine.dialect) if engine is not None else ddl.compile()
    return str(compiled).strip()


def recreate_table(engine: sa.Engine, table: sa.Table) -> None:
    """Drop ``table`` if it exists, then create it."""
    with engine.begin() as conn:
        table.drop(conn, checkfirst=True)
        table.create(conn)
    logger.info(f"Created table {table.name} ({len(table.columns)} columns)")


def delete_rows(engine: sa.Engine, table: sa.Table) -> int:
    """Empty ``table`` and return the number of rows deleted."""
    with engine.begin() as conn:
        deleted = conn.execute(table.delete()).rowcount
    logger.info(f"Deleted {deleted} rows from {table.name}")
    return deleted
