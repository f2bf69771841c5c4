"""Decode dBASE (DBF) files and load them into relational databases."""

from .config import ImportOptions
from .errors import (
    ConfigurationError,
    DbfError,
    FormatError,
    ImportFailed,
    LoadFailure,
    StreamClosedError,
)
from .fields import FieldDescriptor
from .header import DbfHeader
from .importer import ImportSummary, import_file, import_path, inspect_path
from .loaders import bulk_load, insert_rows, records_to_frame
from .reader import DbfFile, Record
from .typemap import FIELD_TYPES, ColumnSpec, map_fields

__version__ = "1.0.0"

__all__ = [
    "FIELD_TYPES",
    "ColumnSpec",
    "ConfigurationError",
    "DbfError",
    "DbfFile",
    "DbfHeader",
    "FieldDescriptor",
    "FormatError",
    "ImportFailed",
    "ImportOptions",
    "ImportSummary",
    "LoadFailure",
    "Record",
    "StreamClosedError",
    "bulk_load",
    "import_file",
    "import_path",
    "insert_rows",
    "inspect_path",
    "map_fields",
    "records_to_frame",
]
