"""Exceptions raised while decoding DBF files and loading them into a database."""

import copy
from pathlib import Path
from typing import Optional


class DbfError(Exception):
    """Base class for every error raised by dbf_transfer."""

    path: Optional[str] = None

    def in_file(self, path) -> "DbfError":
        """Return a copy of this error whose message starts with the file name."""
        error = copy.copy(self)
        error.args = (f"{Path(path).name}: {self}",)
        error.path = str(path)
        return error


class FormatError(DbfError):
    """The file does not follow the DBF layout we can decode.

    Carries whatever positional context is known at the point of failure. Each
    layer (field, record, file) re-raises with ``with_context`` so the final
    message reads outermost first, e.g.
    ``CUSTOMERS.DBF: record #12: field #3 (AMOUNT): invalid numeric value '1,5'``.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        field_no: Optional[int] = None,
        field_name: Optional[str] = None,
        record_no: Optional[int] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.field_no = field_no
        self.field_name = field_name
        self.record_no = record_no
        self.path = path

    def with_context(self, prefix: str, **context) -> "FormatError":
        """Return a copy of this error with ``prefix`` prepended and extra attributes set."""
        attrs = {
            "offset": self.offset,
            "field_no": self.field_no,
            "field_name": self.field_name,
            "record_no": self.record_no,
            "path": self.path,
        }
        attrs.update({k: v for k, v in context.items() if v is not None})
        return FormatError(f"{prefix}: {self.message}", **attrs)

    def in_file(self, path) -> "FormatError":
        return self.with_context(Path(path).name, path=str(path))


class StreamClosedError(DbfError):
    """A record stream was advanced after its file was released."""


class ConfigurationError(DbfError, ValueError):
    """Invalid option, e.g. an unknown codepage."""


class LoadFailure(DbfError):
    """Writing a file's records to the destination failed.

    ``inserted`` is the number of rows applied before the failure (and rolled
    back with it), or None when the load strategy cannot tell.
    """

    def __init__(self, message: str, inserted: Optional[int] = None):
        super().__init__(message)
        self.inserted = inserted


class ImportFailed(DbfError):
    """No file of a batch could be imported."""
