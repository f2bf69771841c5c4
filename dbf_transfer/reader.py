"""Reading DBF files as a lazy stream of records.

    >>> with DbfFile("CUSTOMERS.DBF", encoding="cp1252") as dbf:
    ...     for record in dbf.records():
    ...         print(record.record_no, record.values)

The stream is pull based and single pass: nothing past the header is decoded
until a record is requested, and once the records have been consumed (or the
file has been closed) the file must be opened again to read them again.
"""

import codecs
from pathlib import Path
from typing import BinaryIO, Iterator, List, NamedTuple, Optional, Tuple

from loguru import logger

from .config import DEFAULT_CHAR_DECODE_ERRORS, DEFAULT_ENCODING, ImportOptions
from .errors import ConfigurationError, FormatError, StreamClosedError
from .fields import FieldDescriptor, read_field_descriptors
from .header import DbfHeader, read_exact, read_header
from .typemap import decode_field
from .values import TextCodec

STATUS_ACTIVE = 0x20
STATUS_DELETED = 0x2A
EOF_MARKER = 0x1A


class Record(NamedTuple):
    record_no: int
    values: Tuple


class DbfFile:
    """An open DBF file: header, field descriptors and a one-shot record stream."""

    def __init__(
        self,
        path,
        encoding: str = DEFAULT_ENCODING,
        char_decode_errors: str = DEFAULT_CHAR_DECODE_ERRORS,
        strict_status: bool = False,
    ):
        self.path = Path(path)
        try:
            self.codec = TextCodec(codecs.lookup(encoding).name, char_decode_errors)
        except LookupError as e:
            raise ConfigurationError(f"Unknown text encoding '{encoding}'") from e
        self.strict_status = strict_status

        self._fh: Optional[BinaryIO] = open(self.path, "rb")
        self._consumed = False
        try:
            self.header: DbfHeader = read_header(self._fh)
            self.fields: List[FieldDescriptor] = read_field_descriptors(self._fh, self.header)
            self._check_record_length()
        except FormatError as e:
            self.close()
            raise e.with_context(self.path.name, path=str(self.path)) from e
        except BaseException:
            self.close()
            raise
        self.position = self.header.header_length

    @classmethod
    def from_options(cls, path, options: ImportOptions) -> "DbfFile":
        return cls(
            path,
            encoding=options.encoding,
            char_decode_errors=options.char_decode_errors,
            strict_status=options.strict_status,
        )

    def _check_record_length(self):
        data_length = sum(field.length for field in self.fields)
        if data_length + 1 != self.header.record_length:
            raise FormatError(
                f"Record length {self.header.record_length} does not match the field "
                f"lengths ({data_length} + 1 status byte)",
                offset=10,
            )

    @property
    def closed(self) -> bool:
        return self._fh is None

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[Record]:
        return self.records()

    def records(self) -> Iterator[Record]:
        """Return the record stream. Can only be called once per open file."""
        if self.closed:
            raise StreamClosedError(f"{self.path.name} is closed")
        if self._consumed:
            raise StreamClosedError(
                f"Records of {self.path.name} were already read; reopen the file to read them again"
            )
        self._consumed = True
        return self._iter_records()

    def _iter_records(self) -> Iterator[Record]:
        record_count = self.header.record_count
        record_no = 0
        try:
            while record_count is None or record_no < record_count:
                data = self._read_slot(record_no)
                if data is None:
                    return
                record = self._decode_record(record_no, data)
                if record is not None:
                    yield record
                record_no += 1
        except FormatError as e:
            raise e.with_context(self.path.name, path=str(self.path)) from e
        finally:
            self.close()

    def _read_slot(self, record_no: int) -> Optional[bytes]:
        """Raw bytes of one record slot, or None at the end of a file without a record count."""
        if self._fh is None:
            raise StreamClosedError(f"{self.path.name} was closed while reading records")
        offset = self.position
        try:
            status = self._fh.read(1)
            if self.header.record_count is None and (not status or status[0] == EOF_MARKER):
                return None
            if not status:
                raise FormatError(
                    f"Truncated file: expected {self.header.record_count} records", offset=offset
                )
            data = status + read_exact(
                self._fh, self.header.record_length - 1, offset + 1, "record"
            )
        except FormatError as e:
            raise e.with_context(f"record #{record_no}", record_no=record_no) from e
        self.position = offset + len(data)
        return data

    def _decode_record(self, record_no: int, data: bytes) -> Optional[Record]:
        status = data[0]
        try:
            if status not in (STATUS_ACTIVE, STATUS_DELETED):
                if self.strict_status:
                    raise FormatError(f"Unknown record status (0x{status:02X})")
                logger.debug(f"{self.path.name}: record #{record_no} has status 0x{status:02X}")

            values = []
            start = 1
            for field in self.fields:
                end = start + field.length
                values.append(decode_field(data[start:end], field, self.codec))
                start = end
        except FormatError as e:
            raise e.with_context(f"record #{record_no}", record_no=record_no) from e

        # Deleted records are decoded like the others, but never handed out.
        if status == STATUS_DELETED:
            return None
        return Record(record_no, tuple(values))
