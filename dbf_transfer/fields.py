"""Field descriptors: the column table that follows the file header."""

from dataclasses import dataclass
from typing import BinaryIO, List

from loguru import logger

from .errors import FormatError
from .header import HEADER_SIZE, DbfHeader, read_exact
from .typemap import FieldType, lookup_field_type

DESCRIPTOR_SIZE = 32
TERMINATOR = 0x0D


@dataclass(frozen=True)
class FieldDescriptor:
    no: int
    name: str
    type_char: str
    length: int
    decimal_count: int = 0

    @property
    def field_type(self) -> FieldType:
        return lookup_field_type(self.type_char)


def parse_field_descriptor(data: bytes, no: int, offset: int = 0) -> FieldDescriptor:
    """Decode one 32-byte descriptor.

    Only name, type, length and decimal count are read. The reserved, work
    area and MDX bytes are left alone: writers fill them inconsistently.
    """
    try:
        name = data[:11].rstrip(b"\x00").decode("ascii")
    except UnicodeDecodeError as e:
        raise FormatError(
            f"Field descriptor #{no + 1} has a non-ASCII name {data[:11]!r}", offset=offset
        ) from e
    if not name.strip():
        raise FormatError(f"Field descriptor #{no + 1} has an empty name", offset=offset)

    type_char = chr(data[11])
    try:
        lookup_field_type(type_char)
    except FormatError as e:
        raise e.with_context(
            f"Field descriptor #{no + 1} ({name})", offset=offset + 11, field_no=no, field_name=name
        ) from e

    return FieldDescriptor(
        no=no,
        name=name,
        type_char=type_char,
        length=data[16],
        decimal_count=data[17],
    )


def read_field_descriptors(fh: BinaryIO, header: DbfHeader) -> List[FieldDescriptor]:
    """Read descriptors up to the 0x0D terminator, then skip to the first record.

    The header's field count is only compared afterwards; the terminator is
    what ends the list.
    """
    fields: List[FieldDescriptor] = []
    offset = HEADER_SIZE
    while True:
        first = read_exact(fh, 1, offset, "field descriptor list")
        if first[0] == TERMINATOR:
            break
        rest = read_exact(fh, DESCRIPTOR_SIZE - 1, offset + 1, f"field descriptor #{len(fields) + 1}")
        fields.append(parse_field_descriptor(first + rest, len(fields), offset))
        offset += DESCRIPTOR_SIZE

    if len(fields) != header.field_count:
        logger.debug(
            f"Header length implies {header.field_count} fields, found {len(fields)} before the terminator"
        )

    consumed = HEADER_SIZE + DESCRIPTOR_SIZE * len(fields) + 1
    padding = header.header_length - consumed
    if padding < 0:
        raise FormatError(
            f"Header length {header.header_length} is shorter than the {consumed} bytes of "
            f"header and field descriptors",
            offset=8,
        )
    if padding:
        read_exact(fh, padding, consumed, "header padding")
    return fields
