"""The fixed 32-byte DBF file header."""

import struct
from dataclasses import dataclass
from datetime import date
from typing import BinaryIO, Optional

from .errors import FormatError

HEADER_SIZE = 32

# version, YY, MM, DD, record count, header length, record length
_HEADER_STRUCT = struct.Struct("<BBBBiHH")

# Byte positions that must hold a known value: (offset, expected, label).
# Offsets 28 (production MDX) and 29 (language driver) are free-form.
RESERVED_BYTES = (
    [(12, 0, "Reserved"), (13, 0, "Reserved")]
    + [(14, 0, "Incomplete transaction"), (15, 0, "Encryption")]
    + [(offset, 0, "Reserved") for offset in range(16, 28)]
    + [(30, 0, "Reserved"), (31, 0, "Reserved")]
)


def read_exact(fh: BinaryIO, size: int, offset: int, what: str) -> bytes:
    """Read exactly ``size`` bytes or fail with a FormatError naming ``offset``."""
    data = fh.read(size)
    if len(data) < size:
        raise FormatError(
            f"Truncated {what} at offset {offset} ({len(data)} bytes read instead of {size})",
            offset=offset,
        )
    return data


def pivot_year(yy: int) -> int:
    """Expand the header's two-digit year: 0-69 -> 20yy, 70-99 -> 19yy."""
    return yy + (2000 if yy < 70 else 1900)


@dataclass(frozen=True)
class DbfHeader:
    version: int
    last_update: date
    record_count: Optional[int]
    header_length: int
    record_length: int
    language_driver: int = 0

    @property
    def field_count(self) -> int:
        """Number of fields implied by the header length."""
        return self.header_length // 32 - 1


def parse_header(data: bytes) -> DbfHeader:
    """Decode a 32-byte header block.

    Reserved positions are checked strictly: a wrong byte here usually means a
    corrupt file or a dialect we do not understand, and every later offset
    would be wrong too.
    """
    if len(data) != HEADER_SIZE:
        raise FormatError(
            f"Header must be {HEADER_SIZE} bytes, got {len(data)}", offset=0
        )

    version, yy, mm, dd, record_count, header_length, record_length = (
        _HEADER_STRUCT.unpack_from(data)
    )

    for offset, expected, label in RESERVED_BYTES:
        if data[offset] != expected:
            raise FormatError(
                f"{label} byte at offset {offset} is {data[offset]} instead of {expected}",
                offset=offset,
            )

    try:
        last_update = date(pivot_year(yy), mm, dd)
    except ValueError as e:
        raise FormatError(
            f"Invalid last update date (YY={yy}, MM={mm}, DD={dd}): {e}", offset=1
        ) from e

    return DbfHeader(
        version=version,
        last_update=last_update,
        # A negative count is what some writers leave when they never update it.
        record_count=record_count if record_count >= 0 else None,
        header_length=header_length,
        record_length=record_length,
        language_driver=data[29],
    )


def read_header(fh: BinaryIO) -> DbfHeader:
    """Read and decode the header from the current position of ``fh``."""
    return parse_header(read_exact(fh, HEADER_SIZE, 0, "header"))
