"""Decoders turning one field's raw bytes into a Python value.

Every decoder takes the raw byte window of a field, optionally the field's
descriptor and the text codec, and returns the value or None. Malformed input
raises FormatError; the caller adds the field/record context.
"""

import re
import struct
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional

from .config import DEFAULT_CHAR_DECODE_ERRORS, DEFAULT_ENCODING
from .errors import FormatError

# Day number (days since Jan 1, 4713 BC) of 0001-01-01, the first day datetime
# can represent. 2018-09-19 is day 2458381 and ordinal 736956.
JULIAN_DAY_OFFSET = 1_721_426

# Returned for memo fields that point into a companion .DBT/.FPT file.
MEMO_PLACEHOLDER = "<unresolved memo>"

_NUMERIC_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")
_INT32 = struct.Struct("<i")
_TIMESTAMP = struct.Struct("<ii")

TRUE_CHARS = frozenset("YyTt")
FALSE_CHARS = frozenset("NnFf")
UNDEFINED_CHARS = frozenset("? ")


class TextCodec(NamedTuple):
    """How character fields are turned into str."""

    encoding: str = DEFAULT_ENCODING
    errors: str = DEFAULT_CHAR_DECODE_ERRORS


ASCII = TextCodec()


def _expect_width(data: bytes, width: int, kind: str) -> None:
    if len(data) != width:
        raise FormatError(f"{kind} has invalid length ({len(data)} instead of {width})")


def _ascii(data: bytes, kind: str) -> str:
    try:
        return data.decode("ascii")
    except UnicodeDecodeError as e:
        raise FormatError(f"{kind} contains non-ASCII bytes {data!r}") from e


def decode_character(data: bytes, field=None, codec: TextCodec = ASCII) -> str:
    """Text in the configured codepage, trailing whitespace removed. Never None."""
    try:
        text = data.decode(codec.encoding, codec.errors)
    except UnicodeDecodeError as e:
        raise FormatError(f"Cannot decode {data!r} as {codec.encoding}: {e.reason}") from e
    return text.rstrip()


def decode_integer(data: bytes, field=None, codec: TextCodec = ASCII) -> int:
    _expect_width(data, 4, "Integer")
    return _INT32.unpack(data)[0]


def _numeric_text(data: bytes) -> str:
    text = _ascii(data, "Numeric").lstrip()
    # Blank numerics load as zero rather than NULL.
    if text == "":
        text = "0"
    if text.startswith("."):
        text = "0" + text
    return text


def decode_numeric(data: bytes, field=None, codec: TextCodec = ASCII) -> Decimal:
    """ASCII digits parsed as an exact Decimal. Blank is 0, never None."""
    text = _numeric_text(data).rstrip()
    if not _NUMERIC_RE.fullmatch(text):
        raise FormatError(f"Invalid numeric value '{text}'")
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise FormatError(f"Invalid numeric value '{text}'") from e


def decode_float(data: bytes, field=None, codec: TextCodec = ASCII) -> float:
    """Same text rules as numeric fields, returned as float."""
    return float(decode_numeric(data, field, codec))


def decode_logical(data: bytes, field=None, codec: TextCodec = ASCII) -> bool:
    """Y/T are true, N/F false. Undefined ('?' or blank) also reads as false."""
    _expect_width(data, 1, "Logical")
    ch = chr(data[0])
    if ch in TRUE_CHARS:
        return True
    if ch in FALSE_CHARS or ch in UNDEFINED_CHARS:
        return False
    raise FormatError(f"Unknown logical value ({ch!r})")


def decode_date(data: bytes, field=None, codec: TextCodec = ASCII) -> Optional[date]:
    """``yyyyMMdd``; a blank date is None and a ``00`` century means 20xx."""
    _expect_width(data, 8, "Date")
    text = _ascii(data, "Date")
    if text == " " * 8:
        return None
    if text.startswith("00"):
        text = "20" + text[2:]
    if not text.isdigit():
        raise FormatError(f"Invalid date '{text}'")
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError as e:
        raise FormatError(f"Invalid date '{text}'") from e


def decode_timestamp(data: bytes, field=None, codec: TextCodec = ASCII) -> Optional[datetime]:
    """Julian day number plus milliseconds since midnight. All zero is None."""
    _expect_width(data, 8, "Time")
    days, msecs = _TIMESTAMP.unpack(data)
    if days == 0 and msecs == 0:
        return None
    try:
        return datetime.min + timedelta(days=days - JULIAN_DAY_OFFSET, milliseconds=msecs)
    except OverflowError as e:
        raise FormatError(f"Time out of range (day {days}, {msecs} ms)") from e


def decode_memo(data: bytes, field=None, codec: TextCodec = ASCII) -> Optional[str]:
    """Memo pointers are not followed: empty pointers are None, others a placeholder."""
    if len(data) != 4:
        raise FormatError(f"Memo field with length {len(data)} instead of 4")
    if data == b"\x00\x00\x00\x00" or data == b"    ":
        return None
    return MEMO_PLACEHOLDER


def decode_nothing(data: bytes, field=None, codec: TextCodec = ASCII) -> None:
    """Vendor marker columns keep their place in the record but carry no value."""
    return None
