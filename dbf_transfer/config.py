"""Defaults and per-run options."""

import codecs
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError

# --- Defaults ---
DEFAULT_ENCODING = "ascii"
DEFAULT_CHAR_DECODE_ERRORS = "strict"
DEFAULT_BATCH_SIZE = 10_000
DEFAULT_NOTIFY_AFTER = 1_000
DBF_FILE_MASK = "*.DBF"

# Windows codepage numbers whose Python codec is not named cp<n>
CODEPAGE_ALIASES = {
    1200: "utf-16-le",
    1201: "utf-16-be",
    20127: "ascii",
    28591: "latin-1",
    28592: "iso8859-2",
    28595: "iso8859-5",
    28597: "iso8859-7",
    28599: "iso8859-9",
    28605: "iso8859-15",
    65001: "utf-8",
}


def encoding_for_codepage(codepage: Optional[int]) -> str:
    """Translate a Windows/DOS codepage number into a Python codec name.

    0 or None means "not configured" and falls back to 7-bit ASCII.
    """
    if not codepage:
        return DEFAULT_ENCODING
    name = CODEPAGE_ALIASES.get(codepage, f"cp{codepage}")
    try:
        return codecs.lookup(name).name
    except LookupError as e:
        raise ConfigurationError(f"Unknown codepage {codepage}") from e


@dataclass(frozen=True)
class ImportOptions:
    """Choices for one import run, shared by every file of the batch."""

    codepage: Optional[int] = None
    char_decode_errors: str = DEFAULT_CHAR_DECODE_ERRORS
    strict_status: bool = False
    bulk_copy: bool = True
    create_table: bool = False
    delete_rows: bool = False
    batch_size: int = DEFAULT_BATCH_SIZE
    notify_after: int = DEFAULT_NOTIFY_AFTER

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
        if self.notify_after <= 0:
            raise ConfigurationError(f"notify_after must be positive, got {self.notify_after}")
        try:
            codecs.lookup_error(self.char_decode_errors)
        except LookupError as e:
            raise ConfigurationError(
                f"Unknown char_decode_errors handler '{self.char_decode_errors}'"
            ) from e

    @property
    def encoding(self) -> str:
        return encoding_for_codepage(self.codepage)
