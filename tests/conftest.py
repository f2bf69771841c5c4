"""Pytest fixtures: DBF files built byte by byte, and a SQLite destination."""

import struct

import pytest
import sqlalchemy as sa


def field_bytes(name, type_char, length, decimal_count=0, filler=b"\x00"):
    """One 32-byte field descriptor. ``filler`` goes into the unchecked bytes."""
    return (
        name.encode("ascii").ljust(11, b"\x00")
        + type_char.encode("ascii")
        + filler * 4
        + bytes([length, decimal_count])
        + filler * 14
    )


def header_bytes(
    record_count,
    header_length,
    record_length,
    version=3,
    yy=20,
    mm=1,
    dd=1,
    overrides=None,
):
    """32-byte header; ``overrides`` maps byte offsets to values."""
    data = bytearray(
        struct.pack("<BBBBiHH", version, yy, mm, dd, record_count, header_length, record_length)
        + bytes(20)
    )
    for offset, value in (overrides or {}).items():
        data[offset] = value
    return bytes(data)


def active(data):
    return b" " + data


def deleted(data):
    return b"*" + data


def build_dbf(fields, records=(), record_count=None, padding=0, header_overrides=None, trailer=b"\x1a"):
    """A complete DBF file.

    ``fields`` are ``(name, type, length[, decimals])`` tuples and ``records``
    raw record bytes including the status byte (see ``active``/``deleted``).
    """
    descriptors = b"".join(field_bytes(*f) for f in fields)
    header_length = 32 + len(descriptors) + 1 + padding
    record_length = 1 + sum(f[2] for f in fields)
    if record_count is None:
        record_count = len(records)
    return (
        header_bytes(record_count, header_length, record_length, overrides=header_overrides)
        + descriptors
        + b"\x0d"
        + bytes(padding)
        + b"".join(records)
        + trailer
    )


@pytest.fixture
def write_dbf(tmp_path):
    """Write a DBF built with ``build_dbf`` and return its path."""

    def _write(name="PEOPLE.DBF", fields=(("NAME", "C", 4),), records=(), **kwargs):
        path = tmp_path / name
        path.write_bytes(build_dbf(fields, records, **kwargs))
        return path

    return _write


@pytest.fixture
def engine(tmp_path):
    """SQLite database file used as the destination."""
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'destination.db'}")
    yield engine
    engine.dispose()
