"""Tests for the record stream."""

import struct
from datetime import date
from decimal import Decimal

import pytest

from dbf_transfer.config import ImportOptions
from dbf_transfer.errors import ConfigurationError, FormatError, StreamClosedError
from dbf_transfer.reader import DbfFile, Record

from .conftest import active, deleted

PEOPLE_FIELDS = [("NAME", "C", 6), ("AGE", "N", 3, 0), ("BORN", "D", 8), ("VIP", "L", 1)]


def person(name, age, born, vip):
    return name.ljust(6).encode() + age.rjust(3).encode() + born.encode() + vip.encode()


class TestMinimalFile:
    def test_single_character_record(self, write_dbf):
        """Test the smallest useful file: one C field, one record."""
        path = write_dbf(fields=[("NAME", "C", 4)], records=[active(b"ABCD")])
        with DbfFile(path) as dbf:
            assert dbf.header.version == 3
            assert dbf.header.last_update == date(2020, 1, 1)
            assert dbf.header.record_count == 1
            assert dbf.header.header_length == 65
            assert dbf.header.record_length == 5
            assert [f.name for f in dbf.fields] == ["NAME"]
            records = list(dbf.records())
        assert records == [Record(0, ("ABCD",))]


class TestRecordStream:
    """Tests for decoding, deleted records and cursor alignment."""

    @pytest.fixture
    def people(self, write_dbf):
        return write_dbf(
            fields=PEOPLE_FIELDS,
            records=[
                active(person("ALICE", "34", "19890412", "T")),
                deleted(person("BOB", "51", "19720101", "N")),
                active(person("CAROL", "", "        ", "?")),
                deleted(person("DAVE", "20", "20030303", "Y")),
                active(person("EVE", "7", "00150609", "n")),
            ],
        )

    def test_values_are_typed(self, people):
        with DbfFile(people) as dbf:
            first = next(dbf.records())
        assert first.values == ("ALICE", Decimal(34), date(1989, 4, 12), True)

    def test_deleted_records_are_skipped(self, people):
        """Test that record numbers are physical slots, so deleted slots leave gaps."""
        with DbfFile(people) as dbf:
            records = list(dbf.records())
        assert [r.record_no for r in records] == [0, 2, 4]
        assert [r.values[0] for r in records] == ["ALICE", "CAROL", "EVE"]

    def test_quirks(self, people):
        with DbfFile(people) as dbf:
            records = list(dbf.records())
        assert records[1].values == ("CAROL", Decimal(0), None, False)
        assert records[2].values == ("EVE", Decimal(7), date(2015, 6, 9), False)

    def test_deleted_records_are_fully_consumed(self, people):
        """Test that every slot, deleted or not, advances the cursor by one record length."""
        with DbfFile(people) as dbf:
            list(dbf.records())
            assert dbf.position == dbf.header.header_length + 5 * dbf.header.record_length

    def test_deleted_records_are_decoded(self, write_dbf):
        """Test that a malformed deleted record still fails the file."""
        path = write_dbf(fields=[("FLAG", "L", 1)], records=[active(b"T"), deleted(b"X")])
        with DbfFile(path) as dbf:
            with pytest.raises(FormatError, match="record #1"):
                list(dbf.records())

    def test_padding_after_terminator(self, write_dbf):
        path = write_dbf(fields=[("NAME", "C", 4)], records=[active(b"ABCD")], padding=263)
        with DbfFile(path) as dbf:
            assert [r.values for r in dbf.records()] == [("ABCD",)]

    def test_all_field_types(self, write_dbf):
        fields = [
            ("ID", "I", 4),
            ("PRICE", "N", 8, 2),
            ("RATIO", "F", 6, 2),
            ("STAMP", "T", 8),
            ("NOTES", "M", 4),
            ("BLOB", "W", 4),
            ("_NULLFLAGS", "0", 1),
        ]
        data = (
            struct.pack("<i", -17)
            + b"   12.50"
            + b"  0.25"
            + struct.pack("<ii", 2458381, 3_600_000)
            + b"\x01\x00\x00\x00"
            + b"\x00\x00\x00\x09"
            + b"\x00"
        )
        path = write_dbf(fields=fields, records=[active(data)])
        with DbfFile(path) as dbf:
            (record,) = list(dbf.records())
        assert record.values[0] == -17
        assert record.values[1] == Decimal("12.50")
        assert record.values[2] == 0.25
        assert record.values[3].isoformat() == "2018-09-19T01:00:00"
        assert record.values[4] == "<unresolved memo>"
        assert record.values[5:] == (None, None)

    def test_codepage(self, write_dbf):
        path = write_dbf(fields=[("CITY", "C", 6)], records=[active("Köln  ".encode("cp1252"))])
        with DbfFile(path, encoding="cp1252") as dbf:
            assert next(dbf.records()).values == ("Köln",)

    def test_options(self, write_dbf):
        path = write_dbf(fields=[("CITY", "C", 6)], records=[active("Köln  ".encode("cp850"))])
        with DbfFile.from_options(path, ImportOptions(codepage=850)) as dbf:
            assert dbf.codec.encoding == "cp850"
            assert next(dbf.records()).values == ("Köln",)

    def test_unknown_encoding(self, write_dbf):
        path = write_dbf(records=[active(b"ABCD")])
        with pytest.raises(ConfigurationError):
            DbfFile(path, encoding="no-such-codec")


class TestRecordCount:
    def test_stream_bounded_by_record_count(self, write_dbf):
        """Test that bytes after the declared records are never read."""
        path = write_dbf(records=[active(b"AAAA"), active(b"BBBB")], record_count=1)
        with DbfFile(path) as dbf:
            assert [r.values for r in dbf.records()] == [("AAAA",)]

    def test_unknown_count_stops_at_eof_marker(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA"), active(b"BBBB")], record_count=-1)
        with DbfFile(path) as dbf:
            assert dbf.header.record_count is None
            assert [r.values for r in dbf.records()] == [("AAAA",), ("BBBB",)]

    def test_unknown_count_stops_at_end_of_file(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA")], record_count=-1, trailer=b"")
        with DbfFile(path) as dbf:
            assert [r.values for r in dbf.records()] == [("AAAA",)]

    def test_truncated_file_fails(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA"), active(b"BB")], trailer=b"")
        with DbfFile(path) as dbf:
            records = dbf.records()
            assert next(records).values == ("AAAA",)
            with pytest.raises(FormatError, match="record #1: Truncated record"):
                next(records)


class TestRecordStatus:
    def test_unknown_status_is_accepted(self, write_dbf):
        path = write_dbf(records=[b"#ABCD"])
        with DbfFile(path) as dbf:
            assert [r.values for r in dbf.records()] == [("ABCD",)]

    def test_strict_status(self, write_dbf):
        path = write_dbf(records=[active(b"ABCD"), b"#ABCD"])
        with DbfFile(path, strict_status=True) as dbf:
            with pytest.raises(FormatError, match=r"record #1: Unknown record status \(0x23\)"):
                list(dbf.records())


class TestLifecycle:
    """Tests for single-pass iteration and resource release."""

    def test_stream_is_single_pass(self, write_dbf):
        path = write_dbf(records=[active(b"ABCD")])
        with DbfFile(path) as dbf:
            records = dbf.records()
            with pytest.raises(StreamClosedError, match="reopen"):
                dbf.records()
            assert len(list(records)) == 1

    def test_exhausted_stream_releases_file(self, write_dbf):
        path = write_dbf(records=[active(b"ABCD")])
        dbf = DbfFile(path)
        list(dbf.records())
        assert dbf.closed

    def test_closing_stream_early_releases_file(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA"), active(b"BBBB")])
        dbf = DbfFile(path)
        records = dbf.records()
        next(records)
        records.close()
        assert dbf.closed

    def test_decode_failure_releases_file(self, write_dbf):
        path = write_dbf(fields=[("FLAG", "L", 1)], records=[active(b"X")])
        dbf = DbfFile(path)
        with pytest.raises(FormatError):
            list(dbf.records())
        assert dbf.closed

    def test_advancing_after_close_fails(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA"), active(b"BBBB")])
        with DbfFile(path) as dbf:
            records = dbf.records()
            next(records)
        with pytest.raises(StreamClosedError):
            next(records)

    def test_records_after_close_fails(self, write_dbf):
        path = write_dbf(records=[active(b"AAAA")])
        with DbfFile(path) as dbf:
            pass
        with pytest.raises(StreamClosedError):
            dbf.records()


class TestErrorContext:
    def test_message_names_file_record_and_field(self, write_dbf):
        path = write_dbf(
            name="BAD.DBF",
            fields=[("NAME", "C", 4), ("AMOUNT", "N", 4, 1)],
            records=[active(b"OK  " + b" 1.5"), active(b"BAD " + b" 1,5")],
        )
        with DbfFile(path) as dbf:
            with pytest.raises(FormatError) as exc_info:
                list(dbf.records())
        error = exc_info.value
        assert str(error) == "BAD.DBF: record #1: field #1 (AMOUNT): Invalid numeric value '1,5'"
        assert error.record_no == 1
        assert error.field_no == 1
        assert error.field_name == "AMOUNT"
        assert error.path == str(path)

    def test_header_errors_name_file(self, write_dbf):
        path = write_dbf(name="ENC.DBF", header_overrides={15: 1})
        with pytest.raises(FormatError, match=r"^ENC.DBF: Encryption byte at offset 15"):
            DbfFile(path)

    def test_record_length_mismatch(self, write_dbf):
        path = write_dbf(header_overrides={10: 9})
        with pytest.raises(FormatError, match="Record length 9 does not match"):
            DbfFile(path)

    def test_unsupported_field_type(self, write_dbf):
        path = write_dbf(fields=[("PRICE", "Y", 8)])
        with pytest.raises(FormatError, match="Unsupported DBF field type 'Y'"):
            DbfFile(path)
