#!/usr/bin/env python3
"""Tests for the fleet CLI: formatting helpers, tables and commands."""

from datetime import date

import pytest

from chassis import CitationEvent, InspectionEvent, LedgerBucket, RepairEvent, load_fleet
from fleet import (
    format_date,
    format_due,
    main,
    make_citation_table,
    make_inspection_table,
    make_repair_table,
    truncate,
)


class TestFormatDate:
    """Tests for format_date."""

    def test_date(self):
        assert format_date("2025-01-15") == "2025-01-15"

    def test_empty_returns_dash(self):
        assert format_date("") == "-"
        assert format_date(None) == "-"


class TestFormatDue:
    """Tests for format_due."""

    def test_includes_status_label(self):
        assert format_due("2025-01-10", today=date(2025, 1, 15)) == "2025-01-10 (Overdue 5d)"
        assert format_due("2025-01-20", today=date(2025, 1, 15)) == "2025-01-20 (Due in 5d)"

    def test_empty_returns_dash(self):
        assert format_due("") == "-"


class TestTruncate:
    """Tests for truncate."""

    def test_empty_returns_dash(self):
        assert truncate(None) == "-"
        assert truncate("") == "-"

    def test_short_text_unchanged(self):
        assert truncate("short") == "short"

    def test_long_text_truncated_with_ellipsis(self):
        # max_len=15 → 12 chars + "..." = 15 total
        assert truncate("this is a very long note", max_len=15) == "this is a ve..."


class TestTables:
    """Tests for ledger table builders."""

    def test_inspection_table(self):
        events = [InspectionEvent("i1", "2024-06-01", "2024-08-30", "2024-06-02T10:00:00")]
        assert make_inspection_table(events) == [
            ["2024-06-01", "2024-08-30", "2024-06-02T10:00:00", "i1"]
        ]

    def test_citation_table_counts_links(self):
        citations = [CitationEvent(id="k1", date="2025-01-02", number="A1", location="I-10")]
        rows = make_citation_table(citations, {"k1": 2})
        assert rows == [["2025-01-02", "A1", "I-10", "2", "-", "k1"]]

    def test_repair_table_shows_citation_number(self):
        bucket = LedgerBucket(
            citations=(CitationEvent(id="k1", number="A1"),),
            repairs=(
                RepairEvent(id="r1", vendor="Acme", work="lights", citation_id="k1"),
                RepairEvent(id="r2", work="tires"),
            ),
        )
        rows = make_repair_table(bucket.repairs, bucket)
        assert rows[0][3] == "A1"
        assert rows[1][3] == "-"
        assert rows[1][1] == "-"


class TestCommands:
    """End-to-end tests running the CLI against a temporary fleet file."""

    @pytest.fixture
    def data(self, tmp_path):
        return tmp_path / "fleet.yaml"

    def run(self, data, *argv):
        return main(["--data", str(data), *argv])

    def test_add_and_list(self, data, capsys):
        assert self.run(data, "add", "--unit", "CH-1", "--plate", "P1", "--annual-done", "2024-01-10") == 0
        records, buckets = load_fleet(data)
        assert records[0].annual_due == "2025-01-09"
        assert buckets[records[0].id].annual[0].done_date == "2024-01-10"

        assert self.run(data, "list") == 0
        out = capsys.readouterr().out
        assert "CH-1" in out
        assert "Chassis: 1" in out

    def test_add_requires_unit_or_plate(self, data, capsys):
        assert self.run(data, "add", "--vin", "VIN1") == 1
        assert "Enter at least a Unit or Plate number." in capsys.readouterr().out

    def test_dry_run_writes_nothing(self, data, capsys):
        assert self.run(data, "add", "--unit", "CH-1", "--dry-run") == 0
        assert "dry run" in capsys.readouterr().out
        assert not data.exists()

    def test_inspect_and_edit(self, data):
        self.run(data, "add", "--unit", "CH-1")
        assert self.run(data, "inspect", "ch-1", "bit", "2024-06-01") == 0
        assert self.run(data, "edit", "CH-1", "--notes", "new tires") == 0
        [record], _ = load_fleet(data)
        assert record.bit_due == "2024-08-30"
        assert record.notes == "new tires"

    def test_citation_repair_and_unlink(self, data, capsys):
        self.run(data, "add", "--unit", "CH-1")
        self.run(data, "cite", "CH-1", "--number", "A1", "--date", "2025-01-02")
        [record], buckets = load_fleet(data)
        citation_id = buckets[record.id].citations[0].id

        assert self.run(data, "repair", "CH-1", "--work", "lights", "--citation", citation_id) == 0
        assert self.run(data, "show", "CH-1") == 0
        assert "A1" in capsys.readouterr().out

        assert self.run(data, "delete-citation", "CH-1", citation_id) == 0
        assert "Unlinked 1 repair(s)." in capsys.readouterr().out
        _, buckets = load_fleet(data)
        assert buckets[record.id].citations == ()
        assert buckets[record.id].repairs[0].citation_id == ""

    def test_repair_with_unknown_citation(self, data, capsys):
        self.run(data, "add", "--unit", "CH-1")
        assert self.run(data, "repair", "CH-1", "--citation", "ghost") == 1
        assert "No citation" in capsys.readouterr().out

    def test_cite_token_dedupes(self, data):
        self.run(data, "add", "--unit", "CH-1")
        self.run(data, "cite", "CH-1", "--number", "A1", "--token", "t1")
        self.run(data, "cite", "CH-1", "--number", "A1", "--token", "t1")
        [record], buckets = load_fleet(data)
        assert len(buckets[record.id].citations) == 1

    def test_delete_keeps_ledger(self, data):
        self.run(data, "add", "--unit", "CH-1")
        [record], _ = load_fleet(data)
        assert self.run(data, "delete", "CH-1") == 0
        records, buckets = load_fleet(data)
        assert records == []
        assert record.id in buckets

    def test_unknown_chassis(self, data, capsys):
        assert self.run(data, "show", "nothing") == 1
        assert "No chassis matching" in capsys.readouterr().out

    def test_import_and_export(self, data, tmp_path, capsys):
        source = tmp_path / "in.csv"
        source.write_text("Unit,Plate,VIN\nCH-1,AAA111,VIN1\nCH-1,AAA111,VIN1\n")
        assert self.run(data, "import", str(source)) == 0
        assert "Imported 1 chassis (skipped 1 duplicates)." in capsys.readouterr().out

        assert self.run(data, "export", "--output", "-") == 0
        out = capsys.readouterr().out
        assert out.splitlines() == [
            "unit,plate,vin,registrationDue,annualDue,bitDue,notes",
            "CH-1,AAA111,VIN1,,,,",
        ]

        target = tmp_path / "out.csv"
        assert self.run(data, "export", "--output", str(target)) == 0
        assert target.read_text().startswith("unit,plate,vin")

    def test_import_structural_error(self, data, tmp_path, capsys):
        source = tmp_path / "in.csv"
        source.write_text("a,b\n1,2\n")
        assert self.run(data, "import", str(source)) == 1
        assert "Could not detect headers" in capsys.readouterr().out
        assert not data.exists()

    def test_import_missing_file(self, data, tmp_path, capsys):
        assert self.run(data, "import", str(tmp_path / "missing.csv")) == 1
        assert "File not found" in capsys.readouterr().out

    def test_import_undecodable_file(self, data, tmp_path, capsys):
        latin = tmp_path / "latin.csv"
        latin.write_bytes("Unit,Plate,VIN\nCH-1,Montréal,VIN1\n".encode("latin-1"))
        broken = tmp_path / "broken.xlsx"
        broken.write_text("not a workbook")

        assert self.run(data, "import", str(latin)) == 1
        assert self.run(data, "import", str(broken)) == 1
        out = capsys.readouterr().out
        assert "Error: Could not read 'latin.csv' as UTF-8 CSV" in out
        assert "Error: Could not read 'broken.xlsx' as an Excel workbook" in out
        assert not data.exists()

    def test_inspect_rejects_bad_date(self, data, capsys):
        self.run(data, "add", "--unit", "CH-1")
        assert self.run(data, "inspect", "CH-1", "annual", "not-a-date") == 1
        out = capsys.readouterr().out
        assert "Error: Annual done date 'not-a-date' is not a valid date." in out
        assert "Inspection recorded." not in out
        [record], buckets = load_fleet(data)
        assert buckets[record.id].annual == ()

    def test_edit_rejects_bad_date_and_keeps_stored_one(self, data, capsys):
        self.run(data, "add", "--unit", "CH-1", "--registration-due", "2025-03-01")
        assert self.run(data, "edit", "CH-1", "--registration-due", "2025-13-45") == 1
        assert "Registration due date '2025-13-45' is not a valid date." in capsys.readouterr().out
        [record], _ = load_fleet(data)
        assert record.registration_due == "2025-03-01"

    def test_repeated_token_reports_duplicate(self, data, capsys):
        self.run(data, "add", "--unit", "CH-1")
        self.run(data, "repair", "CH-1", "--work", "lights", "--token", "t1")
        capsys.readouterr()

        assert self.run(data, "repair", "CH-1", "--work", "lights", "--token", "t1") == 0
        out = capsys.readouterr().out
        assert "Duplicate submission ignored." in out
        assert "Repair saved." not in out

        self.run(data, "cite", "CH-1", "--number", "A1", "--token", "t2")
        capsys.readouterr()
        assert self.run(data, "cite", "CH-1", "--number", "A1", "--token", "t2") == 0
        out = capsys.readouterr().out
        assert "Duplicate submission ignored." in out
        assert "Citation saved." not in out


class TestEnvironment:
    """Tests for configuration errors reported by main."""

    def test_bad_soon_days_env(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CHASSIS_SOON_DAYS", "soon")
        assert main(["--data", str(tmp_path / "fleet.yaml"), "list"]) == 1
        assert "Error: CHASSIS_SOON_DAYS must be an integer, got 'soon'" in capsys.readouterr().out

    def test_data_file_from_env(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CHASSIS_DATA_FILE", str(tmp_path / "env.yaml"))
        assert main(["add", "--unit", "CH-9"]) == 0
        assert (tmp_path / "env.yaml").exists()
