#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from chassis import ChassisRecord, LedgerBucket, RepairEvent, save_fleet
from validate_yaml import check_consistency, load_schema, main, validate_fleet_file


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        assert "chassis" in schema["properties"]
        assert "ledger" in schema["properties"]


class TestValidateFleetFile:
    """Tests for validate_fleet_file function."""

    def test_valid_minimal_returns_no_errors(self, tmp_path):
        """Valid minimal fleet file returns empty error list."""
        path = tmp_path / "valid.yaml"
        path.write_text("""
chassis:
  - id: c1
    unit: CH-101
    plate: 4ABC123
    annualDue: '2025-09-01'
""")
        assert validate_fleet_file(path, load_schema()) == []

    def test_saved_file_is_valid(self, tmp_path):
        """Files written by save_fleet pass validation."""
        path = tmp_path / "fleet.yaml"
        save_fleet(
            path,
            [ChassisRecord(id="c1", unit="CH-1", bit_due="2025-03-01")],
            {"c1": LedgerBucket(repairs=(RepairEvent(id="r1", work="lights"),))},
        )
        assert validate_fleet_file(path, load_schema()) == []

    def test_missing_id_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
chassis:
  - unit: CH-101
""")
        errors = validate_fleet_file(path, load_schema())
        assert any("Schema validation" in e for e in errors)

    def test_bad_date_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
chassis:
  - id: c1
    bitDue: 'next week'
""")
        errors = validate_fleet_file(path, load_schema())
        assert len(errors) >= 1
        assert any("chassis.0.bitDue" in e for e in errors)

    def test_invalid_yaml_returns_parse_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("""
chassis:
  - id: [unclosed
""")
        errors = validate_fleet_file(path, load_schema())
        assert any("YAML" in e for e in errors)

    def test_nonexistent_file_returns_errors(self, tmp_path):
        errors = validate_fleet_file(tmp_path / "does_not_exist.yaml", load_schema())
        assert any("Error" in e for e in errors)


    def test_dangling_citation_link_reported(self, tmp_path):
        path = tmp_path / "fleet.yaml"
        path.write_text("""
chassis:
  - id: c1
    unit: CH-1
ledger:
  c1:
    citations:
      - id: k1
    repairs:
      - id: r1
        citationId: k1
      - id: r2
        citationId: gone
""")
        errors = validate_fleet_file(path, load_schema())
        assert errors == ["Repair 'r2' of chassis 'c1' links to unknown citation 'gone'"]


class TestCheckConsistency:
    """Tests for check_consistency."""

    def test_duplicate_chassis_ids(self):
        data = {"chassis": [{"id": "c1"}, {"id": "c1"}, {"id": "c2"}]}
        assert check_consistency(data) == ["Duplicate chassis id 'c1' (2 records)"]

    def test_empty_ledger_and_unlinked_repairs(self):
        data = {
            "chassis": [{"id": "c1"}],
            "ledger": {"c1": {"repairs": [{"id": "r1", "citationId": ""}]}, "old": {}},
        }
        assert check_consistency(data) == []


class TestMain:
    """Tests for the validate_yaml entry point."""

    def test_exit_codes(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text("chassis: []\n")
        bad = tmp_path / "bad.yaml"
        bad.write_text("vehicles: []\n")
        assert main([str(good)]) == 0
        assert main([str(good), str(bad)]) == 1
        out = capsys.readouterr().out
        assert "OK:" in out
        assert "FAIL:" in out
