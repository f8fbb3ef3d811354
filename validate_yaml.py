#!/usr/bin/env python3
"""Validate fleet YAML files against the schema and the ledger link rules."""
import sys
from collections import Counter
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from chassis.config import Settings


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def check_consistency(data: dict) -> list[str]:
    """
    Checks the schema cannot express.

    Chassis ids must be unique, and every repair citationId must name a
    citation in the same ledger bucket.
    """
    errors = []
    ids = Counter(item["id"] for item in data.get("chassis") or [])
    for chassis_id, count in ids.items():
        if count > 1:
            errors.append(f"Duplicate chassis id '{chassis_id}' ({count} records)")

    for chassis_id, bucket in (data.get("ledger") or {}).items():
        citation_ids = {c["id"] for c in bucket.get("citations") or []}
        for repair in bucket.get("repairs") or []:
            link = repair.get("citationId")
            if link and link not in citation_ids:
                errors.append(
                    f"Repair '{repair['id']}' of chassis '{chassis_id}' "
                    f"links to unknown citation '{link}'"
                )
    return errors


def validate_fleet_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data, schema=schema)
        errors.extend(check_consistency(data))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv=None):
    """Validate the given fleet files (default: the configured data file)."""
    schema = load_schema()
    args = sys.argv[1:] if argv is None else argv
    paths = [Path(a) for a in args] or [Settings.from_env().data_file]

    failed = []
    for filepath in paths:
        errors = validate_fleet_file(filepath, schema)
        if errors:
            failed.append(filepath)
            print(f"FAIL: {filepath}")
            for error in errors:
                print(f"  {error}")
        else:
            print(f"OK: {filepath}")

    if len(paths) > 1:
        print(f"\n{len(paths) - len(failed)}/{len(paths)} files valid")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
