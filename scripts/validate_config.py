"""
======================================================================
 Scoreboard vMix Bridge — Version v0.1.0 (Build 2026.10)
======================================================================

vMix settings validation script.

Checks the ``vmix`` section of the settings file against
``schemas/vmix_config.schema.json``, then reports what loading it would
change (legacy field kinds migrated, orphaned ids and bad entries repaired).

Design rules:
- No side effects on import
- No runtime startup
- Validation only (the settings file is never written)
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft7Validator

from shared.vmix.data_map import find_entry
from shared.vmix.migration import migrate_config
from shared.vmix.models import VMixConfig


# ------------------------------------------------------------
# Paths
# ------------------------------------------------------------

ROOT = Path(__file__).resolve().parents[1]
SCHEMA_PATH = ROOT / "schemas" / "vmix_config.schema.json"


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _load_json(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ValueError(f"{path.name}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: root JSON value must be an object")
    return data


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


def _warn(msg: str):
    print(f"[CONFIG WARNING] {msg}")


def schema_errors(blob: Any, schema: Dict[str, Any]) -> List[str]:
    validator = Draft7Validator(schema)
    messages = []
    for err in sorted(validator.iter_errors(blob), key=lambda e: list(e.absolute_path)):
        where = "/".join(str(p) for p in err.absolute_path) or "<root>"
        messages.append(f"{where}: {err.message}")
    return messages


def unknown_data_map_keys(blob: Dict[str, Any]) -> List[str]:
    found = []
    inputs = blob.get("inputs") if isinstance(blob.get("inputs"), dict) else {}
    for input_id, entry in inputs.items():
        fields = entry.get("fields") if isinstance(entry, dict) else None
        if not isinstance(fields, dict):
            continue
        for name, field in fields.items():
            key = field.get("dataMapKey") if isinstance(field, dict) else None
            if key and find_entry(key) is None:
                found.append(f"inputs/{input_id}/fields/{name}: unknown dataMapKey {key!r}")
    return found


def describe_changes(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    changes = []
    for key in sorted(set(before) | set(after)):
        if key == "inputs":
            continue
        if before.get(key) != after.get(key):
            changes.append(f"{key}: {before.get(key)!r} -> {after.get(key)!r}")

    old_inputs = before.get("inputs") if isinstance(before.get("inputs"), dict) else {}
    new_inputs = after.get("inputs") or {}
    for input_id in old_inputs:
        if input_id not in new_inputs:
            changes.append(f"inputs/{input_id}: dropped")
        elif old_inputs[input_id] != new_inputs[input_id]:
            changes.append(f"inputs/{input_id}: rewritten")
    return changes


# ------------------------------------------------------------
# Validator
# ------------------------------------------------------------

def validate_vmix_settings(path: Path, schema_path: Path = SCHEMA_PATH) -> bool:
    settings = _load_json(path)
    schema = _load_json(schema_path)

    blob = settings.get("vmix")
    if blob is None:
        _warn(f"{path.name}: no 'vmix' section; defaults would be used")
        return True
    if not isinstance(blob, dict):
        _error(f"{path.name}: 'vmix' must be an object")
        return False

    for message in schema_errors(blob, schema):
        _warn(f"before migration: {message}")

    migrated = migrate_config(blob)
    remaining = schema_errors(migrated, schema)
    for message in remaining:
        _error(message)

    for message in unknown_data_map_keys(migrated):
        _warn(message)

    repaired = VMixConfig.from_dict(migrated).to_dict()
    for change in describe_changes(blob, repaired):
        print(f"[WOULD CHANGE] {change}")

    return not remaining


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Validate vMix mirroring settings")
    parser.add_argument(
        "settings",
        nargs="?",
        type=Path,
        default=Path(os.getenv("SCOREBOARD_SETTINGS_PATH") or "settings.json"),
        help="Settings JSON (default: SCOREBOARD_SETTINGS_PATH or settings.json)",
    )
    args = parser.parse_args(argv)

    try:
        ok = validate_vmix_settings(args.settings)
    except ValueError as e:
        _error(str(e))
        ok = False

    if not ok:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
