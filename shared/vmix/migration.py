"""
Settings migration for vMix field mappings.

The oldest settings bound an input by a bare title string (or ``name``).
Older settings stored fill colours as ``type: "color"`` and serve indicators
as ``type: "visibility"``, and kept wire suffixes (``TeamA.Text``) in the
stored identifier. The current schema has three kinds (text/image/fill),
visibility as a boolean attribute of a text field, and bare identifiers.

Every function here is pure (inputs are never mutated) and idempotent.
"""

from __future__ import annotations

from typing import Any, Dict

from shared.logging.logger import get_logger
from shared.vmix.fields import strip_suffix

log = get_logger("vmix.migration")

_LEGACY_KIND_UPGRADES: Dict[str, Dict[str, Any]] = {
    "color": {"type": "fill"},
    "visibility": {"type": "text", "visible": True},
}

# Pre-mapping settings bound an input by one of these
_LEGACY_TITLE_KEYS = ("inputIdentifier", "name")


def migrate_field(field: Any) -> Any:
    if not isinstance(field, dict):
        return field

    migrated = dict(field)
    kind = migrated.get("type")
    upgrade = _LEGACY_KIND_UPGRADES.get(kind) if isinstance(kind, str) else None
    if upgrade:
        migrated.update(upgrade)

    identifier = migrated.get("fieldIdentifier")
    if identifier:
        migrated["fieldIdentifier"] = strip_suffix(identifier)

    return migrated


def migrate_input(input_config: Any) -> Any:
    if isinstance(input_config, str):
        input_config = {"vmixTitle": input_config}
    if not isinstance(input_config, dict):
        return input_config

    migrated = dict(input_config)
    if not migrated.get("vmixTitle"):
        for legacy in _LEGACY_TITLE_KEYS:
            if isinstance(migrated.get(legacy), str) and migrated[legacy].strip():
                migrated["vmixTitle"] = migrated[legacy]
                break
    for legacy in _LEGACY_TITLE_KEYS:
        migrated.pop(legacy, None)

    fields = input_config.get("fields")
    if isinstance(fields, dict):
        upgraded: Dict[str, Any] = {}
        for name, field in fields.items():
            key = name
            # Entries without fieldIdentifier are keyed by their identifier
            if isinstance(field, dict) and not field.get("fieldIdentifier"):
                bare = strip_suffix(name)
                if bare and bare not in upgraded and (bare == name or bare not in fields):
                    key = bare
            upgraded[key] = migrate_field(field)
        migrated["fields"] = upgraded
    return migrated


def migrate_config(config: Any) -> Any:
    """Upgrade a persisted vMix settings blob to the current field schema."""
    if not isinstance(config, dict):
        return config

    migrated = dict(config)
    inputs = config.get("inputs")
    if isinstance(inputs, dict):
        migrated["inputs"] = {key: migrate_input(i) for key, i in inputs.items()}

    if migrated != config:
        log.info("Migrated vMix settings to current field schema")
    return migrated
