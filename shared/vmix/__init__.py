"""
vMix mirroring core.

Field naming, the data-map catalog, the persisted configuration model and
its migration, input lookup, key-based remapping and overlay exclusivity.
Nothing in this package performs I/O; transport lives in ``services.vmix``.
"""

from shared.vmix.fields import FieldKind, UnknownFieldKind, has_suffix, strip_suffix, to_wire_name
from shared.vmix.input_resolver import InputMatch, find_input, resolve_input_id
from shared.vmix.migration import migrate_config
from shared.vmix.models import (
    ConnectionState,
    FieldMapping,
    InputConfig,
    RemoteFieldDescriptor,
    RemoteInputDescriptor,
    VMixConfig,
)
from shared.vmix.overlays import (
    OverlayAction,
    OverlayBlocked,
    OverlayExclusivityController,
    OverlayPreconditionFailed,
    OverlayRefused,
    default_overlay_actions,
)
from shared.vmix.remap import RemapResult, reconcile_inputs

__all__ = [
    "FieldKind",
    "UnknownFieldKind",
    "has_suffix",
    "strip_suffix",
    "to_wire_name",
    "InputMatch",
    "find_input",
    "resolve_input_id",
    "migrate_config",
    "ConnectionState",
    "FieldMapping",
    "InputConfig",
    "RemoteFieldDescriptor",
    "RemoteInputDescriptor",
    "VMixConfig",
    "OverlayAction",
    "OverlayBlocked",
    "OverlayExclusivityController",
    "OverlayPreconditionFailed",
    "OverlayRefused",
    "default_overlay_actions",
    "RemapResult",
    "reconcile_inputs",
]
