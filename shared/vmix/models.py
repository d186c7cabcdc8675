"""
vMix mirroring configuration model.

Persisted shape (settings blob)::

    {
      "host": "localhost", "port": 8088, "connectionState": "disconnected",
      "inputOrder": ["input-1f0c..."],
      "inputs": {
        "input-1f0c...": {
          "displayName": "Scoreboard", "vmixTitle": "SCORE", "vmixKey": "0d3a...",
          "vmixNumber": "3", "enabled": true, "overlay": 1,
          "fields": {"TeamA": {"type": "text", "dataMapKey": "teamA.name"}}
        }
      }
    }

Parsing is tolerant: malformed pieces are repaired or dropped with a warning
instead of raising, so a damaged settings file never stops the runtime.
Legacy field kinds (``color``/``visibility``) must be migrated first
(``shared.vmix.migration``); the typed model only knows ``FieldKind``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from shared.logging.logger import get_logger
from shared.vmix.fields import FieldKind, UnknownFieldKind, strip_suffix

log = get_logger("vmix.models")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8088
OVERLAY_CHANNELS = range(1, 9)

_INPUT_KEYS = (
    "displayName",
    "vmixTitle",
    "vmixKey",
    "vmixNumber",
    "enabled",
    "overlay",
    "fields",
)
_FIELD_KEYS = ("type", "fieldIdentifier", "dataMapKey", "customValue", "visible")


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"

    @classmethod
    def from_value(cls, value: Any) -> "ConnectionState":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if normalized in {member.name.lower(), member.value}:
                    return member
        if isinstance(value, bool):
            return cls.CONNECTED if value else cls.DISCONNECTED
        return cls.DISCONNECTED


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


# ----------------------------------------------------------------------
# Remote descriptors (discovery results, never persisted directly)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteInputDescriptor:
    key: str
    title: str = ""
    number: str = ""
    short_title: str = ""

    @staticmethod
    def from_dict(data: Any) -> Optional["RemoteInputDescriptor"]:
        if not isinstance(data, dict):
            return None
        key = data.get("key")
        if key is None or not str(key).strip():
            return None
        return RemoteInputDescriptor(
            key=str(key).strip(),
            title=str(data.get("title") or ""),
            number=str(data.get("number") or ""),
            short_title=str(data.get("shortTitle") or ""),
        )


@dataclass(frozen=True)
class RemoteFieldDescriptor:
    name: str
    kind: FieldKind

    @property
    def identifier(self) -> str:
        return strip_suffix(self.name)


# ----------------------------------------------------------------------
# Field mappings
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class FieldMapping:
    """
    Where a remote field gets its value from.

    Exactly one of ``data_map_key``/``custom_value`` is set; an unmapped
    field has no FieldMapping at all.
    """

    kind: FieldKind
    data_map_key: Optional[str] = None
    custom_value: Optional[str] = None
    visible: Optional[bool] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        if self.data_map_key is not None and self.custom_value is not None:
            raise ValueError("FieldMapping takes either data_map_key or custom_value, not both")
        if self.kind is not FieldKind.TEXT and (
            self.custom_value is not None or self.visible is not None
        ):
            raise ValueError(f"custom_value/visible are only valid for text fields, not {self.kind.value}")

    @property
    def is_mapped(self) -> bool:
        return self.data_map_key is not None or self.custom_value is not None

    @staticmethod
    def from_dict(data: Any, *, where: str = "") -> Optional["FieldMapping"]:
        if not isinstance(data, dict):
            log.warning(f"{where}: field entry is not an object; dropping")
            return None

        try:
            kind = FieldKind.parse(data.get("type"))
        except UnknownFieldKind as e:
            log.warning(f"{where}: {e} (unmigrated config?); dropping field")
            return None

        data_map_key = _optional_str(data.get("dataMapKey"))
        custom_value = data.get("customValue")
        custom_value = None if custom_value is None else str(custom_value)
        visible = data.get("visible")

        if kind is not FieldKind.TEXT:
            if custom_value is not None:
                log.warning(f"{where}: customValue ignored for {kind.value} field")
                custom_value = None
            visible = None
        elif visible is not None:
            visible = bool(visible)

        if data_map_key is not None and custom_value is not None:
            log.warning(f"{where}: both dataMapKey and customValue set; keeping customValue")
            data_map_key = None

        if data_map_key is None and custom_value is None:
            log.warning(f"{where}: field has no data source; dropping unmapped entry")
            return None

        extra = {k: v for k, v in data.items() if k not in _FIELD_KEYS}
        return FieldMapping(
            kind=kind,
            data_map_key=data_map_key,
            custom_value=custom_value,
            visible=visible,
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = dict(self.extra)
        doc["type"] = self.kind.value
        if self.data_map_key is not None:
            doc["dataMapKey"] = self.data_map_key
        if self.custom_value is not None:
            doc["customValue"] = self.custom_value
        if self.visible is not None:
            doc["visible"] = self.visible
        return doc


# ----------------------------------------------------------------------
# Inputs
# ----------------------------------------------------------------------

def _coerce_overlay(value: Any, where: str) -> int:
    if value is None:
        return 1
    try:
        channel = int(value)
    except (TypeError, ValueError):
        channel = 0
    if channel not in OVERLAY_CHANNELS:
        log.warning(f"{where}: overlay channel {value!r} outside 1..8; using 1")
        return 1
    return channel


@dataclass(frozen=True)
class InputConfig:
    input_id: str
    display_name: str = ""
    remote_title: Optional[str] = None
    remote_key: Optional[str] = None
    remote_number: Optional[str] = None
    enabled: bool = True
    overlay: int = 1
    fields: Dict[str, FieldMapping] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def remote_identifier(self) -> Optional[str]:
        """Value used as the ``Input`` parameter: title, else number."""
        return self.remote_title or self.remote_number

    @staticmethod
    def from_dict(input_id: str, data: Dict[str, Any]) -> "InputConfig":
        where = f"input {input_id}"
        fields: Dict[str, FieldMapping] = {}
        raw_fields = data.get("fields")
        if isinstance(raw_fields, dict):
            for name, raw in raw_fields.items():
                mapping = FieldMapping.from_dict(raw, where=f"{where} field {name}")
                if mapping is not None:
                    identifier = strip_suffix(raw.get("fieldIdentifier") or name)
                    if identifier in fields:
                        log.warning(f"{where}: duplicate field {identifier}; keeping {name} as-is")
                        identifier = str(name)
                    fields[identifier] = mapping
        elif raw_fields is not None:
            log.warning(f"{where}: 'fields' is not an object; treating as empty")

        return InputConfig(
            input_id=input_id,
            display_name=str(data.get("displayName") or ""),
            remote_title=_optional_str(data.get("vmixTitle")),
            remote_key=_optional_str(data.get("vmixKey")),
            remote_number=_optional_str(data.get("vmixNumber")),
            enabled=data.get("enabled") is not False,
            overlay=_coerce_overlay(data.get("overlay"), where),
            fields=fields,
            extra={k: v for k, v in data.items() if k not in _INPUT_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = dict(self.extra)
        doc["displayName"] = self.display_name
        if self.remote_title is not None:
            doc["vmixTitle"] = self.remote_title
        if self.remote_key is not None:
            doc["vmixKey"] = self.remote_key
        if self.remote_number is not None:
            doc["vmixNumber"] = self.remote_number
        doc["enabled"] = self.enabled
        doc["overlay"] = self.overlay
        doc["fields"] = {name: mapping.to_dict() for name, mapping in self.fields.items()}
        return doc


# ----------------------------------------------------------------------
# Whole configuration
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class VMixConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    input_order: Tuple[str, ...] = ()
    inputs: Dict[str, InputConfig] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def from_dict(data: Any) -> "VMixConfig":
        if not isinstance(data, dict):
            log.warning("vMix config root is not an object; using defaults")
            return VMixConfig()

        inputs: Dict[str, InputConfig] = {}
        raw_inputs = data.get("inputs")
        if isinstance(raw_inputs, dict):
            for input_id, raw in raw_inputs.items():
                if not isinstance(raw, dict):
                    log.warning(f"Skipping input {input_id}: entry is not an object")
                    continue
                inputs[str(input_id)] = InputConfig.from_dict(str(input_id), raw)
        elif raw_inputs is not None:
            log.warning("vMix config 'inputs' is not an object; treating as empty")

        order = _repair_order(data.get("inputOrder"), inputs)

        try:
            port = int(data.get("port", DEFAULT_PORT))
        except (TypeError, ValueError):
            log.warning(f"Invalid vMix port {data.get('port')!r}; using {DEFAULT_PORT}")
            port = DEFAULT_PORT

        known = {"host", "port", "connectionState", "inputOrder", "inputs"}
        return VMixConfig(
            host=str(data.get("host") or DEFAULT_HOST),
            port=port,
            connection_state=ConnectionState.from_value(data.get("connectionState")),
            input_order=order,
            inputs=inputs,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = dict(self.extra)
        doc.update(
            {
                "host": self.host,
                "port": self.port,
                "connectionState": self.connection_state.value,
                "inputOrder": list(self.input_order),
                "inputs": {i: self.inputs[i].to_dict() for i in self.input_order},
            }
        )
        return doc

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def ordered_inputs(self) -> List[InputConfig]:
        return [self.inputs[i] for i in self.input_order if i in self.inputs]

    def get(self, input_id: str) -> Optional[InputConfig]:
        return self.inputs.get(input_id)

    # ------------------------------------------------------------------
    # Edits (each returns a new config)
    # ------------------------------------------------------------------

    def with_connection(
        self,
        *,
        host: Optional[str] = None,
        port: Optional[int] = None,
        state: Optional[ConnectionState] = None,
    ) -> "VMixConfig":
        return replace(
            self,
            host=self.host if host is None else host,
            port=self.port if port is None else int(port),
            connection_state=self.connection_state if state is None else state,
        )

    def add_input(
        self,
        remote: RemoteInputDescriptor,
        *,
        display_name: Optional[str] = None,
        overlay: int = 1,
        enabled: bool = True,
    ) -> Tuple["VMixConfig", str]:
        input_id = new_input_id(self.inputs)
        created = InputConfig(
            input_id=input_id,
            display_name=display_name or remote.title,
            remote_title=remote.title or None,
            remote_key=remote.key,
            remote_number=remote.number or None,
            enabled=enabled,
            overlay=_coerce_overlay(overlay, f"input {input_id}"),
        )
        inputs = dict(self.inputs)
        inputs[input_id] = created
        return replace(self, inputs=inputs, input_order=self.input_order + (input_id,)), input_id

    def remove_input(self, input_id: str) -> "VMixConfig":
        inputs = {k: v for k, v in self.inputs.items() if k != input_id}
        order = tuple(i for i in self.input_order if i != input_id)
        return replace(self, inputs=inputs, input_order=order)

    def update_input(self, input_id: str, **changes: Any) -> "VMixConfig":
        current = self.inputs.get(input_id)
        if current is None:
            raise KeyError(input_id)
        if "overlay" in changes:
            changes["overlay"] = _coerce_overlay(changes["overlay"], f"input {input_id}")
        inputs = dict(self.inputs)
        inputs[input_id] = replace(current, **changes)
        return replace(self, inputs=inputs)

    def set_field_mapping(
        self,
        input_id: str,
        identifier: str,
        mapping: Optional[FieldMapping],
    ) -> "VMixConfig":
        """Attach, replace, or (with ``None``) remove a field mapping."""
        current = self.inputs.get(input_id)
        if current is None:
            raise KeyError(input_id)

        bare = strip_suffix(identifier)
        fields = dict(current.fields)
        if mapping is None or not mapping.is_mapped:
            fields.pop(bare, None)
        else:
            fields[bare] = mapping
        return self.update_input(input_id, fields=fields)


def new_input_id(existing: Dict[str, Any]) -> str:
    while True:
        candidate = f"input-{uuid.uuid4().hex}"
        if candidate not in existing:
            return candidate


def _repair_order(raw_order: Any, inputs: Dict[str, InputConfig]) -> Tuple[str, ...]:
    order: List[str] = []
    seen = set()

    if isinstance(raw_order, list):
        for entry in raw_order:
            input_id = str(entry)
            if input_id in seen:
                log.warning(f"Duplicate id {input_id} in inputOrder; keeping first")
                continue
            if input_id not in inputs:
                log.warning(f"inputOrder references unknown input {input_id}; dropping")
                continue
            seen.add(input_id)
            order.append(input_id)
    elif raw_order is not None:
        log.warning("vMix config 'inputOrder' is not a list; rebuilding from inputs")

    for input_id in inputs:
        if input_id not in seen:
            log.warning(f"Input {input_id} missing from inputOrder; appending")
            seen.add(input_id)
            order.append(input_id)

    return tuple(order)
