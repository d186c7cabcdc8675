"""
vMix API command shapes.

Commands are plain query strings against ``/api``: ``Function`` plus
optional ``Input``, ``SelectedName`` (wire field name) and ``Value``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from shared.logging.logger import get_logger
from shared.vmix.fields import FieldKind, to_wire_name
from shared.vmix.image_urls import resolve_image_urls
from shared.vmix.models import InputConfig, OVERLAY_CHANNELS

log = get_logger("vmix.commands")

DEFAULT_COLOR = "#000000"

_HEX6 = re.compile(r"^#?([0-9a-fA-F]{6})$")
_HEX3 = re.compile(r"^#?([0-9a-fA-F]{3})$")


class RemoteFunction(str, Enum):
    SET_TEXT = "SetText"
    SET_IMAGE = "SetImage"
    SET_COLOR = "SetColor"
    SET_TEXT_COLOUR = "SetTextColour"
    SET_TEXT_VISIBLE_ON = "SetTextVisibleOn"
    SET_TEXT_VISIBLE_OFF = "SetTextVisibleOff"


def overlay_function(channel: int, show: bool) -> str:
    if channel not in OVERLAY_CHANNELS:
        raise ValueError(f"Overlay channel must be 1..8, got {channel!r}")
    return f"OverlayInput{channel}{'In' if show else 'Out'}"


@dataclass(frozen=True)
class RemoteCommand:
    function: str
    input: Optional[str] = None
    selected_name: Optional[str] = None
    value: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        params = {"Function": str(getattr(self.function, "value", self.function))}
        if self.input is not None:
            params["Input"] = str(self.input)
        if self.selected_name is not None:
            params["SelectedName"] = self.selected_name
        if self.value is not None:
            params["Value"] = self.value
        return params

    def describe(self) -> str:
        parts = [f"{k}={v}" for k, v in self.to_params().items()]
        return " ".join(parts)


def normalize_color(value: Any) -> str:
    """Return ``#RRGGBB`` (upper case); anything unparseable becomes black."""
    text = str(value).strip() if value is not None else ""
    m = _HEX6.match(text)
    if m:
        return "#" + m.group(1).upper()
    m = _HEX3.match(text)
    if m:
        return "#" + "".join(ch * 2 for ch in m.group(1)).upper()
    if text:
        log.warning(f"Invalid colour {text!r}; sending {DEFAULT_COLOR}")
    return DEFAULT_COLOR


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_field_commands(
    input_config: InputConfig,
    values: Mapping[str, Any],
    image_base_url: Optional[str] = None,
) -> List[RemoteCommand]:
    """
    Turn resolved values (bare identifier -> value) into vMix commands.

    Only identifiers mapped on ``input_config`` are sent. Text fields with
    ``visible`` set send SetTextVisibleOn/Off from the value's truthiness
    instead of SetText.
    """
    target = input_config.remote_identifier
    if not target:
        log.warning(f"Input {input_config.input_id} has no vMix title or number; nothing sent")
        return []

    images = {
        identifier: _text(values[identifier])
        for identifier, mapping in input_config.fields.items()
        if mapping.kind is FieldKind.IMAGE and identifier in values
    }
    images = resolve_image_urls(images, image_base_url)

    commands: List[RemoteCommand] = []
    for identifier, mapping in input_config.fields.items():
        if identifier not in values:
            continue
        value = values[identifier]
        wire = to_wire_name(identifier, mapping.kind)

        if mapping.kind is FieldKind.TEXT:
            if mapping.visible:
                function = RemoteFunction.SET_TEXT_VISIBLE_ON if value else RemoteFunction.SET_TEXT_VISIBLE_OFF
                commands.append(RemoteCommand(function.value, target, wire))
            else:
                commands.append(RemoteCommand(RemoteFunction.SET_TEXT.value, target, wire, _text(value)))
        elif mapping.kind is FieldKind.FILL:
            commands.append(RemoteCommand(RemoteFunction.SET_COLOR.value, target, wire, normalize_color(value)))
        elif mapping.kind is FieldKind.IMAGE:
            commands.append(RemoteCommand(RemoteFunction.SET_IMAGE.value, target, wire, images.get(identifier, "")))

    return commands


def text_colour_command(input_config: InputConfig, identifier: str, colour: Any) -> Optional[RemoteCommand]:
    target = input_config.remote_identifier
    if not target:
        return None
    wire = to_wire_name(identifier, FieldKind.TEXT)
    return RemoteCommand(RemoteFunction.SET_TEXT_COLOUR.value, target, wire, normalize_color(colour))


def overlay_command(input_config: InputConfig, show: bool) -> RemoteCommand:
    function = overlay_function(input_config.overlay, show)
    # OverlayInputNOut takes no input
    return RemoteCommand(function, input_config.remote_identifier if show else None)
