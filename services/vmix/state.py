"""Parse the XML document vMix returns from a bare ``GET /api``."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from shared.logging.logger import get_logger
from shared.vmix.fields import FieldKind
from shared.vmix.models import OVERLAY_CHANNELS, RemoteFieldDescriptor, RemoteInputDescriptor

log = get_logger("vmix.state")

_FIELD_TAGS = {
    "text": FieldKind.TEXT,
    "image": FieldKind.IMAGE,
    "color": FieldKind.FILL,
}


class RemoteStateError(ValueError):
    pass


@dataclass
class RemoteState:
    version: str = ""
    inputs: List[RemoteInputDescriptor] = field(default_factory=list)
    fields: Dict[str, List[RemoteFieldDescriptor]] = field(default_factory=dict)
    # overlay channel -> number of the input on air (None when empty)
    overlays: Dict[int, Optional[str]] = field(default_factory=dict)

    def input_by_key(self, key: Optional[str]) -> Optional[RemoteInputDescriptor]:
        if not key:
            return None
        for descriptor in self.inputs:
            if descriptor.key == key.strip():
                return descriptor
        return None

    def input_by_number(self, number: Optional[str]) -> Optional[RemoteInputDescriptor]:
        if not number:
            return None
        for descriptor in self.inputs:
            if descriptor.number == str(number).strip():
                return descriptor
        return None

    def fields_for(self, key: Optional[str]) -> List[RemoteFieldDescriptor]:
        return list(self.fields.get(key or "", []))

    def on_air(self, channel: int) -> Optional[RemoteInputDescriptor]:
        return self.input_by_number(self.overlays.get(channel))


def parse_state(document: Union[str, bytes]) -> RemoteState:
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise RemoteStateError(f"vMix returned malformed XML: {e}") from e

    state = RemoteState(version=(root.findtext("version") or "").strip())

    for element in root.iterfind("./inputs/input"):
        descriptor = RemoteInputDescriptor.from_dict(
            {
                "key": element.get("key"),
                "title": element.get("title"),
                "number": element.get("number"),
                "shortTitle": element.get("shortTitle"),
            }
        )
        if descriptor is None:
            log.debug(f"Skipping vMix input without key (number={element.get('number')})")
            continue
        state.inputs.append(descriptor)

        discovered: List[RemoteFieldDescriptor] = []
        for child in element:
            kind = _FIELD_TAGS.get(child.tag)
            name = (child.get("name") or "").strip()
            if kind is not None and name:
                discovered.append(RemoteFieldDescriptor(name=name, kind=kind))
        state.fields[descriptor.key] = discovered

    for element in root.iterfind("./overlays/overlay"):
        try:
            channel = int(element.get("number", ""))
        except ValueError:
            continue
        if channel in OVERLAY_CHANNELS:
            number = (element.text or "").strip()
            state.overlays[channel] = number or None

    return state
