"""
Find an input configuration from whatever key a caller has.

Callers may hold the internal input id, the vMix title, or the vMix number
(e.g. an overlay report or a legacy button binding). Strategies are tried in
order; the first hit wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from shared.vmix.models import InputConfig, VMixConfig

InputsLike = Union[VMixConfig, Mapping[str, Any]]


@dataclass(frozen=True)
class InputMatch:
    input_config: Any
    resolved_id: str
    strategy: str


Strategy = Callable[[Mapping[str, Any], str], Optional[Tuple[str, Any]]]


def _inputs_of(config: InputsLike) -> Mapping[str, Any]:
    if isinstance(config, VMixConfig):
        return config.inputs
    if isinstance(config, Mapping):
        inputs = config.get("inputs")
        if isinstance(inputs, Mapping):
            return inputs
    return {}


def _remote_label(entry: Any) -> Optional[str]:
    if isinstance(entry, InputConfig):
        value = entry.remote_title if entry.remote_title is not None else entry.remote_number
    elif isinstance(entry, Mapping):
        value = entry.get("vmixTitle")
        if value is None:
            value = entry.get("vmixNumber")
    else:
        return None
    return None if value is None else str(value)


def by_internal_id(inputs: Mapping[str, Any], key: str) -> Optional[Tuple[str, Any]]:
    entry = inputs.get(key)
    if entry:
        return key, entry
    return None


def by_remote_title(inputs: Mapping[str, Any], key: str) -> Optional[Tuple[str, Any]]:
    wanted = key.strip()
    for input_id, entry in inputs.items():
        if not isinstance(entry, (InputConfig, Mapping)):
            continue
        label = _remote_label(entry)
        if label is not None and label.strip() == wanted:
            return input_id, entry
    return None


DEFAULT_STRATEGIES: List[Tuple[str, Strategy]] = [
    ("internal_id", by_internal_id),
    ("remote_title", by_remote_title),
]


def find_input(
    config: InputsLike,
    key: Any,
    *,
    strategies: Optional[List[Tuple[str, Strategy]]] = None,
) -> Optional[InputMatch]:
    """Return the matching input and the id it lives under, or ``None``."""
    if key is None:
        return None
    key = str(key)
    inputs = _inputs_of(config)

    for name, strategy in strategies or DEFAULT_STRATEGIES:
        hit = strategy(inputs, key)
        if hit is not None:
            resolved_id, entry = hit
            return InputMatch(input_config=entry, resolved_id=resolved_id, strategy=name)
    return None


def resolve_input_id(config: InputsLike, key: Any) -> Optional[str]:
    found = find_input(config, key)
    return found.resolved_id if found else None
