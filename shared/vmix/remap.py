"""
Heal input configurations after titles/numbers are changed inside vMix.

Operators often rename a title in vMix directly. The stored ``vmixKey`` is
stable across renames, so a stale title can be repaired from the live input
list without touching the input's field mappings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional

from shared.logging.logger import get_logger
from shared.vmix.models import RemoteInputDescriptor, VMixConfig

log = get_logger("vmix.remap")


@dataclass(frozen=True)
class RemapResult:
    config: VMixConfig
    updated_ids: List[str] = field(default_factory=list)
    unresolved_ids: List[str] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return len(self.updated_ids)


def _live_titles(live_inputs: Iterable[RemoteInputDescriptor]) -> set:
    return {d.title.strip() for d in live_inputs if d.title and d.title.strip()}


def _live_by_key(live_inputs: Iterable[RemoteInputDescriptor]) -> Dict[str, RemoteInputDescriptor]:
    by_key: Dict[str, RemoteInputDescriptor] = {}
    for descriptor in live_inputs:
        key = (descriptor.key or "").strip()
        if key:
            by_key[key] = descriptor
    return by_key


def reconcile_inputs(
    config: VMixConfig,
    live_inputs: Optional[Iterable[RemoteInputDescriptor]],
) -> RemapResult:
    """
    Return a new config with stale titles/numbers refreshed by vMix key.

    Inputs are visited in ``input_order``. An input is left alone when it has
    no key or when its title still exists among the live titles. Inputs whose
    key is gone are reported as unresolved. ``config`` is never mutated.
    """
    live = [d for d in (live_inputs or []) if isinstance(d, RemoteInputDescriptor)]
    titles = _live_titles(live)
    by_key = _live_by_key(live)

    inputs = dict(config.inputs)
    updated: List[str] = []
    unresolved: List[str] = []

    for input_id in config.input_order:
        current = inputs.get(input_id)
        if current is None:
            continue

        key = (current.remote_key or "").strip()
        if not key:
            continue

        title = (current.remote_title or "").strip()
        if title and title in titles:
            continue

        descriptor = by_key.get(key)
        if descriptor is None:
            unresolved.append(input_id)
            log.info(f"Input {input_id} ({current.remote_title!r}) still unresolved: key {key} not in vMix")
            continue

        inputs[input_id] = replace(
            current,
            remote_title=descriptor.title,
            remote_number=descriptor.number,
        )
        updated.append(input_id)
        log.info(
            f"Remapped input {input_id} by key {key}: "
            f"{current.remote_title!r} -> {descriptor.title!r} (#{descriptor.number})"
        )

    if not updated:
        return RemapResult(config=config, updated_ids=[], unresolved_ids=unresolved)

    return RemapResult(
        config=replace(config, inputs=inputs),
        updated_ids=updated,
        unresolved_ids=unresolved,
    )
