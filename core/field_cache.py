"""
Process-lifetime cache of fields discovered on vMix inputs.

Keyed by internal input id. Discovery requests for one input may overlap;
each begins a new generation and only the newest generation may populate
the slot, so a slow superseded response cannot overwrite a fresher one.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from shared.logging.logger import get_logger
from shared.vmix.models import RemoteFieldDescriptor

log = get_logger("core.field_cache")


class RemoteFieldCache:
    def __init__(self) -> None:
        self._fields: Dict[str, List[RemoteFieldDescriptor]] = {}
        self._generations: Dict[str, int] = {}

    def begin(self, input_id: str) -> int:
        generation = self._generations.get(input_id, 0) + 1
        self._generations[input_id] = generation
        return generation

    def populate(
        self,
        input_id: str,
        fields: Iterable[RemoteFieldDescriptor],
        generation: int,
    ) -> bool:
        if generation != self._generations.get(input_id):
            log.debug(f"Discarding stale field discovery for {input_id} (generation {generation})")
            return False
        self._fields[input_id] = list(fields)
        return True

    def get(self, input_id: str) -> Optional[List[RemoteFieldDescriptor]]:
        cached = self._fields.get(input_id)
        return list(cached) if cached is not None else None

    def invalidate(self, input_id: str) -> None:
        # Bumping the generation also voids any discovery still in flight
        self._fields.pop(input_id, None)
        if input_id in self._generations:
            self._generations[input_id] += 1

    def invalidate_all(self) -> None:
        self._fields.clear()
        for input_id in self._generations:
            self._generations[input_id] += 1

    def __contains__(self, input_id: str) -> bool:
        return input_id in self._fields

    def __len__(self) -> int:
        return len(self._fields)
