"""
Overlay exclusivity for show/hide actions that share one vMix input.

Several buttons (coach cards, referee cards) may drive the same graphic
input, rewriting its text before taking it on air. Per input the state is
Idle -> Active(action) -> Idle; while one action holds the input every other
action on that input is blocked. An input seen on air without an owner
(taken to air directly in vMix) is tracked as external: it blocks nobody and
the next activation claims it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from shared.logging.logger import get_logger
from shared.vmix.match_values import value_for_key

log = get_logger("vmix.overlays")

EXTERNAL = "__external__"


class OverlayRefused(RuntimeError):
    """Activation did not happen; ``reason`` is safe to show to an operator."""

    def __init__(self, action_id: str, reason: str):
        super().__init__(f"{action_id}: {reason}")
        self.action_id = action_id
        self.reason = reason


class OverlayBlocked(OverlayRefused):
    def __init__(self, action_id: str, reason: str, holder: str):
        super().__init__(action_id, reason)
        self.holder = holder


class OverlayPreconditionFailed(OverlayRefused):
    def __init__(self, action_id: str, reason: str, data_map_key: str):
        super().__init__(action_id, reason)
        self.data_map_key = data_map_key


@dataclass(frozen=True)
class OverlayRequirement:
    data_map_key: str
    reason: str


@dataclass(frozen=True)
class OverlayAction:
    """
    One operator-facing show/hide button.

    ``input_key`` is whatever the button was bound with (internal id or vMix
    title). ``field_values`` maps bare field identifiers on that input to
    data-map keys written just before the input goes on air.
    """

    action_id: str
    input_key: str
    label: str = ""
    requires: Tuple[OverlayRequirement, ...] = ()
    field_values: Dict[str, str] = field(default_factory=dict)


class OverlayExclusivityController:
    def __init__(
        self,
        actions: Iterable[OverlayAction] = (),
        *,
        resolve: Optional[Callable[[str], Optional[str]]] = None,
    ):
        self._actions: Dict[str, OverlayAction] = {}
        for action in actions:
            self.register(action)
        self._resolve = resolve
        # input identity -> owning action id (or EXTERNAL)
        self._holders: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, action: OverlayAction) -> None:
        if action.action_id in self._actions:
            raise ValueError(f"Duplicate overlay action: {action.action_id}")
        self._actions[action.action_id] = action

    @property
    def actions(self) -> List[OverlayAction]:
        return list(self._actions.values())

    def get(self, action_id: str) -> OverlayAction:
        try:
            return self._actions[action_id]
        except KeyError:
            raise KeyError(f"Unknown overlay action: {action_id}") from None

    def set_resolver(self, resolve: Optional[Callable[[str], Optional[str]]]) -> None:
        self._resolve = resolve

    def resource_of(self, action_id: str) -> str:
        """Input identity an action competes for."""
        action = self.get(action_id)
        if self._resolve is not None:
            resolved = self._resolve(action.input_key)
            if resolved:
                return resolved
        return action.input_key

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def holder(self, resource: str) -> Optional[str]:
        return self._holders.get(resource)

    def _blocked(self, action_id: str, holder: str) -> OverlayBlocked:
        held_by = self._actions.get(holder)
        name = (held_by.label or held_by.action_id) if held_by else holder
        return OverlayBlocked(action_id, f"{name} is already on air on this input", holder)

    def is_active(self, action_id: str) -> bool:
        return self._holders.get(self.resource_of(action_id)) == action_id

    def is_blocked(self, action_id: str) -> bool:
        holder = self._holders.get(self.resource_of(action_id))
        return holder is not None and holder != EXTERNAL and holder != action_id

    def check_activation(self, action_id: str, match: Optional[Mapping[str, Any]]) -> OverlayAction:
        """
        Raise ``OverlayRefused`` if the action may not go on air now.

        Blocking is checked before data preconditions; nothing is changed.
        """
        action = self.get(action_id)
        resource = self.resource_of(action_id)
        holder = self._holders.get(resource)
        if holder is not None and holder != EXTERNAL and holder != action_id:
            raise self._blocked(action_id, holder)

        for requirement in action.requires:
            value = value_for_key(match, requirement.data_map_key)
            if value is None or not str(value).strip():
                raise OverlayPreconditionFailed(action_id, requirement.reason, requirement.data_map_key)

        return action

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def activate(self, action_id: str) -> None:
        resource = self.resource_of(action_id)
        holder = self._holders.get(resource)
        if holder is not None and holder != EXTERNAL and holder != action_id:
            raise self._blocked(action_id, holder)
        self._holders[resource] = action_id
        log.debug(f"Overlay {action_id} active on {resource}")

    def deactivate(self, action_id: str) -> bool:
        """Release the input if this action (or nobody in particular) holds it."""
        resource = self.resource_of(action_id)
        holder = self._holders.get(resource)
        if holder == action_id or holder == EXTERNAL:
            del self._holders[resource]
            log.debug(f"Overlay {action_id} idle on {resource}")
            return True
        return False

    def release(self, action_id: str, restore: Optional[str] = None) -> None:
        """Undo a claim made by ``activate``, handing the input back to ``restore``."""
        resource = self.resource_of(action_id)
        if self._holders.get(resource) != action_id:
            return
        if restore is None:
            del self._holders[resource]
        else:
            self._holders[resource] = restore
        log.debug(f"Overlay {action_id} claim on {resource} released")

    def observe(self, resource: str, on_air: bool) -> None:
        """Fold in what vMix reports for one input's overlay channel."""
        if on_air:
            if resource not in self._holders:
                self._holders[resource] = EXTERNAL
                log.debug(f"Input {resource} on air outside the app")
        elif resource in self._holders:
            del self._holders[resource]

    def reset(self) -> None:
        self._holders.clear()


def default_overlay_actions(
    shared_input: str = "referee1",
    pair_input: str = "referee2",
) -> List[OverlayAction]:
    """Coach and referee cards: four buttons on one input, the pair on another."""
    return [
        OverlayAction(
            action_id="coachTeamA",
            input_key=shared_input,
            label="Coach team A",
            requires=(OverlayRequirement("teamA.coach", "Team A coach name is not set"),),
            field_values={"Name": "teamA.coach"},
        ),
        OverlayAction(
            action_id="coachTeamB",
            input_key=shared_input,
            label="Coach team B",
            requires=(OverlayRequirement("teamB.coach", "Team B coach name is not set"),),
            field_values={"Name": "teamB.coach"},
        ),
        OverlayAction(
            action_id="referee1Show",
            input_key=shared_input,
            label="1st referee",
            requires=(OverlayRequirement("officials.referee1", "1st referee name is not set"),),
            field_values={"Name": "officials.referee1"},
        ),
        OverlayAction(
            action_id="referee2Show",
            input_key=shared_input,
            label="2nd referee",
            requires=(OverlayRequirement("officials.referee2", "2nd referee name is not set"),),
            field_values={"Name": "officials.referee2"},
        ),
        OverlayAction(
            action_id="refereesPair",
            input_key=pair_input,
            label="Referees",
            requires=(
                OverlayRequirement("officials.referee1", "1st referee name is not set"),
                OverlayRequirement("officials.referee2", "2nd referee name is not set"),
            ),
        ),
    ]
