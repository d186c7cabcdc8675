"""
Data-map catalog.

Declarative registry of every match data point that can be mapped onto a vMix
field. The catalog is read-only; the settings UI lists it (optionally filtered
by the field kind being edited) and the sync layer resolves stored keys back
to values through ``shared.vmix.match_values``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from shared.vmix.fields import FieldKind

ENTRY_TYPES = ("text", "color", "image", "visibility")


@dataclass(frozen=True)
class DataMapEntry:
    """A single mappable data point addressed by a dotted match-state path."""

    key: str
    label: str
    type: str = "text"


@dataclass(frozen=True)
class DataMapGroup:
    group_id: str
    label: str
    entries: Tuple[DataMapEntry, ...] = field(default_factory=tuple)


def _text(key: str, label: str) -> DataMapEntry:
    return DataMapEntry(key=key, label=label, type="text")


def _roster_entries(prefix: str, team: str, players: int) -> List[DataMapEntry]:
    entries: List[DataMapEntry] = []
    for n in range(1, players + 1):
        entries.extend(
            [
                _text(f"{prefix}{team}.player{n}Number", f"Roster {team}: number {n}"),
                _text(f"{prefix}{team}.player{n}Name", f"Roster {team}: name {n}"),
                _text(f"{prefix}{team}.player{n}Position", f"Roster {team}: position {n}"),
                _text(
                    f"{prefix}{team}.player{n}PositionShort",
                    f"Roster {team}: position {n} (short)",
                ),
            ]
        )
    return entries


def _starting_entries(team: str) -> List[DataMapEntry]:
    entries: List[DataMapEntry] = []
    for n in range(1, 7):
        entries.extend(
            [
                _text(f"starting{team}.player{n}Number", f"Starting {team}: number {n}"),
                _text(f"starting{team}.player{n}Name", f"Starting {team}: name {n}"),
                _text(f"starting{team}.player{n}Position", f"Starting {team}: position {n}"),
                _text(
                    f"starting{team}.player{n}PositionShort",
                    f"Starting {team}: position {n} (short)",
                ),
            ]
        )
    for n in (1, 2):
        entries.extend(
            [
                _text(f"starting{team}.libero{n}Number", f"Starting {team}: libero {n} number"),
                _text(f"starting{team}.libero{n}Name", f"Starting {team}: libero {n} name"),
                _text(f"starting{team}.libero{n}Position", f"Starting {team}: libero {n} position"),
                _text(
                    f"starting{team}.libero{n}PositionShort",
                    f"Starting {team}: libero {n} position (short)",
                ),
                DataMapEntry(
                    f"starting{team}.libero{n}Background",
                    f"Starting {team}: libero {n} background",
                    "color",
                ),
            ]
        )
    return entries


def _team_entries(team: str) -> List[DataMapEntry]:
    return [
        _text(f"team{team}.name", f"Team {team} name"),
        _text(f"team{team}.city", f"Team {team} city"),
        DataMapEntry(f"team{team}.color", f"Team {team} colour", "color"),
        DataMapEntry(f"team{team}.liberoColor", f"Team {team} libero colour", "color"),
        DataMapEntry(f"team{team}.logo", f"Team {team} logo", "image"),
        DataMapEntry(f"team{team}.logoPath", f"Team {team} logo path", "image"),
        _text(f"team{team}.coach", f"Team {team} coach"),
    ]


def _set_entries() -> List[DataMapEntry]:
    entries: List[DataMapEntry] = []
    for n in range(1, 6):
        entries.extend(
            [
                _text(f"set{n}.scoreA", f"Set {n}: score A"),
                _text(f"set{n}.scoreB", f"Set {n}: score B"),
                _text(f"set{n}.duration", f"Set {n}: duration"),
            ]
        )
    return entries


DATA_MAP_GROUPS: Tuple[DataMapGroup, ...] = (
    DataMapGroup(
        "tournament",
        "Tournament",
        (
            _text("tournament", "Tournament name"),
            _text("tournamentSubtitle", "Tournament subtitle"),
        ),
    ),
    DataMapGroup(
        "venue",
        "Venue and time",
        (
            _text("location", "City / country"),
            _text("venue", "Venue"),
            _text("date", "Date"),
            _text("time", "Time"),
            _text("matchDate", "Date and time (formatted)"),
        ),
    ),
    DataMapGroup("teams", "Teams", tuple(_team_entries("A") + _team_entries("B"))),
    DataMapGroup(
        "score",
        "Score",
        (
            _text("currentSet.scoreA", "Team A points in set"),
            _text("currentSet.scoreB", "Team B points in set"),
            _text("scoreASets", "Sets won (team A)"),
            _text("scoreBSets", "Sets won (team B)"),
            _text("servingTeam", "Serving team (A/B)"),
            DataMapEntry("visibility.pointA", "Team A serve indicator", "visibility"),
            DataMapEntry("visibility.pointB", "Team B serve indicator", "visibility"),
        ),
    ),
    DataMapGroup(
        "officials",
        "Referees and officials",
        (
            _text("officials.referee1", "First referee"),
            _text("officials.referee2", "Second referee"),
            _text("officials.lineJudge1", "Line judge 1"),
            _text("officials.lineJudge2", "Line judge 2"),
            _text("officials.scorer", "Scorer"),
        ),
    ),
    DataMapGroup(
        "roster",
        "Rosters (numbers, names, positions)",
        tuple(_roster_entries("roster", "A", 14) + _roster_entries("roster", "B", 14)),
    ),
    DataMapGroup(
        "startingLineup",
        "Starting lineup and liberos",
        tuple(_starting_entries("A") + _starting_entries("B")),
    ),
    DataMapGroup("sets", "Sets (score and duration)", tuple(_set_entries())),
    DataMapGroup(
        "statistics",
        "Extended statistics",
        tuple(
            _text(f"statistics.team{team}.{stat}", f"Statistics {team}: {label}")
            for team in ("A", "B")
            for stat, label in (
                ("attack", "attack"),
                ("block", "block"),
                ("serve", "serve"),
                ("opponentErrors", "opponent errors"),
            )
        ),
    ),
)

# Entry types each field kind may be mapped from. Visibility is a boolean
# attribute of a text field, so text also admits visibility entries.
_COMPATIBLE_TYPES: Dict[str, Tuple[str, ...]] = {
    "text": ("text", "visibility"),
    "color": ("color",),
    "fill": ("color",),
    "image": ("image",),
}


def _filter_key(kind: Union[FieldKind, str, None]) -> Optional[str]:
    if kind is None:
        return None
    value = kind.value if isinstance(kind, FieldKind) else str(kind).strip().lower()
    return value or None


def lookup(kind: Union[FieldKind, str, None] = None) -> List[DataMapGroup]:
    """
    Return the catalog groups in display order.

    With a kind filter only compatible entries are kept and groups left
    empty are omitted. ``fill`` is accepted as an alias of ``color``.
    """
    key = _filter_key(kind)
    if key is None:
        return list(DATA_MAP_GROUPS)

    allowed = _COMPATIBLE_TYPES.get(key)
    if allowed is None:
        return []

    groups: List[DataMapGroup] = []
    for group in DATA_MAP_GROUPS:
        entries = tuple(e for e in group.entries if e.type in allowed)
        if entries:
            groups.append(DataMapGroup(group.group_id, group.label, entries))
    return groups


def find_entry(key: str) -> Optional[DataMapEntry]:
    for group in DATA_MAP_GROUPS:
        for entry in group.entries:
            if entry.key == key:
                return entry
    return None


def label_for(key: Optional[str], kind: Union[FieldKind, str, None] = None) -> str:
    """Human label for a stored data-map key; falls back to the raw key."""
    if not key:
        return ""
    for group in lookup(kind):
        for entry in group.entries:
            if entry.key == key:
                return entry.label
    return str(key)
