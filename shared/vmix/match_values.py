"""Resolve data-map keys against a match snapshot (plain JSON dict)."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

POSITION_ABBREVIATIONS: Dict[str, str] = {
    "Outside Hitter": "OH",
    "Middle Blocker": "MB",
    "Opposite": "OPP",
    "Setter": "S",
    "Libero": "L",
}

_UNSET_POSITIONS = {"", "Not specified"}

_ROSTER_KEY = re.compile(r"^roster(A|B)\.player(\d+)(Number|Name|Position|PositionShort)$")
_STARTING_KEY = re.compile(
    r"^starting(A|B)\.(player\d+|libero\d+)(Number|Name|Position|PositionShort|Background)?$"
)
_SET_KEY = re.compile(r"^set(\d+)\.(scoreA|scoreB|duration)$")


def position_abbreviation(position: Optional[str]) -> str:
    if not position or position in _UNSET_POSITIONS:
        return ""
    return POSITION_ABBREVIATIONS.get(position, "")


def format_match_date(date_str: Optional[str], time_str: Optional[str] = None) -> str:
    """``2025-03-01`` + ``18:30:00`` -> ``01.03.2025 18:30``."""
    if not date_str:
        return ""
    parts = date_str.split("-")
    if len(parts) != 3:
        return date_str
    formatted = f"{parts[2]}.{parts[1]}.{parts[0]}"
    time_part = (time_str or "")[:5]
    return f"{formatted} {time_part}" if time_part else formatted


def get_by_path(obj: Any, path: str) -> Any:
    current = obj
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _set_completed(entry: Dict[str, Any]) -> bool:
    return entry.get("completed") is True or entry.get("status") == "completed"


def sets_won(match: Dict[str, Any], team: str) -> int:
    won = 0
    for entry in match.get("sets") or []:
        if not isinstance(entry, dict) or not _set_completed(entry):
            continue
        a = entry.get("scoreA") or 0
        b = entry.get("scoreB") or 0
        if (team == "A" and a > b) or (team == "B" and b > a):
            won += 1
    return won


def _team(match: Dict[str, Any], letter: str) -> Dict[str, Any]:
    team = match.get("teamA" if letter == "A" else "teamB")
    return team if isinstance(team, dict) else {}


def _player_attr(player: Any, suffix: str) -> str:
    if not isinstance(player, dict):
        return ""
    if suffix == "PositionShort":
        return position_abbreviation(player.get("position"))
    if suffix == "Position":
        position = player.get("position")
        return "" if position in (None, *_UNSET_POSITIONS) else str(position)
    prop = "number" if suffix == "Number" else "name"
    return _as_text(player.get(prop))


def _starting_lineup(team: Dict[str, Any]) -> List[Any]:
    roster = team.get("roster") or []
    order = team.get("startingLineupOrder")
    if isinstance(order, list) and order:
        return [roster[i] if isinstance(i, int) and 0 <= i < len(roster) else None for i in order]
    return [p for p in roster if isinstance(p, dict) and p.get("isStarter")]


def _starting_value(match: Dict[str, Any], letter: str, part: str, suffix: str) -> str:
    team = _team(match, letter)
    lineup = _starting_lineup(team)

    if part.startswith("libero"):
        if suffix == "Background":
            return _as_text(team.get("liberoColor") or team.get("color"))
        index = 6 + int(part[len("libero"):]) - 1
    else:
        index = int(part[len("player"):]) - 1

    player = lineup[index] if 0 <= index < len(lineup) else None
    return _player_attr(player, suffix or "Name")


def _set_value(match: Dict[str, Any], number: int, attr: str) -> str:
    for entry in match.get("sets") or []:
        if isinstance(entry, dict) and entry.get("setNumber") == number:
            if attr == "duration":
                start, end = entry.get("startTime"), entry.get("endTime")
                if start and end:
                    return f"{round((end - start) / 60000)}'"
                return ""
            return _as_text(entry.get(attr))
    return ""


def value_for_key(match: Optional[Dict[str, Any]], key: Optional[str]) -> Union[str, bool, None]:
    """
    Value for a data-map key, or ``None`` when there is no match/key.

    Visibility keys yield booleans; everything else yields text (missing
    values become an empty string so the remote field is cleared).
    """
    if not isinstance(match, dict) or not key:
        return None
    key = key.strip()
    if not key:
        return None

    serving = get_by_path(match, "currentSet.servingTeam") or ""
    if key == "visibility.pointA":
        return serving == "A"
    if key == "visibility.pointB":
        return serving == "B"
    if key == "servingTeam":
        return _as_text(serving)
    if key == "scoreASets":
        return str(sets_won(match, "A"))
    if key == "scoreBSets":
        return str(sets_won(match, "B"))
    if key == "matchDate":
        return format_match_date(match.get("date"), match.get("time"))
    if key == "date":
        return format_match_date(match.get("date"))

    roster = _ROSTER_KEY.match(key)
    if roster:
        letter, number, suffix = roster.groups()
        players = _team(match, letter).get("roster") or []
        index = int(number) - 1
        player = players[index] if 0 <= index < len(players) else None
        return _player_attr(player, suffix)

    starting = _STARTING_KEY.match(key)
    if starting:
        letter, part, suffix = starting.groups()
        return _starting_value(match, letter, part, suffix or "")

    set_key = _SET_KEY.match(key)
    if set_key:
        return _set_value(match, int(set_key.group(1)), set_key.group(2))

    return _as_text(get_by_path(match, key))
