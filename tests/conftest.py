"""Shared pytest configuration for the vMix bridge test suite."""

import os
import sys
from pathlib import Path

import pytest

# Log files stay off for the whole run; console logging is enough
os.environ["SCOREBOARD_LOG_TO_FILE"] = "0"

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def match():
    """A mid-match snapshot as written by the scoring app."""
    return {
        "matchId": "m-1",
        "tournament": "City Cup",
        "venue": "Arena",
        "date": "2025-03-01",
        "time": "18:30:00",
        "teamA": {
            "name": "Falcons",
            "color": "#3377ff",
            "liberoColor": "#ffcc00",
            "logo": "logos/falcons logo.png",
            "coach": "Ivanov",
            "roster": [
                {"number": 7, "name": "Petrov", "position": "Setter", "isStarter": True},
                {"number": 9, "name": "Sidorov", "position": "Libero", "isStarter": False},
                {"number": 11, "name": "Orlov", "position": "Opposite", "isStarter": True},
            ],
            "startingLineupOrder": [0, 2, 0, 2, 0, 2, 1],
        },
        "teamB": {
            "name": "Bears",
            "color": "#aa0000",
            "coach": "",
            "roster": [],
        },
        "officials": {"referee1": "Smirnov", "referee2": ""},
        "currentSet": {"setNumber": 3, "scoreA": 12, "scoreB": 10, "servingTeam": "A"},
        "sets": [
            {"setNumber": 1, "scoreA": 25, "scoreB": 20, "completed": True,
             "startTime": 0, "endTime": 1_500_000},
            {"setNumber": 2, "scoreA": 22, "scoreB": 25, "status": "completed"},
            {"setNumber": 3, "scoreA": 12, "scoreB": 10},
        ],
    }


@pytest.fixture
def settings_blob():
    """Persisted vMix settings in the current schema."""
    return {
        "host": "10.0.0.5",
        "port": 8088,
        "connectionState": "disconnected",
        "inputOrder": ["input-score", "input-card"],
        "inputs": {
            "input-score": {
                "displayName": "Scoreboard",
                "vmixTitle": "SCORE",
                "vmixKey": "key-a",
                "vmixNumber": "3",
                "enabled": True,
                "overlay": 1,
                "fields": {
                    "TeamA": {"type": "text", "dataMapKey": "teamA.name"},
                    "ScoreA": {"type": "text", "dataMapKey": "currentSet.scoreA"},
                    "ServeA": {"type": "text", "dataMapKey": "visibility.pointA", "visible": True},
                    "ColorA": {"type": "fill", "dataMapKey": "teamA.color"},
                    "LogoA": {"type": "image", "dataMapKey": "teamA.logo"},
                },
            },
            "input-card": {
                "displayName": "Referee card",
                "vmixTitle": "CARD",
                "vmixKey": "key-b",
                "vmixNumber": "5",
                "overlay": 2,
                "fields": {},
            },
        },
    }
