from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class GameplayType:
    value: str
    name: str
    has_odds: bool = False


QUICK_THERE = GameplayType("quick_there", "Quick Three", has_odds=True)
BIG_SMALL = GameplayType("big_small", "Big / Small")
ODD_EVEN = GameplayType("odd_even", "Odd / Even")

# Selector order follows this mapping.
GAMEPLAY_TYPES: Dict[str, GameplayType] = {
    item.value: item for item in (QUICK_THERE, BIG_SMALL, ODD_EVEN)
}


@dataclass(frozen=True)
class GameplayStatus:
    value: str
    name: str


GAMEPLAY_ON = GameplayStatus("on", "🟢 On")
GAMEPLAY_OFF = GameplayStatus("off", "🔴 Off")

GAMEPLAY_STATUSES: Dict[str, GameplayStatus] = {
    item.value: item for item in (GAMEPLAY_ON, GAMEPLAY_OFF)
}

CHAT_GROUP_NORMAL = "normal"
CHAT_GROUP_KICKED = "kicked"
CHAT_GROUP_LEFT = "left"


def get_gameplay_type(value: Optional[str]) -> Optional[GameplayType]:
    return GAMEPLAY_TYPES.get(str(value or ""))


def get_gameplay_status(value: Optional[str]) -> Optional[GameplayStatus]:
    return GAMEPLAY_STATUSES.get(str(value or ""))


def toggled_status(value: Optional[str]) -> str:
    return GAMEPLAY_OFF.value if value == GAMEPLAY_ON.value else GAMEPLAY_ON.value
