"""Typed menu parameters and their flat string-map form.

Tokens only ever address a ``Dict[str, str]``; screens work with the
dataclasses below and convert at the token store boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Type, TypeVar, Union

from dicebot.errors import DecodingError

CHAT_GROUP_ID = "chatGroupId"
GAMEPLAY_TYPE = "gameplayType"
FIELD = "field"

ODDS_FIELDS = ("simple_odds", "triplet_odds")


def _require(bag: Dict[str, str], key: str) -> str:
    value = bag.get(key)
    if not isinstance(value, str) or not value:
        raise DecodingError(f"parameter bag has no {key!r}: {bag!r}")
    return value


@dataclass(frozen=True)
class GroupRef:
    chat_group_id: str

    def to_bag(self) -> Dict[str, str]:
        return {CHAT_GROUP_ID: self.chat_group_id}

    @classmethod
    def from_bag(cls, bag: Dict[str, str]) -> "GroupRef":
        return cls(_require(bag, CHAT_GROUP_ID))


@dataclass(frozen=True)
class GroupTypeChoice:
    chat_group_id: str
    gameplay_type: str

    def to_bag(self) -> Dict[str, str]:
        return {CHAT_GROUP_ID: self.chat_group_id, GAMEPLAY_TYPE: self.gameplay_type}

    @classmethod
    def from_bag(cls, bag: Dict[str, str]) -> "GroupTypeChoice":
        return cls(_require(bag, CHAT_GROUP_ID), _require(bag, GAMEPLAY_TYPE))


@dataclass(frozen=True)
class GroupFieldEdit:
    chat_group_id: str
    field: str

    def to_bag(self) -> Dict[str, str]:
        return {CHAT_GROUP_ID: self.chat_group_id, FIELD: self.field}

    @classmethod
    def from_bag(cls, bag: Dict[str, str]) -> "GroupFieldEdit":
        field = _require(bag, FIELD)
        if field not in ODDS_FIELDS:
            raise DecodingError(f"unknown editable field {field!r}")
        return cls(_require(bag, CHAT_GROUP_ID), field)


MenuParams = Union[GroupRef, GroupTypeChoice, GroupFieldEdit]
P = TypeVar("P", GroupRef, GroupTypeChoice, GroupFieldEdit)


def decode_params(kind: Type[P], bag: Dict[str, str]) -> P:
    return kind.from_bag(bag)
