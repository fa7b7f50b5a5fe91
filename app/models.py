# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Pydantic models for player records.

This module defines:
- The closed enumerations exposed on the wire (Race, Profession, PlayerOrder)
- The stored Player record and the create/update payloads
- Level progression derived from experience
- Serialization to/from Firestore documents

Birthdays travel over HTTP as milliseconds since the Unix epoch and are held
in Python as timezone-aware UTC datetimes.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from math import isqrt
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from app.config import (
    MAX_EXPERIENCE,
    MAX_NAME_LENGTH,
    MAX_TITLE_LENGTH,
    MIN_EXPERIENCE,
)
from app.logging import get_logger

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Race(str, Enum):
    """Player race. Member names are the wire values."""

    HUMAN = "HUMAN"
    DWARF = "DWARF"
    ELF = "ELF"
    GIANT = "GIANT"
    ORC = "ORC"
    TROLL = "TROLL"
    HOBBIT = "HOBBIT"


class Profession(str, Enum):
    """Player profession. Member names are the wire values."""

    WARRIOR = "WARRIOR"
    ROGUE = "ROGUE"
    SORCERER = "SORCERER"
    CLERIC = "CLERIC"
    PALADIN = "PALADIN"
    NAZGUL = "NAZGUL"
    WARLOCK = "WARLOCK"
    DRUID = "DRUID"


class PlayerOrder(Enum):
    """
    Sortable player fields.

    Clients pass the member name (e.g. ``order=EXPERIENCE``); the value is
    the Player attribute results are sorted on, always ascending.
    """

    ID = "id"
    NAME = "name"
    EXPERIENCE = "experience"
    BIRTHDAY = "birthday"
    LEVEL = "level"

    @property
    def field_name(self) -> str:
        return self.value


# ==============================================================================
# Time and Progression Helpers
# ==============================================================================


def datetime_from_millis(millis: int) -> datetime:
    """Convert milliseconds since the epoch to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=millis)


def millis_from_datetime(dt: datetime) -> int:
    """Convert a datetime to whole milliseconds since the epoch (naive = UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // timedelta(milliseconds=1)


def level_for_experience(experience: int) -> int:
    """
    Level reached with the given experience.

    level = floor((sqrt(2500 + 200 * experience) - 50) / 100)

    Examples:
        >>> level_for_experience(0)
        0
        >>> level_for_experience(100)
        1
        >>> level_for_experience(5000)
        9
    """
    return (isqrt(2500 + 200 * experience) - 50) // 100


def experience_until_next_level(experience: int, level: int) -> int:
    """Experience still missing to reach ``level + 1``."""
    return 50 * (level + 1) * (level + 2) - experience


def _coerce_birthday(value: Any) -> Any:
    # bool is an int subclass; a JSON true/false is never a timestamp
    if isinstance(value, bool):
        raise ValueError("birthday must be milliseconds since the epoch")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("birthday must not be before 1970-01-01T00:00:00Z")
        try:
            return datetime_from_millis(value)
        except OverflowError as e:
            raise ValueError("birthday is beyond the supported date range") from e
    return value


def _check_birthday(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    try:
        value = value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError("birthday is beyond the supported date range") from e
    if value < EPOCH:
        raise ValueError("birthday must not be before 1970-01-01T00:00:00Z")
    return value


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("name cannot be empty or only whitespace")
    return value


# ==============================================================================
# Player Records and Payloads
# ==============================================================================


class Player(BaseModel):
    """
    A stored player record as returned by the API.

    ``level`` and ``untilNextLevel`` are always derived from ``experience``;
    use :func:`build_player` / :func:`merge_player` rather than setting them
    by hand.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(gt=0, description="Player identifier, assigned on create")
    name: str = Field(description="Player name")
    title: str = Field(description="Player title")
    race: Race = Field(description="Player race")
    profession: Profession = Field(description="Player profession")
    birthday: datetime = Field(
        description="Birthday as milliseconds since the Unix epoch"
    )
    banned: bool = Field(default=False, description="Whether the player is banned")
    experience: int = Field(ge=0, description="Experience points")
    level: int = Field(ge=0, description="Level derived from experience")
    until_next_level: int = Field(
        ge=0,
        alias="untilNextLevel",
        description="Experience missing to reach the next level",
    )

    @field_validator("birthday", mode="before")
    @classmethod
    def parse_birthday(cls, value: Any) -> Any:
        return _coerce_birthday(value)

    @field_validator("birthday")
    @classmethod
    def validate_birthday(cls, value: datetime) -> datetime:
        return _check_birthday(value)

    @field_serializer("birthday", when_used="json")
    def serialize_birthday(self, value: datetime) -> int:
        return millis_from_datetime(value)


class PlayerCreateRequest(BaseModel):
    """
    Request body for POST /rest/players.

    Required fields:
    - name: 1-12 characters, not blank
    - title: up to 30 characters
    - race, profession: enum member names
    - birthday: milliseconds since the epoch, not negative
    - experience: 0-10,000,000

    Optional fields:
    - banned: defaults to false
    """

    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    title: str = Field(max_length=MAX_TITLE_LENGTH)
    race: Race
    profession: Profession
    birthday: datetime
    banned: Optional[bool] = None
    experience: int = Field(ge=MIN_EXPERIENCE, le=MAX_EXPERIENCE)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator("birthday", mode="before")
    @classmethod
    def parse_birthday(cls, value: Any) -> Any:
        return _coerce_birthday(value)

    @field_validator("birthday")
    @classmethod
    def validate_birthday(cls, value: datetime) -> datetime:
        return _check_birthday(value)


class PlayerUpdateRequest(BaseModel):
    """
    Request body for POST /rest/players/{id}.

    Every field is optional; omitted or null fields keep their stored value.
    Supplied fields obey the same bounds as on create.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=MAX_NAME_LENGTH)
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)
    race: Optional[Race] = None
    profession: Optional[Profession] = None
    birthday: Optional[datetime] = None
    banned: Optional[bool] = None
    experience: Optional[int] = Field(
        default=None, ge=MIN_EXPERIENCE, le=MAX_EXPERIENCE
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _check_name(value)

    @field_validator("birthday", mode="before")
    @classmethod
    def parse_birthday(cls, value: Any) -> Any:
        return _coerce_birthday(value)

    @field_validator("birthday")
    @classmethod
    def validate_birthday(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_birthday(value)

    def changes(self) -> dict[str, Any]:
        """The supplied, non-null fields keyed by Player attribute name."""
        return self.model_dump(mode="python", exclude_none=True)


def _with_progression(data: dict[str, Any]) -> Player:
    level = level_for_experience(data["experience"])
    data["level"] = level
    data["until_next_level"] = experience_until_next_level(data["experience"], level)
    data.pop("untilNextLevel", None)
    return Player.model_validate(data)


def build_player(player_id: int, request: PlayerCreateRequest) -> Player:
    """Build a new Player from a create payload and an assigned id."""
    data = request.model_dump(mode="python")
    data["id"] = player_id
    data["banned"] = bool(data.get("banned"))
    return _with_progression(data)


def merge_player(existing: Player, changes: dict[str, Any]) -> Player:
    """
    Apply update changes to an existing Player.

    The id never changes and level/untilNextLevel are recomputed from the
    resulting experience.
    """
    data = existing.model_dump(mode="python")
    data.update({k: v for k, v in changes.items() if k != "id"})
    return _with_progression(data)


# ==============================================================================
# Firestore Serialization Helpers
# ==============================================================================


def datetime_from_firestore(value: Any) -> Optional[datetime]:
    """
    Convert a Firestore Timestamp, datetime or epoch-millis value to an
    aware UTC datetime.

    Raises:
        ValueError: If the value cannot be interpreted as a point in time
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, int) and not isinstance(value, bool):
        return datetime_from_millis(value)

    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return datetime_from_firestore(parsed)

    # Firestore Timestamp objects expose to_datetime()
    if hasattr(value, "to_datetime"):
        return value.to_datetime()

    raise ValueError(
        f"Cannot convert {type(value).__name__} to datetime. Expected Firestore "
        "Timestamp, datetime, epoch milliseconds or ISO 8601 string."
    )


def player_to_firestore(player: Player) -> dict[str, Any]:
    """
    Convert a Player to a Firestore document.

    Enums are stored by name so that equality queries on race/profession
    compare plain strings.

    Examples:
        >>> doc = player_to_firestore(player)
        >>> doc["race"]
        'HUMAN'
    """
    data = player.model_dump(mode="python")
    data["race"] = player.race.value
    data["profession"] = player.profession.value
    return data


def player_from_firestore(
    data: dict[str, Any], *, player_id: Optional[int] = None
) -> Player:
    """
    Convert a Firestore document to a Player.

    Args:
        data: Document dictionary from Firestore
        player_id: Identifier to use if the document lacks an ``id`` field
            (the document id is the decimal player id)

    Raises:
        ValueError: If the document is malformed
    """
    data = dict(data)
    if "id" not in data and player_id is not None:
        data["id"] = player_id
    data["birthday"] = datetime_from_firestore(data.get("birthday"))
    if "until_next_level" not in data and "untilNextLevel" not in data:
        logger.debug("player_document_missing_progression", player_id=data.get("id"))
        return _with_progression(data)
    return Player.model_validate(data)
